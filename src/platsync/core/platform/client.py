"""
HTTP client for the Agentic Platform API.

Wraps an ``httpx.Client`` with bearer-token authentication, JSON
encoding, and bounded retry of transient failures (see
:mod:`platsync.core.platform.http`). One client is safe to share between
threads: it holds configuration and a connection pool, nothing else.

Example:
    >>> client = PlatformClient("ap_user_0123456789abcdef")
    >>> for project in client.get_projects():
    ...     print(project.name)
    >>> client.update_task_status("task-1", TaskStatus.PROCESSING)
"""

from __future__ import annotations

import logging
import threading
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from platsync import __version__
from platsync.core.platform.auth import validate_api_key_format
from platsync.core.platform.exceptions import (
    APIError,
    PlatformError,
    PlatformValidationError,
    TransportError,
)
from platsync.core.platform.http import (
    RetryPolicy,
    check_cancelled,
    is_retryable_error,
    is_retryable_status,
    wait_before_retry,
)
from platsync.core.platform.models import (
    Product,
    Project,
    Spec,
    SubTask,
    Task,
    TaskStatus,
    Team,
    User,
    is_valid_task_status,
)

logger = logging.getLogger(__name__)

# Production platform API endpoint
DEFAULT_BASE_URL = "https://agenticteam.dev"

# Per-request timeout in seconds
DEFAULT_TIMEOUT = 30.0

USER_AGENT = f"platsync/{__version__}"

HEALTH_PATH = "/api/v1/health"

M = TypeVar("M", bound=BaseModel)


def _segment(value: str) -> str:
    """Escape a value for use as a single URL path segment."""
    return quote(value, safe="")


def _require(value: str, name: str) -> None:
    if not value:
        raise PlatformValidationError(f"{name} is required")


def _unwrap_list(payload: Any, key: str | None = None) -> list[Any]:
    """
    Extract a list from a response envelope.

    Accepts ``{"data": [...]}``, ``{"data": {key: [...]}}``,
    ``{key: [...]}`` and a bare list.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    data = payload.get("data")
    if isinstance(data, list):
        return data
    if key is not None:
        if isinstance(data, dict) and isinstance(data.get(key), list) and data[key]:
            return list(data[key])
        if isinstance(payload.get(key), list):
            return list(payload[key])
    return []


def _unwrap_item(payload: Any, key: str) -> Any:
    """Extract a single object from ``{"data": {key: {...}}}``, ``{"data": {...}}`` or ``{...}``."""
    data = payload.get("data", payload) if isinstance(payload, dict) else payload
    if isinstance(data, dict) and isinstance(data.get(key), dict):
        return data[key]
    return data


def _parse(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise PlatformError(f"unexpected {model.__name__} payload: {e}") from e


def _parse_list(model: type[M], items: list[Any]) -> list[M]:
    return [_parse(model, item) for item in items]


class PlatformClient:
    """
    Client for the Agentic Platform REST API.

    Every request carries ``Authorization: Bearer <api key>``. Transport
    failures and 5xx responses are retried according to ``retry_policy``;
    4xx responses fail immediately with :class:`APIError`.

    Blocking methods accept an optional ``cancel`` event. Setting it from
    another thread aborts the wait between retry attempts.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize PlatformClient.

        Args:
            api_key: Platform API key (``ap_user_...`` or ``ap_team_...``)
            base_url: Platform base URL
            timeout: Per-request timeout in seconds
            retry_policy: Retry configuration (defaults to 3 retries, 1s/2s/4s)
            transport: Optional httpx transport, used by tests to fake the server

        Raises:
            ConfigurationError: If the API key is missing or malformed
        """
        validate_api_key_format(api_key)

        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
        )

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._http.close()

    def __enter__(self) -> PlatformClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: dict[str, str] | None = None,
        cancel: threading.Event | None = None,
    ) -> httpx.Response:
        """
        Perform a request, retrying transient failures.

        The JSON body is serialized again for every attempt.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            path: Path relative to the base URL
            body: JSON-serializable body or a pydantic model
            params: Query parameters
            cancel: Event that aborts the wait between retries when set

        Returns:
            The first response that is not a 5xx. 4xx responses are returned
            as-is; the typed wrappers turn them into :class:`APIError`.

        Raises:
            TransportError: If every attempt failed
            RequestCancelledError: If cancelled before or between attempts
        """
        if isinstance(body, BaseModel):
            body = body.model_dump(mode="json", by_alias=True, exclude_none=True)

        check_cancelled(cancel)
        policy = self.retry_policy
        last_error: Exception | None = None

        for attempt in range(policy.max_attempts):
            if attempt > 0:
                delay = policy.delay_for(attempt - 1)
                logger.info(
                    f"{method} {path}: retry attempt {attempt}/{policy.max_retries} "
                    f"after {delay:.2f}s due to: {last_error}"
                )
                wait_before_retry(delay, cancel)

            try:
                logger.debug(f"{method} {self.base_url}{path} (attempt {attempt + 1})")
                response = self._http.request(method, path, json=body, params=params)
            except httpx.HTTPError as e:
                if not is_retryable_error(e):
                    raise PlatformError(f"request failed: {e}") from e
                last_error = e
                continue

            if is_retryable_status(response.status_code):
                last_error = self._parse_error(response)
                continue

            return response

        logger.warning(
            f"{method} {path}: max retries ({policy.max_retries}) exceeded: {last_error}"
        )
        raise TransportError(
            f"request failed after {policy.max_retries} retries: {last_error}",
            attempts=policy.max_attempts,
        ) from last_error

    @staticmethod
    def _parse_error(response: httpx.Response) -> APIError:
        """
        Build an APIError from an error response.

        Uses ``message`` (or ``error``) and ``code`` from a JSON body; falls
        back to the raw body text, then to the HTTP reason phrase.
        """
        message = ""
        code: str | None = None
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            raw_message = data.get("message") or data.get("error") or ""
            message = raw_message if isinstance(raw_message, str) else str(raw_message)
            raw_code = data.get("code")
            code = str(raw_code) if raw_code else None
        else:
            message = response.text

        if not message:
            message = response.reason_phrase or f"HTTP {response.status_code}"

        return APIError(response.status_code, message, code)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise PlatformError(f"failed to decode response body: {e}") from e

    def _send(
        self,
        method: str,
        path: str,
        ok: tuple[int, ...],
        body: Any = None,
        *,
        params: dict[str, str] | None = None,
        cancel: threading.Event | None = None,
    ) -> Any:
        response = self.request(method, path, body, params=params, cancel=cancel)
        if response.status_code not in ok:
            raise self._parse_error(response)
        return self._decode(response)

    def get(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        cancel: threading.Event | None = None,
    ) -> Any:
        """GET and decode the JSON body. Anything but 200 raises APIError."""
        return self._send("GET", path, (200,), params=params, cancel=cancel)

    def post(self, path: str, body: Any = None, *, cancel: threading.Event | None = None) -> Any:
        """POST and decode the JSON body. 200 and 201 are success."""
        return self._send("POST", path, (200, 201), body, cancel=cancel)

    def patch(self, path: str, body: Any = None, *, cancel: threading.Event | None = None) -> Any:
        """PATCH and decode the JSON body. Anything but 200 raises APIError."""
        return self._send("PATCH", path, (200,), body, cancel=cancel)

    def delete(self, path: str, *, cancel: threading.Event | None = None) -> Any:
        """DELETE. 200 and 204 are success."""
        return self._send("DELETE", path, (200, 204), cancel=cancel)

    def ping(self, *, cancel: threading.Event | None = None) -> None:
        """
        Check that the platform API is reachable.

        Raises:
            PlatformError: If the health check does not return 200
        """
        response = self.request("GET", HEALTH_PATH, cancel=cancel)
        if response.status_code != 200:
            raise PlatformError(
                f"platform health check failed: {response.status_code}",
                status_code=response.status_code,
            )

    # -------------------------------------------------------------------------
    # Users and projects
    # -------------------------------------------------------------------------

    def get_current_user(self, *, cancel: threading.Event | None = None) -> User:
        """Fetch the authenticated user."""
        try:
            payload = self.get("/api/me", cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get current user") from e
        return _parse(User, _unwrap_item(payload, "user"))

    def get_teams(self, *, cancel: threading.Event | None = None) -> list[Team]:
        """Fetch all teams accessible to the authenticated user."""
        logger.debug(f"GetTeams: calling GET {self.base_url}/api/v1/teams")
        try:
            payload = self.get("/api/v1/teams", cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get teams") from e
        teams = _parse_list(Team, _unwrap_list(payload))
        logger.debug(f"GetTeams: received {len(teams)} teams")
        return teams

    def get_projects(
        self, team_id: str | None = None, *, cancel: threading.Event | None = None
    ) -> list[Project]:
        """
        Fetch all projects accessible to the authenticated user.

        Args:
            team_id: Only return projects owned by this team
        """
        params = {"teamId": team_id} if team_id else None
        try:
            payload = self.get("/api/v1/projects", params=params, cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get projects") from e
        projects = _parse_list(Project, _unwrap_list(payload))
        logger.debug(f"GetProjects: received {len(projects)} projects")
        return projects

    def get_project(self, project_id: str, *, cancel: threading.Event | None = None) -> Project:
        _require(project_id, "project ID")
        try:
            payload = self.get(f"/api/v1/projects/{_segment(project_id)}", cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get project") from e
        return _parse(Project, _unwrap_item(payload, "project"))

    def get_products(
        self, project_id: str, *, cancel: threading.Event | None = None
    ) -> list[Product]:
        """Fetch all products within a project."""
        _require(project_id, "project ID")
        try:
            payload = self.get(
                "/api/v1/products", params={"projectId": project_id}, cancel=cancel
            )
        except PlatformError as e:
            raise e.with_context("failed to get products") from e
        products = _parse_list(Product, _unwrap_list(payload))
        logger.debug(f"GetProducts: received {len(products)} products")
        return products

    def get_product(self, product_id: str, *, cancel: threading.Event | None = None) -> Product:
        _require(product_id, "product ID")
        try:
            payload = self.get(f"/api/v1/products/{_segment(product_id)}", cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get product") from e
        return _parse(Product, _unwrap_item(payload, "product"))

    # -------------------------------------------------------------------------
    # Specs
    # -------------------------------------------------------------------------

    def get_specs(self, product_id: str, *, cancel: threading.Event | None = None) -> list[Spec]:
        """Fetch all specs within a product."""
        _require(product_id, "product ID")
        try:
            payload = self.get(
                "/api/v1/specs", params={"productId": product_id}, cancel=cancel
            )
        except PlatformError as e:
            raise e.with_context("failed to get specs") from e
        specs = _parse_list(Spec, _unwrap_list(payload))
        logger.debug(f"GetSpecs: received {len(specs)} specs")
        return specs

    def get_spec(self, spec_id: str, *, cancel: threading.Event | None = None) -> Spec:
        """Fetch a single spec (the API nests it under ``data.spec``)."""
        _require(spec_id, "spec ID")
        try:
            payload = self.get(f"/api/v1/specs/{_segment(spec_id)}", cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get spec") from e
        return _parse(Spec, _unwrap_item(payload, "spec"))

    def get_spec_content(self, spec_id: str, *, cancel: threading.Event | None = None) -> str:
        return self.get_spec(spec_id, cancel=cancel).content

    def get_spec_with_tasks(
        self, spec_id: str, *, cancel: threading.Event | None = None
    ) -> tuple[Spec, list[Task]]:
        """
        Fetch a spec together with all of its tasks.

        Raises:
            PlatformError: If either request fails. A task failure is
                reported as ``failed to get spec tasks``.
        """
        spec = self.get_spec(spec_id, cancel=cancel)
        try:
            tasks = self.get_tasks(spec_id, cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get spec tasks") from e
        return spec, tasks

    def get_specs_by_status(
        self, product_id: str, status: str | None, *, cancel: threading.Event | None = None
    ) -> list[Spec]:
        """Fetch specs for a product, keeping only those with ``status`` (all if empty)."""
        specs = self.get_specs(product_id, cancel=cancel)
        if not status:
            return specs
        return [spec for spec in specs if spec.status == status]

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    def get_tasks(self, spec_id: str, *, cancel: threading.Event | None = None) -> list[Task]:
        """Fetch all tasks for a spec."""
        _require(spec_id, "spec ID")
        try:
            payload = self.get("/api/v1/tasks", params={"specId": spec_id}, cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get tasks") from e
        tasks = _parse_list(Task, _unwrap_list(payload))
        logger.debug(f"GetTasks: received {len(tasks)} tasks")
        return tasks

    def get_tasks_by_status(
        self,
        spec_id: str,
        status: TaskStatus | str | None,
        *,
        cancel: threading.Event | None = None,
    ) -> list[Task]:
        """Fetch tasks for a spec, keeping only those with ``status`` (all if empty)."""
        tasks = self.get_tasks(spec_id, cancel=cancel)
        if not status:
            return tasks
        if not is_valid_task_status(status):
            raise PlatformValidationError(f"invalid task status: {status}")
        wanted = TaskStatus(status)
        return [task for task in tasks if task.status == wanted]

    def get_task(self, task_id: str, *, cancel: threading.Event | None = None) -> Task:
        """Fetch a single task (the API nests it under ``data.task``)."""
        _require(task_id, "task ID")
        try:
            payload = self.get(f"/api/v1/tasks/{_segment(task_id)}", cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get task") from e
        task = _parse(Task, _unwrap_item(payload, "task"))
        logger.debug(f"GetTask: received task id={task.id} status={task.status.value}")
        return task

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus | str,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """
        Set the status of a task.

        Raises:
            PlatformValidationError: If the ID is empty or the status is unknown
                (checked before any request is made)
        """
        _require(task_id, "task ID")
        _require(status, "status")
        if not is_valid_task_status(status):
            raise PlatformValidationError(f"invalid task status: {status}")

        value = TaskStatus(status).value
        try:
            self.patch(
                f"/api/v1/tasks/{_segment(task_id)}", {"status": value}, cancel=cancel
            )
        except PlatformError as e:
            raise e.with_context("failed to update task status") from e
        logger.debug(f"UpdateTaskStatus: task {task_id} -> {value}")

    def get_task_with_spec(
        self, task_id: str, *, cancel: threading.Event | None = None
    ) -> tuple[Task, Spec | None]:
        """
        Fetch a task and its parent spec.

        A failure to load the spec is logged and the task returned alone.
        """
        task = self.get_task(task_id, cancel=cancel)
        if not task.spec_id:
            return task, None

        try:
            spec = self.get_spec(task.spec_id, cancel=cancel)
        except PlatformError as e:
            logger.warning(f"failed to get spec {task.spec_id} for task {task_id}: {e}")
            return task, None
        return task, spec

    def get_sub_tasks(
        self, task_id: str, *, cancel: threading.Event | None = None
    ) -> list[SubTask]:
        """Fetch sub-tasks for a task (``data.subTasks`` or top-level ``subTasks``)."""
        _require(task_id, "task ID")
        try:
            payload = self.get(f"/api/v1/tasks/{_segment(task_id)}/subtasks", cancel=cancel)
        except PlatformError as e:
            raise e.with_context("failed to get sub-tasks") from e
        sub_tasks = _parse_list(SubTask, _unwrap_list(payload, "subTasks"))
        logger.debug(f"GetSubTasks: received {len(sub_tasks)} sub-tasks")
        return sub_tasks

    def update_sub_task_status(
        self, sub_task_id: str, status: str, *, cancel: threading.Event | None = None
    ) -> None:
        _require(sub_task_id, "sub-task ID")
        _require(status, "status")
        try:
            self.patch(
                f"/api/v1/subtasks/{_segment(sub_task_id)}", {"status": status}, cancel=cancel
            )
        except PlatformError as e:
            raise e.with_context("failed to update sub-task status") from e


__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT",
    "USER_AGENT",
    "PlatformClient",
]
