"""
Platform service: clean API for the Agentic Platform integration.

Composes the client, hierarchy cache, connection probe and status syncer
into the surface the UI and session code call:

- connection status
- hierarchy reads with caching (stale data is served when offline)
- session-state and status pushes, flushing, sync status
- conflict checks and task context

Usage:
    >>> from platsync.core.services.platform import PlatformService
    >>> service = PlatformService.from_config()
    >>> from platsync.core.platform import SessionState
    >>> if service.check_connection().connected:
    ...     projects = service.get_projects()
    >>> service.report_session_state("task-1", SessionState.RUNNING)
    >>> service.flush_updates()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

import httpx

from platsync.core.config.loader import load_config
from platsync.core.config.models import PlatformConfig
from platsync.core.config.secrets import default_secret_store
from platsync.core.platform.auth import SecretStore, get_api_key
from platsync.core.platform.cache import TaskCache
from platsync.core.platform.client import PlatformClient
from platsync.core.platform.context import ContextInjection, generate_context
from platsync.core.platform.exceptions import TransportError
from platsync.core.platform.models import (
    ConnectionStatus,
    Product,
    Project,
    Spec,
    SyncStatus,
    Task,
    TaskStatus,
)
from platsync.core.platform.probe import ConnectionProbe
from platsync.core.platform.syncer import SessionState, StatusSyncer, detect_status_conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PlatformService:
    """
    Caller-facing facade over the platform sync components.

    Each service owns its own cache, probe and syncer; nothing is shared
    between services implicitly.

    Example:
        >>> service = PlatformService(client)
        >>> tasks = service.get_tasks("spec-1")          # fetched
        >>> tasks = service.get_tasks("spec-1")          # served from cache
        >>> tasks = service.get_tasks("spec-1", refresh=True)
    """

    def __init__(
        self,
        client: PlatformClient,
        *,
        config: PlatformConfig | None = None,
        cache: TaskCache | None = None,
        probe: ConnectionProbe | None = None,
        syncer: StatusSyncer | None = None,
    ) -> None:
        """
        Initialize service with dependencies.

        Args:
            client: Platform client
            config: Platform settings (defaults used if None)
            cache: Hierarchy cache (a fresh one if None)
            probe: Connection probe (one is built for ``client`` if None)
            syncer: Status syncer (one is built for ``client`` if None)
        """
        self.client = client
        self.config = config or PlatformConfig()
        self.cache = cache or TaskCache()
        self.probe = probe or ConnectionProbe(client, ttl=self.config.connection_ttl)
        self.syncer = syncer or StatusSyncer(client)

    @classmethod
    def from_config(
        cls,
        config: PlatformConfig | None = None,
        store: SecretStore | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> PlatformService:
        """
        Create a service from configuration and the stored API key.

        Raises:
            ConfigurationError: If no valid API key is stored
        """
        if config is None:
            config = load_config().platform
        if store is None:
            store = default_secret_store()

        client = PlatformClient(
            get_api_key(store),
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
        )
        return cls(client, config=config)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> PlatformService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ============================================================================
    # Connection
    # ============================================================================

    def check_connection(self, *, cancel: threading.Event | None = None) -> ConnectionStatus:
        """Probe (or reuse the cached probe) and update the syncer's offline flag."""
        status = self.probe.check_connection(cancel=cancel)
        if status.connected:
            self.syncer.mark_online()
        else:
            self.syncer.mark_offline()
        return status

    def invalidate_connection(self) -> None:
        """Make the next connection check hit the network."""
        self.probe.invalidate()

    # ============================================================================
    # Hierarchy reads
    # ============================================================================

    def _cached_fetch(
        self,
        label: str,
        lookup: Callable[[], tuple[list[T], bool]],
        fetch: Callable[[], list[T]],
        store: Callable[[list[T]], None],
        refresh: bool,
    ) -> list[T]:
        cached, present = lookup()
        if present and not refresh and not self.cache.is_stale(self.config.cache_max_age):
            return cached

        try:
            items = fetch()
        except TransportError as e:
            if not present:
                raise
            logger.warning(f"Serving cached {label}: platform unreachable ({e})")
            self.syncer.mark_offline()
            return cached

        store(items)
        return items

    def get_projects(
        self, *, refresh: bool = False, cancel: threading.Event | None = None
    ) -> list[Project]:
        return self._cached_fetch(
            "projects",
            self.cache.get_projects,
            lambda: self.client.get_projects(cancel=cancel),
            self.cache.set_projects,
            refresh,
        )

    def get_products(
        self, project_id: str, *, refresh: bool = False, cancel: threading.Event | None = None
    ) -> list[Product]:
        return self._cached_fetch(
            f"products for {project_id}",
            lambda: self.cache.get_products(project_id),
            lambda: self.client.get_products(project_id, cancel=cancel),
            lambda items: self.cache.set_products(project_id, items),
            refresh,
        )

    def get_specs(
        self, product_id: str, *, refresh: bool = False, cancel: threading.Event | None = None
    ) -> list[Spec]:
        return self._cached_fetch(
            f"specs for {product_id}",
            lambda: self.cache.get_specs(product_id),
            lambda: self.client.get_specs(product_id, cancel=cancel),
            lambda items: self.cache.set_specs(product_id, items),
            refresh,
        )

    def get_tasks(
        self, spec_id: str, *, refresh: bool = False, cancel: threading.Event | None = None
    ) -> list[Task]:
        return self._cached_fetch(
            f"tasks for {spec_id}",
            lambda: self.cache.get_tasks(spec_id),
            lambda: self.client.get_tasks(spec_id, cancel=cancel),
            lambda items: self.cache.set_tasks(spec_id, items),
            refresh,
        )

    def get_task(self, task_id: str, *, cancel: threading.Event | None = None) -> Task:
        """Fetch a task, falling back to its cached copy when offline."""
        try:
            return self.client.get_task(task_id, cancel=cancel)
        except TransportError as e:
            cached = self.cache.find_task(task_id)
            if cached is None:
                raise
            logger.warning(f"Serving cached task {task_id}: platform unreachable ({e})")
            self.syncer.mark_offline()
            return cached

    def invalidate_cache(self) -> None:
        self.cache.invalidate()

    # ============================================================================
    # Status sync
    # ============================================================================

    def report_session_state(
        self, task_id: str, state: SessionState | str
    ) -> TaskStatus | None:
        """Queue the status for a session transition (see :class:`StatusSyncer`)."""
        return self.syncer.push_session_state(task_id, state)

    def push_status_update(self, task_id: str, status: TaskStatus | str) -> None:
        self.syncer.push_status_update(task_id, status)

    def flush_updates(self, *, cancel: threading.Event | None = None) -> None:
        self.syncer.flush_updates(cancel=cancel)

    def get_sync_status(self) -> SyncStatus:
        return self.syncer.get_sync_status()

    def detect_status_conflict(self, local_status: str | None, platform_status: str | None) -> bool:
        return detect_status_conflict(local_status, platform_status)

    def check_task_conflict(
        self, task_id: str, local_status: str | None, *, cancel: threading.Event | None = None
    ) -> bool:
        """Compare a locally believed status with the task's status on the platform."""
        task = self.get_task(task_id, cancel=cancel)
        return detect_status_conflict(local_status, task.status)

    # ============================================================================
    # Context
    # ============================================================================

    def get_task_context(
        self, task_id: str, *, cancel: threading.Event | None = None
    ) -> ContextInjection:
        return generate_context(self.client, task_id, cancel=cancel)


__all__ = ["PlatformService"]
