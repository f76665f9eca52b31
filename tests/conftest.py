"""
Pytest configuration and shared fixtures.

Provides a fake platform server (served through ``httpx.MockTransport``),
clients wired to it with zero-delay retries, an in-memory secret store,
and isolated config directories.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from platsync.core.config import loader
from platsync.core.platform import PlatformClient, RetryPolicy

VALID_API_KEY = "ap_user_testkey12345"
BASE_URL = "https://platform.test"

Reply = tuple[int, Any] | Exception | Callable[[httpx.Request], httpx.Response]


# ==============================================================================
# Fake Platform
# ==============================================================================


class FakePlatform:
    """
    Route table standing in for the platform API.

    Each route holds a list of replies used in order; the last one repeats.
    A reply is ``(status_code, body)`` where body is a dict/list (JSON),
    a str (raw text) or None (empty), an exception to raise instead, or a
    callable that builds the response from the request.

    Example:
        >>> fake = FakePlatform()
        >>> fake.on("GET", "/api/v1/health", (500, None), (200, {"ok": True}))
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Reply]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *replies: Reply) -> None:
        self.routes[(method, path)] = list(replies)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(404, json={"message": f"no route for {request.url.path}"})

        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)

        status_code, body = reply
        if body is None:
            return httpx.Response(status_code)
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)


@pytest.fixture
def fake_platform() -> FakePlatform:
    """Provide an empty fake platform."""
    return FakePlatform()


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Retry policy with the default attempt count and no waiting."""
    return RetryPolicy(delays=(0.0, 0.0, 0.0))


@pytest.fixture
def make_client(fake_platform: FakePlatform, fast_retry: RetryPolicy) -> Iterator[Any]:
    """Factory for clients talking to ``fake_platform``; closed after the test."""
    clients: list[PlatformClient] = []

    def _make(**kwargs: Any) -> PlatformClient:
        kwargs.setdefault("base_url", BASE_URL)
        kwargs.setdefault("retry_policy", fast_retry)
        kwargs.setdefault("transport", httpx.MockTransport(fake_platform))
        client = PlatformClient(kwargs.pop("api_key", VALID_API_KEY), **kwargs)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def api_key() -> str:
    """A well-formed user API key."""
    return VALID_API_KEY


@pytest.fixture
def client(make_client: Any) -> PlatformClient:
    """Provide a client for ``fake_platform`` with zero-delay retries."""
    return make_client()


# ==============================================================================
# Secrets and Config
# ==============================================================================


class MemorySecretStore:
    """Dict-backed secret store."""

    def __init__(self, secrets: dict[str, str] | None = None) -> None:
        self.secrets = dict(secrets or {})

    def get_secret(self, name: str) -> str | None:
        return self.secrets.get(name)

    def set_secret(self, name: str, value: str) -> None:
        self.secrets[name] = value

    def delete_secret(self, name: str) -> None:
        self.secrets.pop(name, None)


@pytest.fixture
def secret_store() -> MemorySecretStore:
    """Provide an empty in-memory secret store."""
    return MemorySecretStore()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """
    Keep every test away from the real user config and environment.

    Points XDG_CONFIG_HOME at a temp dir, clears PLATSYNC_* and
    PLATFORM_API_KEY, and resets the config cache.
    """
    config_home = tmp_path / "xdg-config"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    for name in (
        "PLATFORM_API_KEY",
        "PLATSYNC_ENABLED",
        "PLATSYNC_BASE_URL",
        "PLATSYNC_TIMEOUT",
        "PLATSYNC_CACHE_MAX_AGE",
    ):
        monkeypatch.delenv(name, raising=False)
    loader.clear_cache()
    yield config_home
    loader.clear_cache()


# ==============================================================================
# Sample Payloads
# ==============================================================================


def _task_payload(task_id: str = "task-1", status: str = "pending", **extra: Any) -> dict[str, Any]:
    payload = {
        "id": task_id,
        "specId": "spec-1",
        "title": f"Task {task_id}",
        "description": "Do the thing",
        "status": status,
        "checkpointMode": False,
    }
    payload.update(extra)
    return payload


def _spec_payload(spec_id: str = "spec-1", content: str = "# Spec\n\nBuild it.") -> dict[str, Any]:
    return {
        "id": spec_id,
        "productId": "prod-1",
        "name": "Login flow",
        "content": content,
        "status": "approved",
    }


@pytest.fixture
def task_payload():
    """Factory for a task as the platform returns it (camelCase)."""
    return _task_payload


@pytest.fixture
def spec_payload():
    """Factory for a spec as the platform returns it (camelCase)."""
    return _spec_payload
