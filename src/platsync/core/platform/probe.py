"""
Connection probe with a short-lived cached result.

Several UI panels poll "are we online?" at once. The probe answers from a
cached :class:`ConnectionStatus` for ``ttl`` seconds and only pings the
platform when the cached value has expired or was invalidated.

One probe exists per client configuration; construct it explicitly and
share it between callers.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone

from platsync.core.platform.client import PlatformClient
from platsync.core.platform.exceptions import PlatformError, RequestCancelledError
from platsync.core.platform.models import ConnectionStatus

logger = logging.getLogger(__name__)

# How long a probe result is reused, in seconds
CONNECTION_CACHE_TTL = 30.0


class ConnectionProbe:
    """
    TTL-cached connectivity check for a :class:`PlatformClient`.

    The lock is held for the whole ping-and-update sequence, so callers
    arriving during a probe wait for its result instead of starting their
    own.

    Example:
        >>> probe = ConnectionProbe(client)
        >>> status = probe.check_connection()
        >>> if status.offline_mode:
        ...     print(f"Offline: {status.error}")
    """

    def __init__(
        self,
        client: PlatformClient,
        *,
        ttl: float = CONNECTION_CACHE_TTL,
        resolve_user: bool = False,
    ) -> None:
        """
        Initialize ConnectionProbe.

        Args:
            client: Client used for the health check
            ttl: Seconds a result stays valid
            resolve_user: Also fetch the authenticated user after a
                successful ping (verifies the key, not just reachability)
        """
        self.client = client
        self.ttl = ttl
        self.resolve_user = resolve_user
        self._lock = threading.Lock()
        self._status = ConnectionStatus(base_url=client.base_url)
        self._checked_at: float | None = None

    def _is_fresh(self) -> bool:
        return self._checked_at is not None and time.monotonic() - self._checked_at < self.ttl

    @property
    def status(self) -> ConnectionStatus:
        """Last known status, without probing."""
        with self._lock:
            return self._status.model_copy()

    def check_connection(self, *, cancel: threading.Event | None = None) -> ConnectionStatus:
        """
        Return the connection status, probing only if the cached one expired.

        A failed probe marks the status offline and records the error; it
        does not raise. Cancellation propagates and leaves the cache as it was.
        """
        with self._lock:
            if self._is_fresh():
                return self._status.model_copy()

            status = ConnectionStatus(base_url=self.client.base_url)
            try:
                self.client.ping(cancel=cancel)
                if self.resolve_user:
                    status.user = self.client.get_current_user(cancel=cancel)
            except RequestCancelledError:
                raise
            except PlatformError as e:
                logger.info(f"platform unreachable at {self.client.base_url}: {e}")
                status.connected = False
                status.offline_mode = True
                status.error = str(e)
            else:
                status.connected = True
                status.offline_mode = False

            status.last_checked = datetime.now(timezone.utc)
            self._status = status
            self._checked_at = time.monotonic()
            return status.model_copy()

    def invalidate(self) -> None:
        """Force the next :meth:`check_connection` to ping."""
        with self._lock:
            self._checked_at = None


__all__ = ["CONNECTION_CACHE_TTL", "ConnectionProbe"]
