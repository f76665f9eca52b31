"""
Status synchronization between local sessions and platform tasks.

Local session lifecycle transitions are mapped to task statuses and pushed
to the platform through an :class:`OfflineQueue`:

    ==================  =======================================
    Session state       Task status pushed
    ==================  =======================================
    started, running    processing
    idle                pending
    error               error
    completed           (nothing - the user marks tasks complete)
    stopped             (nothing)
    ==================  =======================================

The syncer also tracks sync health (last sync time, in-flight flag,
offline flag, last error) for display.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from enum import Enum

from platsync.core.platform.client import PlatformClient
from platsync.core.platform.exceptions import (
    PlatformError,
    PlatformValidationError,
    RequestCancelledError,
)
from platsync.core.platform.models import (
    QueuedUpdate,
    SyncStatus,
    TaskStatus,
    is_valid_task_status,
)
from platsync.core.platform.offline import FIELD_STATUS, OfflineQueue

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle state of a local session."""

    STARTED = "started"
    RUNNING = "running"
    IDLE = "idle"
    ERROR = "error"
    COMPLETED = "completed"
    STOPPED = "stopped"


_SESSION_TO_TASK_STATUS: dict[SessionState, TaskStatus | None] = {
    SessionState.STARTED: TaskStatus.PROCESSING,
    SessionState.RUNNING: TaskStatus.PROCESSING,
    SessionState.IDLE: TaskStatus.PENDING,
    SessionState.ERROR: TaskStatus.ERROR,
    SessionState.COMPLETED: None,
    SessionState.STOPPED: None,
}


def map_session_state_to_task_status(state: SessionState | str) -> TaskStatus | None:
    """
    Map a session state to the task status to push.

    Returns:
        The task status, or None when the transition should not be pushed
        (including unknown states)
    """
    try:
        return _SESSION_TO_TASK_STATUS[SessionState(state)]
    except ValueError:
        return None


def detect_status_conflict(local_status: str | None, platform_status: str | None) -> bool:
    """True iff both statuses are known and they differ."""
    if not local_status or not platform_status:
        return False
    return _value(local_status) != _value(platform_status)


def _value(status: str) -> str:
    return status.value if isinstance(status, Enum) else status


class StatusSyncer:
    """
    Pushes task status updates and reports sync health.

    Example:
        >>> syncer = StatusSyncer(client)
        >>> syncer.push_session_state("task-1", SessionState.RUNNING)
        <TaskStatus.PROCESSING: 'processing'>
        >>> syncer.flush_updates()
        >>> syncer.get_sync_status().pending_updates
        0
    """

    def __init__(self, client: PlatformClient, queue: OfflineQueue | None = None) -> None:
        self.client = client
        self.queue = queue or OfflineQueue()
        self._lock = threading.Lock()
        self._last_sync: datetime | None = None
        self._is_syncing = False
        self._is_offline = False
        self._last_error = ""

    def push_status_update(self, task_id: str, status: TaskStatus | str) -> None:
        """
        Queue a status update for a task, replacing any pending one.

        Raises:
            PlatformValidationError: If either argument is empty or the
                status is not a known task status
        """
        if not task_id or not status:
            raise PlatformValidationError("taskID and status are required")
        if not is_valid_task_status(status):
            raise PlatformValidationError(f"invalid task status: {status}")

        value = TaskStatus(status).value
        self.queue.enqueue(QueuedUpdate(entity_id=task_id, field=FIELD_STATUS, value=value))
        logger.debug(f"Queued status update {task_id} -> {value}")

    def push_session_state(
        self, task_id: str, state: SessionState | str
    ) -> TaskStatus | None:
        """
        Queue the task status that corresponds to a session transition.

        Returns:
            The queued status, or None if this transition is not pushed
        """
        status = map_session_state_to_task_status(state)
        if status is None:
            logger.debug(f"Session state {state} for {task_id} is not pushed")
            return None
        self.push_status_update(task_id, status)
        return status

    def flush_updates(self, *, cancel: threading.Event | None = None) -> None:
        """
        Send every pending status update.

        Returns immediately if there is nothing to send or another flush
        is already running. The offline flag and last error reflect the
        outcome of this flush.

        Raises:
            PlatformError: The last error encountered; failed updates stay
                pending (until their retries run out)
        """
        with self._lock:
            if self._is_syncing:
                logger.debug("Flush already in progress")
                return
            if self.queue.count() == 0:
                return
            self._is_syncing = True

        error: PlatformError | None = None
        completed = False
        try:
            self.queue.flush(self.client, cancel=cancel)
            completed = True
        except RequestCancelledError:
            raise
        except PlatformError as e:
            error = e
            raise
        finally:
            with self._lock:
                self._is_syncing = False
                self._last_sync = datetime.now(timezone.utc)
                if error is not None:
                    self._is_offline = True
                    self._last_error = str(error)
                elif completed:
                    self._is_offline = False
                    self._last_error = ""

    def get_sync_status(self) -> SyncStatus:
        """Consistent snapshot of the sync state."""
        with self._lock:
            return SyncStatus(
                last_sync_time=self._last_sync,
                is_syncing=self._is_syncing,
                pending_updates=self.queue.count(),
                last_error=self._last_error,
                is_offline=self._is_offline,
                dropped_updates=self.queue.dead_letter_count(),
            )

    def pending_count(self) -> int:
        return self.queue.count()

    def mark_offline(self) -> None:
        with self._lock:
            self._is_offline = True

    def mark_online(self) -> None:
        with self._lock:
            self._is_offline = False

    @property
    def is_offline(self) -> bool:
        with self._lock:
            return self._is_offline


__all__ = [
    "SessionState",
    "StatusSyncer",
    "map_session_state_to_task_status",
    "detect_status_conflict",
]
