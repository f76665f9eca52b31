"""
Offline write queue.

Buffers field-level writes (currently task status) that could not be sent
yet. Repeated writes to the same ``(entity_id, field)`` collapse into one
entry holding the latest value, so the queue never grows from edits to a
single field.

A flush sends every entry outside the lock. Failed entries are kept with an
incremented retry count until they reach ``MAX_FLUSH_RETRIES``; then they are
moved to a dead-letter list and logged instead of being retried again.

Example:
    >>> queue = OfflineQueue()
    >>> queue.enqueue(QueuedUpdate(entity_id="task-1", field="status", value="processing"))
    >>> queue.enqueue(QueuedUpdate(entity_id="task-1", field="status", value="pending"))
    >>> queue.count()
    1
    >>> queue.flush(client)
"""

from __future__ import annotations

import itertools
import logging
import threading

from platsync.core.platform.client import PlatformClient
from platsync.core.platform.exceptions import (
    PlatformError,
    PlatformValidationError,
    RequestCancelledError,
)
from platsync.core.platform.models import QueuedUpdate

logger = logging.getLogger(__name__)

# Failed flush attempts after which an entry is dead-lettered
MAX_FLUSH_RETRIES = 3

FIELD_STATUS = "status"

UpdateKey = tuple[str, str]


class OfflineQueue:
    """
    Thread-safe, deduplicating queue of pending field updates.

    Every entry carries a revision number that changes whenever it is
    replaced. When a flush finishes it only touches entries whose revision
    is unchanged, so writes enqueued during the flush are never lost or
    overwritten by stale results.
    """

    def __init__(self, max_retries: int = MAX_FLUSH_RETRIES) -> None:
        self.max_retries = max_retries
        self._lock = threading.Lock()
        self._updates: dict[UpdateKey, QueuedUpdate] = {}
        self._revisions: dict[UpdateKey, int] = {}
        self._dead_letters: list[QueuedUpdate] = []
        self._counter = itertools.count(1)

    def enqueue(self, update: QueuedUpdate) -> None:
        """
        Add an update, replacing any pending one for the same entity and field.

        A replaced entry keeps its position in the queue.
        """
        update = update.model_copy()
        with self._lock:
            self._updates[update.key] = update
            self._revisions[update.key] = next(self._counter)

    def count(self) -> int:
        with self._lock:
            return len(self._updates)

    def pending(self) -> list[QueuedUpdate]:
        """Copies of the pending updates, in queue order."""
        with self._lock:
            return [update.model_copy() for update in self._updates.values()]

    def clear(self) -> None:
        """Discard every pending update."""
        with self._lock:
            self._updates = {}
            self._revisions = {}

    def dead_letters(self) -> list[QueuedUpdate]:
        """Updates dropped after exhausting their retries."""
        with self._lock:
            return [update.model_copy() for update in self._dead_letters]

    def dead_letter_count(self) -> int:
        with self._lock:
            return len(self._dead_letters)

    def clear_dead_letters(self) -> None:
        with self._lock:
            self._dead_letters = []

    @staticmethod
    def _send(
        client: PlatformClient, update: QueuedUpdate, cancel: threading.Event | None
    ) -> None:
        if update.field == FIELD_STATUS:
            client.update_task_status(update.entity_id, update.value, cancel=cancel)
            return
        raise PlatformValidationError(f"unknown field: {update.field}")

    def flush(self, client: PlatformClient, *, cancel: threading.Event | None = None) -> None:
        """
        Send every pending update.

        Every entry is attempted even if earlier ones fail. Delivered
        entries are removed; failed ones stay queued with ``retry_count``
        incremented, or are dead-lettered once it reaches ``max_retries``.

        Raises:
            PlatformError: The last error encountered, after all entries
                were attempted
            RequestCancelledError: If cancelled; entries not yet attempted
                stay queued unchanged
        """
        with self._lock:
            snapshot = [
                (key, update.model_copy(), self._revisions[key])
                for key, update in self._updates.items()
            ]

        if not snapshot:
            return

        logger.debug(f"Flushing {len(snapshot)} queued updates")
        results: dict[UpdateKey, QueuedUpdate | None] = {}
        last_error: PlatformError | None = None
        cancelled: RequestCancelledError | None = None

        for key, update, _ in snapshot:
            try:
                self._send(client, update, cancel)
            except RequestCancelledError as e:
                cancelled = e
                break
            except PlatformError as e:
                last_error = e
                update.retry_count += 1
                logger.debug(
                    f"Update {update.entity_id}.{update.field} failed "
                    f"(attempt {update.retry_count}/{self.max_retries}): {e}"
                )
                results[key] = update
            else:
                results[key] = None

        with self._lock:
            for key, _, revision in snapshot:
                if key not in results or self._revisions.get(key) != revision:
                    # Not attempted, or replaced/cleared while we were sending
                    continue

                outcome = results[key]
                if outcome is not None and outcome.retry_count < self.max_retries:
                    self._updates[key] = outcome
                    continue

                del self._updates[key]
                del self._revisions[key]
                if outcome is not None:
                    self._dead_letters.append(outcome)
                    logger.warning(
                        f"Dropping update {outcome.entity_id}.{outcome.field}="
                        f"{outcome.value} after {outcome.retry_count} failed attempts"
                    )

        if cancelled is not None:
            raise cancelled
        if last_error is not None:
            raise last_error


__all__ = ["MAX_FLUSH_RETRIES", "FIELD_STATUS", "OfflineQueue"]
