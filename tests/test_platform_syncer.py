"""Tests for StatusSyncer and session-state mapping."""

import json
import threading

import httpx
import pytest

from platsync.core.platform import (
    OfflineQueue,
    PlatformValidationError,
    RequestCancelledError,
    SessionState,
    StatusSyncer,
    TaskStatus,
    TransportError,
    detect_status_conflict,
    map_session_state_to_task_status,
)

TASK_PATH = "/api/v1/tasks/task-1"


class TestSessionStateMapping:
    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            (SessionState.STARTED, TaskStatus.PROCESSING),
            (SessionState.RUNNING, TaskStatus.PROCESSING),
            (SessionState.IDLE, TaskStatus.PENDING),
            (SessionState.ERROR, TaskStatus.ERROR),
            (SessionState.COMPLETED, None),
            (SessionState.STOPPED, None),
        ],
    )
    def test_mapping(self, state: SessionState, expected: TaskStatus | None) -> None:
        assert map_session_state_to_task_status(state) is expected

    def test_string_states(self) -> None:
        assert map_session_state_to_task_status("running") is TaskStatus.PROCESSING

    def test_unknown_state(self) -> None:
        assert map_session_state_to_task_status("hibernating") is None


class TestDetectStatusConflict:
    def test_same_status(self) -> None:
        assert not detect_status_conflict("pending", "pending")

    def test_different_status(self) -> None:
        assert detect_status_conflict("pending", "processing")

    def test_empty_side_is_not_conflict(self) -> None:
        assert not detect_status_conflict("", "processing")
        assert not detect_status_conflict("pending", None)

    def test_enum_and_string_compare_by_value(self) -> None:
        assert not detect_status_conflict(TaskStatus.PENDING, "pending")
        assert detect_status_conflict(TaskStatus.ERROR, "pending")


class TestPush:
    def test_push_status_update_queues(self, client, fake_platform) -> None:
        syncer = StatusSyncer(client)

        syncer.push_status_update("task-1", TaskStatus.PROCESSING)
        syncer.push_status_update("task-1", "error")

        assert syncer.pending_count() == 1
        assert syncer.queue.pending()[0].value == "error"
        assert fake_platform.requests == []

    @pytest.mark.parametrize(("task_id", "status"), [("", "pending"), ("task-1", "")])
    def test_push_requires_both(self, client, task_id: str, status: str) -> None:
        with pytest.raises(PlatformValidationError, match="required"):
            StatusSyncer(client).push_status_update(task_id, status)

    def test_push_invalid_status(self, client) -> None:
        syncer = StatusSyncer(client)
        with pytest.raises(PlatformValidationError, match="invalid task status"):
            syncer.push_status_update("task-1", "done")
        assert syncer.pending_count() == 0

    def test_push_session_state(self, client) -> None:
        syncer = StatusSyncer(client)
        assert syncer.push_session_state("task-1", SessionState.RUNNING) is TaskStatus.PROCESSING
        assert syncer.pending_count() == 1

    def test_completed_session_not_pushed(self, client) -> None:
        syncer = StatusSyncer(client)
        assert syncer.push_session_state("task-1", SessionState.COMPLETED) is None
        assert syncer.pending_count() == 0


class TestFlush:
    def test_successful_flush(self, client, fake_platform) -> None:
        fake_platform.on("PATCH", TASK_PATH, (200, {}))
        syncer = StatusSyncer(client)
        syncer.push_session_state("task-1", SessionState.IDLE)

        syncer.flush_updates()

        status = syncer.get_sync_status()
        assert status.pending_updates == 0
        assert status.last_sync_time is not None
        assert not status.is_syncing
        assert not status.is_offline
        assert status.last_error == ""
        body = json.loads(fake_platform.calls("PATCH", TASK_PATH)[0].content)
        assert body == {"status": "pending"}

    def test_empty_queue_is_noop(self, client, fake_platform) -> None:
        syncer = StatusSyncer(client)
        syncer.flush_updates()
        assert fake_platform.requests == []
        assert syncer.get_sync_status().last_sync_time is None

    def test_failed_flush_marks_offline(self, client, fake_platform) -> None:
        fake_platform.on("PATCH", TASK_PATH, (503, {"message": "maintenance"}))
        syncer = StatusSyncer(client)
        syncer.push_status_update("task-1", "processing")

        with pytest.raises(TransportError):
            syncer.flush_updates()

        status = syncer.get_sync_status()
        assert status.is_offline
        assert "maintenance" in status.last_error
        assert status.pending_updates == 1
        assert status.last_sync_time is not None

    def test_partial_failure_keeps_only_failed_task(self, client, fake_platform) -> None:
        """Test that an accepted update is dropped and a rejected one stays queued."""
        fake_platform.on("PATCH", "/api/v1/tasks/task1", (200, {}))
        fake_platform.on("PATCH", "/api/v1/tasks/task2", (500, {"message": "boom"}))
        syncer = StatusSyncer(client)
        syncer.push_status_update("task1", "processing")
        syncer.push_status_update("task2", "pending")

        with pytest.raises(TransportError, match="failed to update task status"):
            syncer.flush_updates()

        pending = syncer.queue.pending()
        assert [(u.entity_id, u.value, u.retry_count) for u in pending] == [
            ("task2", "pending", 1)
        ]
        status = syncer.get_sync_status()
        assert status.is_offline
        assert status.pending_updates == 1
        assert len(fake_platform.calls("PATCH", "/api/v1/tasks/task1")) == 1

    def test_recovery_clears_offline(self, client, fake_platform) -> None:
        fake_platform.on("PATCH", TASK_PATH, (503, None))
        syncer = StatusSyncer(client)
        syncer.push_status_update("task-1", "processing")
        with pytest.raises(TransportError):
            syncer.flush_updates()

        fake_platform.on("PATCH", TASK_PATH, (200, {}))
        syncer.flush_updates()

        status = syncer.get_sync_status()
        assert not status.is_offline
        assert status.last_error == ""
        assert status.pending_updates == 0

    def test_dropped_updates_reported(self, client, fake_platform) -> None:
        fake_platform.on("PATCH", TASK_PATH, (500, None))
        syncer = StatusSyncer(client, OfflineQueue(max_retries=1))
        syncer.push_status_update("task-1", "processing")

        with pytest.raises(TransportError):
            syncer.flush_updates()

        status = syncer.get_sync_status()
        assert status.pending_updates == 0
        assert status.dropped_updates == 1

    def test_cancel_does_not_mark_offline(self, client, fake_platform) -> None:
        syncer = StatusSyncer(client)
        syncer.push_status_update("task-1", "processing")
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(RequestCancelledError):
            syncer.flush_updates(cancel=cancel)

        status = syncer.get_sync_status()
        assert not status.is_offline
        assert status.last_error == ""
        assert status.pending_updates == 1
        assert not status.is_syncing

    def test_concurrent_flush_returns_early(self, client, fake_platform) -> None:
        """Test that a flush started while another is running does nothing."""
        syncer = StatusSyncer(client)
        syncer.push_status_update("task-1", "processing")
        entered = threading.Event()
        release = threading.Event()

        def slow_patch(request: httpx.Request) -> httpx.Response:
            entered.set()
            release.wait(5)
            return httpx.Response(200, json={})

        fake_platform.on("PATCH", TASK_PATH, slow_patch)
        worker = threading.Thread(target=syncer.flush_updates)
        worker.start()
        assert entered.wait(5)

        assert syncer.get_sync_status().is_syncing
        syncer.flush_updates()

        release.set()
        worker.join(5)
        assert syncer.pending_count() == 0
        assert not syncer.get_sync_status().is_syncing


class TestOfflineFlag:
    def test_mark_offline_and_online(self, client) -> None:
        syncer = StatusSyncer(client)
        assert not syncer.is_offline
        syncer.mark_offline()
        assert syncer.is_offline
        assert syncer.get_sync_status().is_offline
        syncer.mark_online()
        assert not syncer.is_offline
