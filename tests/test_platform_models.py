"""Tests for platform data models."""

import pytest
from pydantic import ValidationError

from platsync.core.platform import (
    ConnectionStatus,
    QueuedUpdate,
    SubTask,
    Task,
    TaskAssociation,
    TaskStatus,
    is_valid_task_status,
)


class TestTaskStatus:
    def test_all_values(self) -> None:
        assert [s.value for s in TaskStatus] == [
            "planned",
            "pending",
            "initializing",
            "processing",
            "completed",
            "error",
            "timed_out",
            "stopped",
            "awaiting_feedback",
        ]

    @pytest.mark.parametrize("value", ["pending", "timed_out", TaskStatus.COMPLETED])
    def test_valid(self, value) -> None:
        assert is_valid_task_status(value)

    @pytest.mark.parametrize("value", ["", "done", "PENDING", "in_progress"])
    def test_invalid(self, value: str) -> None:
        assert not is_valid_task_status(value)


class TestWireFormat:
    """Tests for camelCase payload handling."""

    def test_task_from_camel_case(self) -> None:
        task = Task.model_validate(
            {
                "id": "t1",
                "specId": "s1",
                "title": "Wire login",
                "status": "processing",
                "checkpointMode": True,
                "subTasks": [{"id": "st1", "taskId": "t1", "status": "completed"}],
                "createdAt": "2026-01-02T03:04:05Z",
                "somethingNew": "ignored",
            }
        )
        assert task.spec_id == "s1"
        assert task.status is TaskStatus.PROCESSING
        assert task.checkpoint_mode
        assert task.sub_tasks[0].is_completed
        assert task.created_at is not None and task.created_at.year == 2026

    def test_task_from_snake_case(self) -> None:
        task = Task(id="t1", spec_id="s1")
        assert task.model_dump(by_alias=True)["specId"] == "s1"
        assert task.status is TaskStatus.PENDING

    def test_unknown_task_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Task.model_validate({"id": "t1", "status": "exploded"})

    def test_sub_task_not_completed(self) -> None:
        assert not SubTask(id="st1", status="pending").is_completed

    def test_connection_status_dump(self) -> None:
        data = ConnectionStatus(connected=True, base_url="https://x").model_dump(by_alias=True)
        assert data["offlineMode"] is False
        assert data["baseUrl"] == "https://x"


class TestLocalState:
    def test_queued_update_key(self) -> None:
        update = QueuedUpdate(entity_id="task-1", field="status", value="pending")
        assert update.key == ("task-1", "status")
        assert update.retry_count == 0
        assert update.timestamp.tzinfo is not None

    def test_task_association_round_trip(self) -> None:
        association = TaskAssociation(task_id="t1", task_title="Wire login")
        restored = TaskAssociation.model_validate_json(association.model_dump_json(by_alias=True))
        assert restored == association
