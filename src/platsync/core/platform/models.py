"""
Data models for the Agentic Platform.

Defines Pydantic models for the platform hierarchy
(Project -> Product -> Spec -> Task -> SubTask), task status values,
and the local sync bookkeeping (queued updates, connection and sync status).

The platform speaks camelCase JSON. Every model accepts either the
camelCase alias or the snake_case field name, and ignores keys it does
not know about.

Example:
    >>> task = Task.model_validate(
    ...     {"id": "t1", "specId": "s1", "title": "Wire login", "status": "pending"}
    ... )
    >>> task.status
    <TaskStatus.PENDING: 'pending'>
    >>> task.model_dump(by_alias=True)["specId"]
    's1'
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlatformModel(BaseModel):
    """Base model for platform payloads (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TaskStatus(str, Enum):
    """Status of a task on the platform."""

    PLANNED = "planned"
    PENDING = "pending"
    INITIALIZING = "initializing"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    TIMED_OUT = "timed_out"
    STOPPED = "stopped"
    AWAITING_FEEDBACK = "awaiting_feedback"


def is_valid_task_status(status: str | TaskStatus) -> bool:
    """Check if a status string is one of the known task statuses."""
    if isinstance(status, TaskStatus):
        return True
    return status in {s.value for s in TaskStatus}


# =============================================================================
# Hierarchy
# =============================================================================


class User(PlatformModel):
    """An authenticated user on the platform."""

    id: str
    email: str = ""
    name: str = ""
    avatar_url: str | None = None


class Team(PlatformModel):
    """A team that owns projects."""

    id: str
    name: str = ""
    slug: str = ""


class Project(PlatformModel):
    """A top-level project in the platform hierarchy."""

    id: str
    name: str = ""
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Product(PlatformModel):
    """A product within a project."""

    id: str
    project_id: str = ""
    name: str = ""
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Spec(PlatformModel):
    """A specification document within a product."""

    id: str
    product_id: str = ""
    name: str = ""
    content: str = ""
    status: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SubTask(PlatformModel):
    """A sub-task within a parent task."""

    id: str
    task_id: str = ""
    title: str = ""
    status: str = ""
    position: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value


class Task(PlatformModel):
    """
    A task derived from a specification.

    ``status`` is always a member of :class:`TaskStatus`; payloads with an
    unknown status fail validation.
    """

    id: str
    spec_id: str = ""
    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    checkpoint_mode: bool = False
    sub_tasks: list[SubTask] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =============================================================================
# Local state
# =============================================================================


class TaskAssociation(PlatformModel):
    """Link between a local worktree and a platform task."""

    task_id: str
    spec_id: str = ""
    task_title: str = ""
    spec_name: str = ""
    linked_at: datetime = Field(default_factory=_utcnow)
    worktree_dir: str = ""


class HierarchySelection(PlatformModel):
    """The user's current navigation state in the hierarchy."""

    project_id: str = ""
    product_id: str = ""
    spec_id: str = ""


class QueuedUpdate(PlatformModel):
    """
    A field-level write waiting to be sent to the platform.

    At most one queued update exists per ``(entity_id, field)``.
    """

    entity_id: str
    field: str
    value: str
    timestamp: datetime = Field(default_factory=_utcnow)
    retry_count: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.entity_id, self.field)


class ConnectionStatus(PlatformModel):
    """Current platform connection state, as seen by the connection probe."""

    connected: bool = False
    offline_mode: bool = False
    base_url: str = ""
    user: User | None = None
    error: str = ""
    last_checked: datetime | None = None


class SyncStatus(PlatformModel):
    """Read-only view of the status syncer and its pending writes."""

    last_sync_time: datetime | None = None
    is_syncing: bool = False
    pending_updates: int = 0
    last_error: str = ""
    is_offline: bool = False
    dropped_updates: int = 0


__all__ = [
    "PlatformModel",
    "TaskStatus",
    "is_valid_task_status",
    "User",
    "Team",
    "Project",
    "Product",
    "Spec",
    "SubTask",
    "Task",
    "TaskAssociation",
    "HierarchySelection",
    "QueuedUpdate",
    "ConnectionStatus",
    "SyncStatus",
]
