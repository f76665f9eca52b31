"""
Agentic Platform synchronization layer.

Talks to the platform over HTTP, caches the project hierarchy, queues
status writes while offline, and maps local session state to task status.

Components:
    PlatformClient: authenticated HTTP client with bounded retry
    TaskCache: hierarchy cache with whole-cache staleness
    ConnectionProbe: TTL-cached connectivity check
    OfflineQueue: deduplicating queue of pending field updates
    StatusSyncer: session-state to task-status bridge and sync health

Example:
    >>> from platsync.core.platform import PlatformClient, StatusSyncer, SessionState
    >>> client = PlatformClient(api_key)
    >>> syncer = StatusSyncer(client)
    >>> syncer.push_session_state("task-1", SessionState.RUNNING)
    >>> syncer.flush_updates()
"""

from platsync.core.platform.auth import (
    SecretStore,
    delete_api_key,
    get_api_key,
    is_api_key_configured,
    mask_api_key,
    set_api_key,
    validate_api_key_format,
)
from platsync.core.platform.cache import TaskCache
from platsync.core.platform.client import DEFAULT_BASE_URL, PlatformClient
from platsync.core.platform.context import (
    ContextInjection,
    format_context_brief,
    format_context_prompt,
    generate_context,
)
from platsync.core.platform.exceptions import (
    APIError,
    APIKeyNotConfiguredError,
    ConfigurationError,
    InvalidAPIKeyError,
    PlatformError,
    PlatformValidationError,
    RequestCancelledError,
    TransportError,
)
from platsync.core.platform.http import MAX_RETRIES, RETRY_DELAYS, RetryPolicy
from platsync.core.platform.models import (
    ConnectionStatus,
    HierarchySelection,
    Product,
    Project,
    QueuedUpdate,
    Spec,
    SubTask,
    SyncStatus,
    Task,
    TaskAssociation,
    TaskStatus,
    Team,
    User,
    is_valid_task_status,
)
from platsync.core.platform.offline import OfflineQueue
from platsync.core.platform.probe import ConnectionProbe
from platsync.core.platform.syncer import (
    SessionState,
    StatusSyncer,
    detect_status_conflict,
    map_session_state_to_task_status,
)

__all__ = [
    # Client
    "PlatformClient",
    "DEFAULT_BASE_URL",
    "RetryPolicy",
    "MAX_RETRIES",
    "RETRY_DELAYS",
    # Auth
    "SecretStore",
    "validate_api_key_format",
    "mask_api_key",
    "get_api_key",
    "set_api_key",
    "delete_api_key",
    "is_api_key_configured",
    # Components
    "TaskCache",
    "ConnectionProbe",
    "OfflineQueue",
    "StatusSyncer",
    "SessionState",
    "map_session_state_to_task_status",
    "detect_status_conflict",
    # Context
    "ContextInjection",
    "generate_context",
    "format_context_prompt",
    "format_context_brief",
    # Models
    "User",
    "Team",
    "Project",
    "Product",
    "Spec",
    "Task",
    "SubTask",
    "TaskStatus",
    "is_valid_task_status",
    "TaskAssociation",
    "HierarchySelection",
    "QueuedUpdate",
    "ConnectionStatus",
    "SyncStatus",
    # Exceptions
    "PlatformError",
    "ConfigurationError",
    "APIKeyNotConfiguredError",
    "InvalidAPIKeyError",
    "PlatformValidationError",
    "APIError",
    "TransportError",
    "RequestCancelledError",
]
