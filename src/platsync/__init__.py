"""
Platsync - Agentic Platform synchronization layer

Talks to the remote task-tracking platform over HTTP, caches its
project hierarchy for offline use, and keeps local session state in
step with remote task status.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from platsync.core.platform.models import Task, TaskStatus

__all__ = ["Task", "TaskStatus", "__version__"]
