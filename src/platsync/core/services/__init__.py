"""
Service layer for platsync.

Services compose domain operations into clean API surfaces. Any interface
(CLI, RPC, UI bridge) calls service methods instead of reaching into core
packages directly.

Design principles:
- Methods accept typed inputs, return typed outputs, raise typed exceptions.
- No Rich, no sys.exit, no print statements. Presentation is the caller's job.
- Services are created via factory methods that accept configuration.

Modules:
    platform: PlatformService wraps core/platform/ for the UI and CLI.
"""

from platsync.core.services.platform import PlatformService

__all__ = ["PlatformService"]
