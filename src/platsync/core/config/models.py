"""
Configuration data models for platsync.

These models define the structure of .platsync.json and
~/.config/platsync/config.json, with validation via Pydantic.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from platsync.core.platform.client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from platsync.core.platform.probe import CONNECTION_CACHE_TTL


class DisplayMode(str, Enum):
    """Where the task panel is shown in the UI."""

    SIDEBAR = "sidebar"
    TAB = "tab"
    FLOATING = "floating"


class PlatformConfig(BaseModel):
    """
    Settings for the Agentic Platform integration.

    The API key is not part of the config; it lives in the secret store.
    """

    model_config = ConfigDict(extra="ignore")

    enabled: bool = Field(
        default=False,
        description="Whether the platform integration is turned on",
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Platform API base URL",
    )
    display_mode: DisplayMode = Field(
        default=DisplayMode.SIDEBAR,
        description="Where the task panel is displayed (sidebar, tab, floating)",
    )
    poll_interval: int = Field(
        default=30000,
        ge=1000,
        description="How often the UI refreshes task data, in milliseconds",
    )
    auto_inject_context: bool = Field(
        default=True,
        description="Inject linked task context into new sessions",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Per-request timeout in seconds",
    )
    cache_max_age: float = Field(
        default=300.0,
        ge=0,
        description="Seconds before cached hierarchy data is refetched",
    )
    connection_ttl: float = Field(
        default=CONNECTION_CACHE_TTL,
        ge=0,
        description="Seconds a connection check result is reused",
    )


class PlatsyncConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="ignore")

    platform: PlatformConfig = Field(default_factory=PlatformConfig)
