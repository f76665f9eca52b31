"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import PlatsyncConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: PlatsyncConfig | None = None

_FALSE_VALUES = ("false", "0", "no", "off", "")


def get_xdg_config_home() -> Path:
    """Get XDG config home directory (defaults to ~/.config)."""
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_dir() -> Path:
    return get_xdg_config_home() / "platsync"


def get_user_config_path() -> Path:
    """Path to ~/.config/platsync/config.json (or XDG equivalent)."""
    return get_user_config_dir() / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Path to .platsync.json in the project root."""
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".platsync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries; values in ``override`` win.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'x': 10, 'y': 2}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    A broken config file is logged and skipped.
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to parse config at {path}: {e}")
        return None

    if isinstance(data, dict):
        return data
    return None


def _set_platform(result: dict[str, Any], key: str, value: Any) -> None:
    platform = result.setdefault("platform", {})
    platform[key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        PLATSYNC_ENABLED - overrides platform.enabled
        PLATSYNC_BASE_URL - overrides platform.base_url
        PLATSYNC_TIMEOUT - overrides platform.timeout (seconds)
        PLATSYNC_CACHE_MAX_AGE - overrides platform.cache_max_age (seconds)
    """
    result = copy.deepcopy(config_dict)

    if enabled_str := os.environ.get("PLATSYNC_ENABLED"):
        _set_platform(result, "enabled", enabled_str.lower() not in _FALSE_VALUES)

    if base_url := os.environ.get("PLATSYNC_BASE_URL"):
        _set_platform(result, "base_url", base_url)

    for env_name, key in (
        ("PLATSYNC_TIMEOUT", "timeout"),
        ("PLATSYNC_CACHE_MAX_AGE", "cache_max_age"),
    ):
        if raw := os.environ.get(env_name):
            try:
                _set_platform(result, key, float(raw))
            except ValueError:
                logger.warning(f"Invalid {env_name} value '{raw}', ignoring")

    return result


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> PlatsyncConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (PLATSYNC_*)
        2. Project config (.platsync.json)
        3. User config (~/.config/platsync/config.json)
        4. Model defaults

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged: dict[str, Any] = {}

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = PlatsyncConfig(**merged)
    _config_cache = config
    return config


def clear_cache() -> None:
    """Forget the cached configuration (used by tests)."""
    global _config_cache
    _config_cache = None
