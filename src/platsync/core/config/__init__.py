"""
Configuration models and loading.

Pydantic models for platsync configuration with multi-layer merging:
defaults < user < project < env vars. The API key is kept out of the
config and read through a secret store.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_dir,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import DisplayMode, PlatformConfig, PlatsyncConfig
from .secrets import EnvSecretStore, FileSecretStore, LayeredSecretStore, default_secret_store

__all__ = [
    # Models
    "DisplayMode",
    "PlatformConfig",
    "PlatsyncConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_dir",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    # Secret stores
    "EnvSecretStore",
    "FileSecretStore",
    "LayeredSecretStore",
    "default_secret_store",
]
