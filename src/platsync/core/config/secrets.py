"""
Secret stores for the platform API key.

The sync layer only talks to the :class:`~platsync.core.platform.auth.SecretStore`
protocol. These implementations back the CLI:

- ``EnvSecretStore``: read-only, reads the process environment
- ``FileSecretStore``: JSON file in the user config dir, mode 0600
- ``LayeredSecretStore``: reads the first store that has a value, writes
  to the last one
"""

from __future__ import annotations

import json
import os
from collections.abc import Sequence
from pathlib import Path

from platsync.core.config.loader import get_user_config_dir
from platsync.core.platform.auth import SecretStore
from platsync.core.platform.exceptions import ConfigurationError


class EnvSecretStore:
    """Secrets from environment variables (read-only)."""

    def get_secret(self, name: str) -> str | None:
        return os.environ.get(name) or None

    def set_secret(self, name: str, value: str) -> None:
        raise ConfigurationError(f"cannot store {name}: environment secrets are read-only")

    def delete_secret(self, name: str) -> None:
        raise ConfigurationError(f"cannot delete {name}: environment secrets are read-only")


class FileSecretStore:
    """
    Secrets in a JSON file readable only by the current user.

    Example:
        >>> store = FileSecretStore(tmp_path / "credentials.json")
        >>> store.set_secret("PLATFORM_API_KEY", "ap_user_0123456789")
        >>> store.get_secret("PLATFORM_API_KEY")
        'ap_user_0123456789'
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_user_config_dir() / "credentials.json"

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"corrupt secrets file {self.path}: {e}") from e
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, secrets: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(secrets, f, indent=2)
        os.chmod(self.path, 0o600)

    def get_secret(self, name: str) -> str | None:
        return self._load().get(name) or None

    def set_secret(self, name: str, value: str) -> None:
        secrets = self._load()
        secrets[name] = value
        self._save(secrets)

    def delete_secret(self, name: str) -> None:
        secrets = self._load()
        if secrets.pop(name, None) is not None:
            self._save(secrets)


class LayeredSecretStore:
    """Read from the first store with a value; write to the last store."""

    def __init__(self, stores: Sequence[SecretStore]) -> None:
        if not stores:
            raise ValueError("at least one secret store is required")
        self.stores = list(stores)

    def get_secret(self, name: str) -> str | None:
        for store in self.stores:
            if value := store.get_secret(name):
                return value
        return None

    def set_secret(self, name: str, value: str) -> None:
        self.stores[-1].set_secret(name, value)

    def delete_secret(self, name: str) -> None:
        self.stores[-1].delete_secret(name)


def default_secret_store() -> LayeredSecretStore:
    """Environment first, then the user credentials file."""
    return LayeredSecretStore([EnvSecretStore(), FileSecretStore()])


__all__ = [
    "EnvSecretStore",
    "FileSecretStore",
    "LayeredSecretStore",
    "default_secret_store",
]
