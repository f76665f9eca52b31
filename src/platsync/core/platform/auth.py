"""
API key handling for the Agentic Platform.

Keys are issued as ``ap_user_<secret>`` (personal) or ``ap_team_<secret>``
(shared). This module validates and masks keys, and reads/writes them
through a :class:`SecretStore`. It never persists a key itself; the store
is supplied by the caller.
"""

from __future__ import annotations

from typing import Protocol

from platsync.core.platform.exceptions import (
    APIKeyNotConfiguredError,
    ConfigurationError,
    InvalidAPIKeyError,
)

# Secret name used to store the platform API key
PLATFORM_API_KEY_NAME = "PLATFORM_API_KEY"

API_KEY_PREFIX_USER = "ap_user_"
API_KEY_PREFIX_TEAM = "ap_team_"

# Prefix plus at least 8 characters of secret
MIN_API_KEY_LENGTH = len(API_KEY_PREFIX_USER) + 8


class SecretStore(Protocol):
    """Storage backend for secrets (keychain, file, environment...)."""

    def get_secret(self, name: str) -> str | None:
        """Return the secret value, or None when it is not stored."""
        ...

    def set_secret(self, name: str, value: str) -> None: ...

    def delete_secret(self, name: str) -> None: ...


def validate_api_key_format(key: str) -> None:
    """
    Check that an API key looks like a platform key.

    Raises:
        APIKeyNotConfiguredError: If the key is empty
        InvalidAPIKeyError: If the prefix is wrong or the key is too short
    """
    if not key:
        raise APIKeyNotConfiguredError()

    if not key.startswith((API_KEY_PREFIX_USER, API_KEY_PREFIX_TEAM)):
        raise InvalidAPIKeyError(
            f"invalid API key format: must start with '{API_KEY_PREFIX_USER}' "
            f"or '{API_KEY_PREFIX_TEAM}'"
        )

    if len(key) < MIN_API_KEY_LENGTH:
        raise InvalidAPIKeyError(
            f"API key too short: expected at least {MIN_API_KEY_LENGTH} characters"
        )


def mask_api_key(key: str) -> str:
    """
    Mask an API key for display.

    Example:
        >>> mask_api_key("ap_user_abc123xyz890")
        'ap_user_***'
        >>> mask_api_key("sk-0123456789")
        'sk-012***'
    """
    if not key:
        return ""

    for prefix in (API_KEY_PREFIX_USER, API_KEY_PREFIX_TEAM):
        if key.startswith(prefix):
            return prefix + "***"

    # Unknown format, mask most of it
    if len(key) > 6:
        return key[:6] + "***"
    return "***"


def get_api_key(store: SecretStore) -> str:
    """
    Read the stored platform API key.

    Raises:
        APIKeyNotConfiguredError: If no key is stored
        ConfigurationError: If the store cannot be read
    """
    try:
        value = store.get_secret(PLATFORM_API_KEY_NAME)
    except OSError as e:
        raise ConfigurationError(f"failed to read secret: {e}") from e
    if not value:
        raise APIKeyNotConfiguredError()
    return value


def set_api_key(store: SecretStore, key: str) -> None:
    """Validate and store the platform API key."""
    validate_api_key_format(key)
    try:
        store.set_secret(PLATFORM_API_KEY_NAME, key)
    except OSError as e:
        raise ConfigurationError(f"failed to store API key: {e}") from e


def delete_api_key(store: SecretStore) -> None:
    try:
        store.delete_secret(PLATFORM_API_KEY_NAME)
    except OSError as e:
        raise ConfigurationError(f"failed to delete API key: {e}") from e


def is_api_key_configured(store: SecretStore) -> bool:
    """Check whether a key is stored, without validating it."""
    try:
        return bool(store.get_secret(PLATFORM_API_KEY_NAME))
    except OSError as e:
        raise ConfigurationError(f"failed to check API key: {e}") from e


__all__ = [
    "PLATFORM_API_KEY_NAME",
    "API_KEY_PREFIX_USER",
    "API_KEY_PREFIX_TEAM",
    "MIN_API_KEY_LENGTH",
    "SecretStore",
    "validate_api_key_format",
    "mask_api_key",
    "get_api_key",
    "set_api_key",
    "delete_api_key",
    "is_api_key_configured",
]
