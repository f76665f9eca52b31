"""
Exceptions for the platform synchronization layer.

Exception Hierarchy:
    PlatformError (base)
    ├── ConfigurationError (missing or malformed credentials)
    │   ├── APIKeyNotConfiguredError
    │   └── InvalidAPIKeyError
    ├── PlatformValidationError (bad input, rejected before any network call)
    ├── APIError (terminal non-2xx response from the platform)
    ├── TransportError (network failure after all retries)
    └── RequestCancelledError (caller cancelled while waiting to retry)

Example:
    >>> from platsync.core.platform.exceptions import APIError
    >>> try:
    ...     client.get_task("task-1")
    ... except APIError as e:
    ...     print(f"{e.status_code}: {e.message}")
"""

from __future__ import annotations

from typing import TypeVar

E = TypeVar("E", bound="PlatformError")


class PlatformError(Exception):
    """
    Base exception for all platform errors.

    Attributes:
        message: Human-readable error message
        context: Additional context about the failure
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def with_context(self: E, operation: str) -> E:
        """
        Return a copy of this error whose text is prefixed with ``operation``.

        The copy keeps the type and every attribute, so callers can still
        catch it as ``APIError`` and read ``status_code``. Raise it
        ``from`` the original to keep the chain.

        Example:
            >>> raise e.with_context("failed to get tasks") from e
        """
        error = type(self).__new__(type(self))
        error.__dict__.update(self.__dict__)
        error.context = {**self.context, "operation": operation}
        error._prefix(operation)
        error.args = (str(error),)
        return error

    def _prefix(self, operation: str) -> None:
        self.message = f"{operation}: {self.message}"


class ConfigurationError(PlatformError):
    """Raised when the platform is not configured well enough to make a call."""


class APIKeyNotConfiguredError(ConfigurationError):
    """Raised when no API key is stored."""

    def __init__(self) -> None:
        super().__init__(
            "platform API key not configured - run 'platsync platform login'"
        )


class InvalidAPIKeyError(ConfigurationError):
    """Raised when an API key fails format validation."""


class PlatformValidationError(PlatformError, ValueError):
    """Raised for invalid input such as an empty ID or unknown task status."""


class APIError(PlatformError):
    """
    Error response returned by the platform API.

    Attributes:
        status_code: HTTP status code of the response
        message: Error message from the response body (or the raw body)
        code: Optional machine-readable error code
    """

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.code = code
        if code:
            text = f"API error {status_code} ({code}): {message}"
        else:
            text = f"API error {status_code}: {message}"
        super().__init__(text, status_code=status_code, code=code)
        # Keep the bare server message separate from the formatted text
        self.message = message
        self._text = text

    def __str__(self) -> str:
        return self._text

    def _prefix(self, operation: str) -> None:
        # message stays the server text; only the rendered form gains the prefix
        self._text = f"{operation}: {self._text}"


class TransportError(PlatformError):
    """
    Raised when a request fails after exhausting every retry attempt.

    The last underlying failure is available as ``__cause__``.

    Attributes:
        attempts: Number of attempts made before giving up
    """

    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message, attempts=attempts)
        self.attempts = attempts


class RequestCancelledError(PlatformError):
    """Raised when the caller cancels a request while it waits to retry."""

    def __init__(self, message: str = "request cancelled") -> None:
        super().__init__(message)


__all__ = [
    "PlatformError",
    "ConfigurationError",
    "APIKeyNotConfiguredError",
    "InvalidAPIKeyError",
    "PlatformValidationError",
    "APIError",
    "TransportError",
    "RequestCancelledError",
]
