"""
Retry policy for platform HTTP requests.

Requests to the platform are retried on transient failures using a fixed,
increasing backoff schedule. There is no jitter: every client waits the same
1s, 2s, 4s between attempts.

Retryable:
    - Transport-level failures (connection refused, timeouts, network errors)
    - 5xx server responses

Terminal (returned immediately, never retried):
    - Every other response, including 4xx client errors

Waits between attempts are interruptible. Pass a ``threading.Event`` as
``cancel`` and set it from another thread to abort the wait; the request
then fails with :class:`RequestCancelledError` and no further attempt is made.

Example:
    >>> policy = RetryPolicy()
    >>> policy.max_attempts
    4
    >>> policy.delay_for(0), policy.delay_for(2)
    (1.0, 4.0)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence

import httpx

from platsync.core.platform.exceptions import RequestCancelledError

logger = logging.getLogger(__name__)

# Maximum number of retry attempts after the first request
MAX_RETRIES = 3

# Delay (seconds) before each retry attempt
RETRY_DELAYS: tuple[float, ...] = (1.0, 2.0, 4.0)


class RetryPolicy:
    """
    Fixed-schedule retry configuration.

    Attributes:
        max_retries: Retries allowed after the first attempt
        delays: Delay in seconds before each retry; the last value is reused
            if there are more retries than delays
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        delays: Sequence[float] = RETRY_DELAYS,
    ) -> None:
        """
        Initialize retry policy.

        Raises:
            ValueError: If parameters are invalid
        """
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if max_retries > 0 and not delays:
            raise ValueError("delays must not be empty when retries are enabled")
        if any(d < 0 for d in delays):
            raise ValueError("delays must be non-negative")

        self.max_retries = max_retries
        self.delays = tuple(float(d) for d in delays)

    @property
    def max_attempts(self) -> int:
        """Total attempts including the first one."""
        return self.max_retries + 1

    def delay_for(self, retry: int) -> float:
        """
        Delay before a retry.

        Args:
            retry: Retry number (0-indexed: 0 is the wait before attempt 2)
        """
        if retry < len(self.delays):
            return self.delays[retry]
        return self.delays[-1]

    def total_delay(self) -> float:
        """Sum of every delay the policy can wait for."""
        return sum(self.delay_for(i) for i in range(self.max_retries))


def is_retryable_status(status_code: int) -> bool:
    """Only 5xx responses are retried."""
    return 500 <= status_code < 600


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an exception raised while sending is transient.

    ``httpx.TransportError`` covers connect/read/write/pool timeouts and
    network errors. Everything else (e.g. a malformed URL or an
    unserializable body) is a programming error and is not retried.
    """
    if isinstance(exception, httpx.UnsupportedProtocol):
        return False
    return isinstance(exception, httpx.TransportError)


def wait_before_retry(delay: float, cancel: threading.Event | None = None) -> None:
    """
    Sleep before the next attempt, aborting early when cancelled.

    Raises:
        RequestCancelledError: If ``cancel`` is set before or during the wait
    """
    if cancel is None:
        time.sleep(delay)
        return

    if cancel.wait(delay):
        raise RequestCancelledError("request cancelled while waiting to retry")


def check_cancelled(cancel: threading.Event | None) -> None:
    """Raise if the caller has already cancelled."""
    if cancel is not None and cancel.is_set():
        raise RequestCancelledError()


__all__ = [
    "MAX_RETRIES",
    "RETRY_DELAYS",
    "RetryPolicy",
    "is_retryable_status",
    "is_retryable_error",
    "wait_before_retry",
    "check_cancelled",
]
