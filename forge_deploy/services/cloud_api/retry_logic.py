"""Retry classification and backoff for control-plane requests."""

import random
from typing import Optional

import httpx

from common.exception.exceptions import RemoteError, RetryableError

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
JITTER_DIVISOR = 2


def is_retryable_status(status_code: Optional[int]) -> bool:
    """Check if an HTTP status code marks a transient failure."""
    return status_code in RETRYABLE_STATUS_CODES


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error raised by a single attempt should be retried.

    Timeouts and RetryableError (429 / 5xx) are retried. Everything else,
    including 401 and other non-2xx responses, is fatal.
    """
    if isinstance(error, httpx.TimeoutException):
        return True
    if isinstance(error, RetryableError):
        return True
    if isinstance(error, RemoteError):
        return is_retryable_status(error.status_code)
    return False


def base_backoff(base_delay: float, attempt: int) -> float:
    """Non-jittered backoff for a 0-indexed attempt: ``base * 2**attempt``."""
    return base_delay * (2**attempt)


def backoff_with_jitter(
    base_delay: float, attempt: int, rng: Optional[random.Random] = None
) -> float:
    """Exponential backoff plus up to half of it again as random jitter."""
    backoff = base_backoff(base_delay, attempt)
    uniform = rng.uniform if rng is not None else random.uniform
    return backoff + uniform(0, backoff / JITTER_DIVISOR)


__all__ = [
    "RETRYABLE_STATUS_CODES",
    "is_retryable_status",
    "is_retryable_error",
    "base_backoff",
    "backoff_with_jitter",
]
