"""
Exception hierarchy for the Forge deploy client.

Every error raised by the request layer or the pollers derives from
ForgeClientError so callers can catch the whole family in one place.
"""

from typing import Optional


class ForgeClientError(Exception):
    """Base class for all deploy client errors."""

    pass


class UnauthenticatedError(ForgeClientError):
    """Raised when the control plane rejects the credential (HTTP 401).

    Never retried. Callers should re-authenticate before trying again.
    """

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Unauthorized access to {url}. Please log in again.")


class RemoteError(ForgeClientError):
    """Raised for a non-2xx response other than 401.

    Carries the server's ``message`` field (empty when absent).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message or f"Request failed with status {status_code}")


class RetryableError(RemoteError):
    """Transient failure: timeout, 429 or 5xx. Only surfaces inside the retry loop."""

    pass


class MalformedResponseError(ForgeClientError):
    """Raised when a response body does not match the expected envelope or schema."""

    pass


class OperationCanceledError(ForgeClientError):
    """Raised when the session cancellation token fires. Not a failure."""

    def __init__(self, message: str = "Operation canceled"):
        super().__init__(message)


class RetriesExhaustedError(ForgeClientError):
    """Raised when every retry attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} retries: {last_error}")


class MonitoringTimeoutError(ForgeClientError):
    """Raised when a poller exceeds its configured number of checks."""

    def __init__(self, monitor: str, max_checks: int, interval: float):
        self.max_checks = max_checks
        super().__init__(
            f"{monitor} monitoring timeout after {max_checks * interval:.0f}s "
            f"({max_checks} checks)"
        )
