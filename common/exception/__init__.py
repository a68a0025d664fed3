"""Exception types shared by the deploy client."""

from common.exception.exceptions import (
    ForgeClientError,
    MalformedResponseError,
    MonitoringTimeoutError,
    OperationCanceledError,
    RemoteError,
    RetriesExhaustedError,
    RetryableError,
    UnauthenticatedError,
)

__all__ = [
    "ForgeClientError",
    "UnauthenticatedError",
    "RemoteError",
    "RetryableError",
    "MalformedResponseError",
    "OperationCanceledError",
    "RetriesExhaustedError",
    "MonitoringTimeoutError",
]
