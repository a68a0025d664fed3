"""Progress event representation handed from pollers to renderers."""

from datetime import datetime, timezone
from typing import Optional

PROGRESS_EVENT = "progress"
COMPLETE_EVENT = "complete"


class ProgressEvent:
    """A single progress notification.

    ``progress`` events carry a human-readable line; the one ``complete`` event
    carries the final success flag and ends the stream.
    """

    def __init__(
        self,
        event_type: str,
        message: str = "",
        success: Optional[bool] = None,
    ):
        self.event_type = event_type
        self.message = message
        self.success = success
        self.timestamp = datetime.now(timezone.utc)

    @classmethod
    def progress(cls, message: str) -> "ProgressEvent":
        return cls(PROGRESS_EVENT, message=message)

    @classmethod
    def complete(cls, success: bool) -> "ProgressEvent":
        return cls(COMPLETE_EVENT, success=success)

    @property
    def is_complete(self) -> bool:
        return self.event_type == COMPLETE_EVENT

    def __repr__(self) -> str:
        if self.is_complete:
            return f"ProgressEvent(complete, success={self.success})"
        return f"ProgressEvent(progress, {self.message!r})"
