from forge_deploy.services.streaming.events import ProgressEvent
from forge_deploy.services.streaming.progress_sink import (
    NullProgressSink,
    ProgressSink,
    QueueProgressSink,
)

__all__ = ["ProgressEvent", "ProgressSink", "NullProgressSink", "QueueProgressSink"]
