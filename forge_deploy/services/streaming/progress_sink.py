"""
Progress sink: the only channel between pollers and whatever renders progress.

Pollers call ``push`` and ``complete`` from their own task; a renderer running
in another task consumes ``QueueProgressSink.events()``. Producers never block
on the consumer.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional

from forge_deploy.services.streaming.events import ProgressEvent

logger = logging.getLogger(__name__)


class ProgressSink(ABC):
    """Receiver for human-readable progress lines and the final outcome."""

    @abstractmethod
    def push(self, line: str) -> None:
        """Report one progress line."""

    @abstractmethod
    def complete(self, success: bool) -> None:
        """Report that the session reached a terminal state."""


class NullProgressSink(ProgressSink):
    """Sink that only logs, for callers with no renderer."""

    def push(self, line: str) -> None:
        logger.debug(f"progress: {line}")

    def complete(self, success: bool) -> None:
        logger.debug(f"progress complete: success={success}")


class QueueProgressSink(ProgressSink):
    """Sink backed by an asyncio.Queue.

    With a bounded queue, progress lines are dropped when the consumer falls
    behind, but the completion event always gets through.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=maxsize)
        self._success: Optional[bool] = None

    @property
    def completed(self) -> bool:
        return self._success is not None

    @property
    def success(self) -> Optional[bool]:
        return self._success

    def push(self, line: str) -> None:
        if self.completed:
            logger.debug(f"Ignoring progress after completion: {line}")
            return
        try:
            self._queue.put_nowait(ProgressEvent.progress(line))
        except asyncio.QueueFull:
            logger.warning(f"Progress queue full, dropping line: {line}")

    def complete(self, success: bool) -> None:
        if self.completed:
            return
        self._success = success
        event = ProgressEvent.complete(success)
        if self._queue.full():
            dropped = self._queue.get_nowait()
            logger.warning(f"Progress queue full, dropping {dropped!r} for completion")
        self._queue.put_nowait(event)

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events until (and including) the completion event."""
        while True:
            event = await self._queue.get()
            yield event
            if event.is_complete:
                break

    def drain(self) -> List[ProgressEvent]:
        """Return every event currently queued without waiting."""
        events = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events
