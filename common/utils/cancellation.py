"""Cooperative cancellation shared by every wait in a deployment session."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from common.exception.exceptions import OperationCanceledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation signal backed by an asyncio.Event.

    Backoff waits and poll-tick sleeps go through ``wait`` so that ``cancel``
    unblocks them on the next loop iteration.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        if not self._event.is_set():
            logger.info("Cancellation requested")
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCanceledError()

    async def wait(self, delay: float) -> None:
        """Sleep for ``delay`` seconds unless cancelled first.

        Raises:
            OperationCanceledError: If the token fires before or during the wait
        """
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise OperationCanceledError()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable``, abandoning it if the token fires first.

        Raises:
            OperationCanceledError: If cancelled before the awaitable completes
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCanceledError()
        work = asyncio.ensure_future(awaitable)
        cancel_wait = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            cancel_wait.cancel()
        if work.done():
            return work.result()
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise OperationCanceledError()
