"""Unit tests for progress sinks."""

import asyncio

import pytest

from forge_deploy.services.streaming.events import ProgressEvent
from forge_deploy.services.streaming.progress_sink import (
    NullProgressSink,
    QueueProgressSink,
)


class TestQueueProgressSink:
    """Test the queue-backed sink."""

    def test_push_and_complete(self):
        sink = QueueProgressSink()
        sink.push("one")
        sink.push("two")
        sink.complete(True)

        events = sink.drain()
        assert [e.message for e in events[:2]] == ["one", "two"]
        assert events[-1].is_complete
        assert events[-1].success is True
        assert sink.completed
        assert sink.success is True

    def test_complete_is_one_shot(self):
        sink = QueueProgressSink()
        sink.complete(False)
        sink.complete(True)

        events = sink.drain()
        assert len(events) == 1
        assert sink.success is False

    def test_push_after_complete_is_ignored(self):
        sink = QueueProgressSink()
        sink.complete(True)
        sink.push("late")

        assert [e.is_complete for e in sink.drain()] == [True]

    def test_full_queue_drops_progress(self):
        sink = QueueProgressSink(maxsize=2)
        sink.push("one")
        sink.push("two")
        sink.push("three")

        assert [e.message for e in sink.drain()] == ["one", "two"]

    def test_completion_always_delivered(self):
        sink = QueueProgressSink(maxsize=2)
        sink.push("one")
        sink.push("two")
        sink.complete(False)

        events = sink.drain()
        assert [e.message for e in events[:-1]] == ["two"]
        assert events[-1].is_complete

    @pytest.mark.asyncio
    async def test_events_stream_ends_at_completion(self):
        sink = QueueProgressSink()

        async def produce():
            await asyncio.sleep(0.01)
            sink.push("working")
            sink.complete(True)

        producer = asyncio.create_task(produce())
        events = [event async for event in sink.events()]
        await producer

        assert [repr(e) for e in events] == [
            "ProgressEvent(progress, 'working')",
            "ProgressEvent(complete, success=True)",
        ]


class TestNullProgressSink:
    def test_accepts_everything(self):
        sink = NullProgressSink()
        sink.push("line")
        sink.complete(True)


def test_event_constructors():
    progress = ProgressEvent.progress("hello")
    assert progress.event_type == "progress"
    assert not progress.is_complete

    done = ProgressEvent.complete(False)
    assert done.is_complete
    assert done.success is False
    assert done.message == ""
