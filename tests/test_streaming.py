from __future__ import annotations

from pathlib import Path
import queue
import sys
from threading import Event
import time

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from errors import ProviderError
from records import StreamEvent
from streaming import ChatStream


def _events(*contents: str, complete: bool = True):
    for content in contents:
        yield StreamEvent(content=content)
    if complete:
        yield StreamEvent(is_complete=True)


def test_stream_yields_events_then_closes() -> None:
    stream = ChatStream(_events("a", "b"))
    events = list(stream)
    assert [event.content for event in events] == ["a", "b", ""]
    assert events[-1].is_complete is True
    assert stream.closed is True
    assert stream.next_event(timeout=0.1) is None
    assert stream.join(timeout=1.0) is True


def test_stream_closes_when_source_is_exhausted_without_completion() -> None:
    stream = ChatStream(_events("only", complete=False))
    assert [event.content for event in stream] == ["only"]


def test_stream_stops_after_terminal_event() -> None:
    def source():
        yield StreamEvent(content="x")
        yield StreamEvent(is_complete=True)
        yield StreamEvent(content="never")

    stream = ChatStream(source())
    assert [event.content for event in stream] == ["x", ""]


def test_source_exception_becomes_terminal_error_event() -> None:
    def source():
        yield StreamEvent(content="partial")
        raise RuntimeError("socket closed")

    stream = ChatStream(
        source(),
        error_mapper=lambda exc: ProviderError("openai", "failed to receive stream response", exc),
    )
    events = list(stream)
    assert events[0].content == "partial"
    assert isinstance(events[-1].error, ProviderError)
    assert events[-1].is_complete is True
    assert "socket closed" in str(events[-1].error)


def test_next_event_times_out_with_queue_empty() -> None:
    release = Event()

    def source():
        release.wait(5.0)
        yield StreamEvent(is_complete=True)

    stream = ChatStream(source())
    with pytest.raises(queue.Empty):
        stream.next_event(timeout=0.05)
    release.set()
    assert stream.next_event(timeout=1.0).is_complete is True
    assert stream.next_event(timeout=1.0) is None


def test_cancel_closes_source_and_producer_exits() -> None:
    closed = Event()

    def source():
        try:
            while True:
                time.sleep(0.01)
                yield StreamEvent(content="tick")
        finally:
            closed.set()

    stream = ChatStream(source(), buffer_size=1)
    assert stream.next_event(timeout=1.0).content == "tick"
    stream.cancel()
    assert stream.cancelled is True
    assert stream.join(timeout=2.0) is True
    assert closed.is_set()


def test_parent_cancel_event_cancels_stream() -> None:
    parent = Event()
    parent.set()
    stream = ChatStream(_events("a"), cancel_event=parent)
    assert stream.cancelled is True
    assert stream.join(timeout=2.0) is True
