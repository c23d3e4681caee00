from __future__ import annotations

import logging
import queue
from threading import Event, Thread
import time
from typing import Callable, Iterator

from records import StreamEvent


logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 64
PUT_RETRY_INTERVAL_S = 0.05

ErrorMapper = Callable[[BaseException], BaseException]

_CLOSED = object()


class ChatStream:
    """Single-pass sequence of StreamEvents fed by a background producer thread.

    The producer drains ``source`` into a bounded queue and closes the stream
    after a terminal event, a source exception (turned into a terminal error
    event through ``error_mapper``), exhaustion of the source, or cancellation.
    Consumers call ``next_event`` until it returns None, or ``cancel``.
    """

    def __init__(
        self,
        source: Iterator[StreamEvent],
        *,
        error_mapper: ErrorMapper | None = None,
        cancel_event: Event | None = None,
        clock: Callable[[], float] = time.time,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        name: str = "chat-stream",
    ) -> None:
        self._source = source
        self._error_mapper = error_mapper
        self._parent_cancel = cancel_event
        self._clock = clock
        self._queue: queue.Queue[object] = queue.Queue(maxsize=buffer_size)
        self._cancelled = Event()
        self._closed = False
        self._thread = Thread(target=self._produce, name=name, daemon=True)
        self._thread.start()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent_cancel is not None and self._parent_cancel.is_set()

    @property
    def closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        self._cancelled.set()

    def join(self, timeout: float | None = None) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def next_event(self, timeout: float | None = None) -> StreamEvent | None:
        """Return the next event, or None once the stream is closed.

        Raises ``queue.Empty`` if nothing arrives within ``timeout``.
        """
        if self._closed:
            return None
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            self._closed = True
            return None
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[StreamEvent]:
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event

    def _produce(self) -> None:
        try:
            for event in self._source:
                if self.cancelled:
                    break
                if not self._put(event):
                    break
                if event.is_terminal:
                    break
        except Exception as exc:  # noqa: BLE001
            error = self._error_mapper(exc) if self._error_mapper else exc
            logger.debug("Stream source failed: %s", error)
            self._put(
                StreamEvent(is_complete=True, timestamp=self._clock(), error=error)
            )
        finally:
            close = getattr(self._source, "close", None)
            if close is not None:
                try:
                    close()
                except Exception:  # noqa: BLE001
                    logger.debug("Failed to close stream source", exc_info=True)
            self._put_closed()

    def _put(self, item: object) -> bool:
        while not self.cancelled:
            try:
                self._queue.put(item, timeout=PUT_RETRY_INTERVAL_S)
                return True
            except queue.Full:
                continue
        return False

    def _put_closed(self) -> None:
        # The sentinel must land even after cancellation so that a consumer
        # still draining the queue observes closure.
        while True:
            try:
                self._queue.put(_CLOSED, timeout=PUT_RETRY_INTERVAL_S)
                return
            except queue.Full:
                if self.cancelled:
                    self._drop_one()

    def _drop_one(self) -> None:
        try:
            self._queue.get_nowait()
        except queue.Empty:
            pass
