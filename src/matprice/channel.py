from __future__ import annotations

import queue
from typing import Generic, TypeVar

T = TypeVar("T")


class Channel(Generic[T]):
    """FIFO event channel between provider callbacks and the UI thread.

    Producers may publish from any thread; the consumer drains on its own
    thread, so events are applied in delivery order by a single writer.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[T] = queue.SimpleQueue()

    def publish(self, event: T) -> None:
        self._queue.put(event)

    def drain(self) -> list[T]:
        events: list[T] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def empty(self) -> bool:
        return self._queue.empty()
