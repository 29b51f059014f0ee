from __future__ import annotations

import itertools
import queue
import threading

from sessionstress.runner.types import StatusEvent

DEFAULT_CHANNEL_SIZE = 1024


class StatusChannel:
    """
    Bounded many-producer, single-consumer queue of status events.

    ``publish`` never blocks. When the queue is full the event is kept in an
    overflow map holding only the newest event per (username, index); the
    consumer merges it back with ``drain_overflow``. Every event is stamped
    with a sequence number so the consumer can discard stale ones.
    """

    def __init__(self, maxsize: int = DEFAULT_CHANNEL_SIZE) -> None:
        self._queue: queue.Queue[tuple[int, StatusEvent]] = queue.Queue(maxsize=maxsize)
        self._sequence = itertools.count(1)
        # Guards _sequence and _overflow.
        self._lock = threading.Lock()
        self._overflow: dict[tuple[str, int], tuple[int, StatusEvent]] = {}

    def publish(self, event: StatusEvent) -> None:
        with self._lock:
            item = (next(self._sequence), event)
            try:
                self._queue.put_nowait(item)
            except queue.Full:
                self._overflow[event.key] = item

    def get(self, timeout: float | None = None) -> tuple[int, StatusEvent] | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_nowait(self) -> tuple[int, StatusEvent] | None:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain_overflow(self) -> list[tuple[int, StatusEvent]]:
        with self._lock:
            items = sorted(self._overflow.values(), key=lambda item: item[0])
            self._overflow.clear()
        return items
