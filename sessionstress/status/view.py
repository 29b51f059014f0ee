from __future__ import annotations

import sys
import threading
import time
from typing import Callable, TextIO

from sessionstress.runner.types import StatusEvent

from .channel import StatusChannel

CLEAR_SCREEN = "\033[2J"
CURSOR_HOME = "\033[H"
CLEAR_LINE = "\033[K"
HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"


def format_duration(seconds: float) -> str:
    total = max(int(round(seconds)), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class LiveView:
    """
    Terminal status board fed by a StatusChannel.

    One thread consumes the channel and owns all render state. It repaints
    after every event and on every tick, rewriting only the lines that
    changed since the previous paint.
    """

    def __init__(
        self,
        channel: StatusChannel,
        stream: TextIO | None = None,
        tick_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._channel = channel
        self._stream = stream if stream is not None else sys.stdout
        self._tick = tick_seconds
        self._clock = clock
        self._started_at = clock()
        self._latest: dict[tuple[str, int], tuple[int, StatusEvent]] = {}
        self._last_output: list[str] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._started_at = self._clock()
        self._stream.write(CLEAR_SCREEN + HIDE_CURSOR)
        self._stream.flush()

        thread = threading.Thread(target=self._loop, name="status-view", daemon=True)
        thread.start()
        self._thread = thread

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join()
            self._thread = None
        self.drain()
        self.paint()
        self._stream.write(SHOW_CURSOR)
        self._stream.flush()

    def apply(self, item: tuple[int, StatusEvent]) -> None:
        sequence, event = item
        current = self._latest.get(event.key)
        if current is not None and current[0] > sequence:
            return
        self._latest[event.key] = item

    def drain(self) -> None:
        while (item := self._channel.get_nowait()) is not None:
            self.apply(item)
        for item in self._channel.drain_overflow():
            self.apply(item)

    def snapshot(self) -> dict[tuple[str, int], StatusEvent]:
        return {key: event for key, (_, event) in sorted(self._latest.items())}

    def render_lines(self, now: float | None = None) -> list[str]:
        if now is None:
            now = self._clock()

        lines = [
            f"Session Stress Test Status - Elapsed Time: {format_duration(now - self._started_at)}",
            "",
        ]

        by_user: dict[str, list[StatusEvent]] = {}
        for (username, _), event in self.snapshot().items():
            by_user.setdefault(username, []).append(event)

        for username in sorted(by_user):
            events = by_user[username]
            lines.append(f"Sessions for user {username} ({len(events)})")
            for event in events:
                lines.append(f"Session {event.session_index + 1}:")
                lines.append(f"    Status - {event.state.value}")
                lines.append(f"    Duration - {format_duration(event.elapsed)}")
            lines.append("")

        return lines

    def paint(self) -> None:
        output = self.render_lines()
        parts = [CURSOR_HOME]
        for i, line in enumerate(output):
            if i >= len(self._last_output) or line != self._last_output[i]:
                parts.append(CLEAR_LINE + line)
            parts.append("\n")

        for _ in range(len(output), len(self._last_output)):
            parts.append(CLEAR_LINE + "\n")

        self._stream.write("".join(parts))
        self._stream.flush()
        self._last_output = output

    def _loop(self) -> None:
        next_tick = self._clock() + self._tick
        while not self._stop_event.is_set():
            timeout = max(next_tick - self._clock(), 0.0)
            item = self._channel.get(timeout=timeout)
            if item is not None:
                self.apply(item)
                self.drain()
            else:
                for overflow in self._channel.drain_overflow():
                    self.apply(overflow)
            if self._clock() >= next_tick:
                next_tick = self._clock() + self._tick
            self.paint()
