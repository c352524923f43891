"""Timer scheduling abstraction for the single-threaded countdown components.

Every countdown component receives a :class:`Scheduler` instead of creating
timers itself. The desktop app passes a Qt-backed scheduler, the terminal
watcher an asyncio-backed one, and tests a manual clock. Callbacks always run
on the thread that owns the scheduler's event loop.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Stop the timer. Calling it more than once is harmless."""


class Scheduler(Protocol):
    def now(self) -> float:
        """Monotonic time in seconds."""

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` every ``interval`` seconds until cancelled."""

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds unless cancelled."""


class _AsyncioRepeatingHandle:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callback) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._next_at = loop.time() + interval
        self._handle = loop.call_at(self._next_at, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Schedule against the ideal deadline so ticks do not drift.
        self._next_at += self._interval
        self._handle = self._loop.call_at(self._next_at, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()


class _AsyncioOneShotHandle:
    def __init__(self, loop: asyncio.AbstractEventLoop, delay: float, callback: Callback) -> None:
        self._handle = loop.call_later(delay, callback)

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        return _AsyncioRepeatingHandle(self.loop, interval, callback)

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        return _AsyncioOneShotHandle(self.loop, max(0.0, delay), callback)
