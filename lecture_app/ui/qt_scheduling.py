"""QTimer-backed scheduler for countdown components living on the Qt thread."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import QElapsedTimer, QObject, Qt, QTimer


class _QtTimerHandle:
    def __init__(self, scheduler: "QtScheduler", timer: QTimer) -> None:
        self._scheduler = scheduler
        self._timer: QTimer | None = timer

    def cancel(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.stop()
        self._scheduler._release(self)
        timer.deleteLater()


class QtScheduler:
    """Scheduler whose callbacks run from the Qt event loop."""

    def __init__(self, parent: QObject | None = None) -> None:
        self._parent = parent
        self._clock = QElapsedTimer()
        self._clock.start()
        # QTimers without a parent are kept alive here until cancelled or fired.
        self._active: set[_QtTimerHandle] = set()

    def now(self) -> float:
        return self._clock.elapsed() / 1000.0

    def _make_timer(self, seconds: float, single_shot: bool) -> QTimer:
        timer = QTimer(self._parent)
        timer.setTimerType(Qt.TimerType.PreciseTimer)
        timer.setSingleShot(single_shot)
        timer.setInterval(max(0, int(seconds * 1000)))
        return timer

    def call_every(self, interval: float, callback: Callable[[], None]) -> _QtTimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        timer = self._make_timer(interval, single_shot=False)
        handle = _QtTimerHandle(self, timer)
        timer.timeout.connect(callback)
        self._active.add(handle)
        timer.start()
        return handle

    def call_later(self, delay: float, callback: Callable[[], None]) -> _QtTimerHandle:
        timer = self._make_timer(delay, single_shot=True)
        handle = _QtTimerHandle(self, timer)

        def fire() -> None:
            handle.cancel()
            callback()

        timer.timeout.connect(fire)
        self._active.add(handle)
        timer.start()
        return handle

    def _release(self, handle: _QtTimerHandle) -> None:
        self._active.discard(handle)

    def cancel_all(self) -> None:
        for handle in list(self._active):
            handle.cancel()
