from __future__ import annotations

from itertools import count
from typing import Callable

import pytest

from lecture_app.core.channels.memory import InMemoryBroadcastChannel
from lecture_app.core.models import ChannelMessage
from lecture_app.core.settings import LectureSettings, load_settings


class _ManualTimer:
    def __init__(
        self,
        scheduler: "ManualScheduler",
        deadline: float,
        interval: float | None,
        callback: Callable[[], None],
        order: int,
    ) -> None:
        self._scheduler = scheduler
        self.deadline = deadline
        self.interval = interval
        self.callback = callback
        self.order = order
        self.cancelled = False

    def cancel(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._scheduler._timers.remove(self)


class ManualScheduler:
    """Deterministic scheduler: time only moves when a test calls ``advance``."""

    def __init__(self) -> None:
        self._now = 0.0
        self._timers: list[_ManualTimer] = []
        self._order = count()

    def now(self) -> float:
        return self._now

    def call_every(self, interval: float, callback: Callable[[], None]) -> _ManualTimer:
        if interval <= 0:
            raise ValueError("interval must be positive")
        timer = _ManualTimer(self, self._now + interval, interval, callback, next(self._order))
        self._timers.append(timer)
        return timer

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self, self._now + max(0.0, delay), None, callback, next(self._order))
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return len(self._timers)

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while True:
            due = [timer for timer in self._timers if timer.deadline <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda item: (item.deadline, item.order))
            self._now = max(self._now, timer.deadline)
            if timer.interval is None:
                timer.cancel()
            else:
                timer.deadline += timer.interval
            timer.callback()
        self._now = target


class MessageRecorder:
    """Subscriber that keeps every message it receives."""

    def __init__(self) -> None:
        self.messages: list[ChannelMessage] = []

    def __call__(self, message: ChannelMessage) -> None:
        self.messages.append(message)

    def events(self) -> list[str]:
        return [message.event for message in self.messages]

    def of(self, event: str) -> list[ChannelMessage]:
        return [message for message in self.messages if message.event == event]


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def channel() -> InMemoryBroadcastChannel:
    return InMemoryBroadcastChannel()


@pytest.fixture()
def recorder() -> MessageRecorder:
    return MessageRecorder()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture()
def make_settings() -> Callable[..., LectureSettings]:
    def factory(**overrides: object) -> LectureSettings:
        overrides.setdefault("instructor_id", "prof")
        return LectureSettings(_env_file=None, **overrides)

    return factory
