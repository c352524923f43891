"""Local countdown interpolation shared by the student receiver and the PiP mirror."""

from __future__ import annotations

import logging
from typing import Callable

from lecture_app.constants.timer_constants import TICK_SECONDS
from lecture_app.core.channels.base import BroadcastChannel, Subscription
from lecture_app.core.models import ChannelMessage
from lecture_app.core.scheduling import Scheduler, TimerHandle
from lecture_app.core.urgency import UrgencyLevel, classify_urgency, format_countdown

LOGGER = logging.getLogger(__name__)

Listener = Callable[[], None]


class LocalCountdown:
    """Decaying copy of the presenter's countdown.

    ``sync`` overwrites the value and restarts the one-second decrement, so the
    next local tick lands a full second after the broadcast. The value never
    drops below zero and the timer stops once it gets there.
    """

    def __init__(self, scheduler: Scheduler, on_tick: Listener, tick_seconds: float = TICK_SECONDS) -> None:
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._tick_seconds = tick_seconds
        self._handle: TimerHandle | None = None
        self.value: int = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    def sync(self, value: int, *, running: bool = True) -> None:
        self.stop()
        self.value = max(0, int(value))
        if running and self.value > 0:
            self._handle = self._scheduler.call_every(self._tick_seconds, self._tick)

    def _tick(self) -> None:
        if self.value > 0:
            self.value -= 1
        if self.value == 0:
            self.stop()
        self._on_tick()

    def stop(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()


class FlashFlag:
    """Transient visual flag that clears itself after a fixed duration."""

    def __init__(self, scheduler: Scheduler, duration: float, on_change: Listener) -> None:
        self._scheduler = scheduler
        self._duration = duration
        self._on_change = on_change
        self._handle: TimerHandle | None = None
        self.active = False

    def trigger(self) -> None:
        self.cancel()
        self.active = True
        self._handle = self._scheduler.call_later(self._duration, self._clear)

    def _clear(self) -> None:
        self._handle = None
        self.active = False
        self._on_change()

    def cancel(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()


class CountdownView:
    """Base for components that subscribe to a topic and render a local countdown.

    Owns the subscription, the decrement timer and the flash timer; ``dispose``
    releases all three together so no orphaned timer keeps running after the
    owning view is gone.
    """

    def __init__(self, channel: BroadcastChannel, topic: str, scheduler: Scheduler, *, flash_seconds: float) -> None:
        self._channel = channel
        self.topic = topic
        self._scheduler = scheduler
        self._subscription: Subscription | None = None
        self._listeners: list[Listener] = []
        self._disposed = False
        self._countdown = LocalCountdown(scheduler, self._on_countdown_tick)
        self._flash = FlashFlag(scheduler, flash_seconds, self._notify)

    # --- Lifecycle ---

    def start(self) -> "CountdownView":
        if self._disposed:
            raise RuntimeError("A disposed view cannot be restarted.")
        if self._subscription is None:
            self._subscription = self._channel.subscribe(self.topic, self.handle_message)
        return self

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()
        self._countdown.stop()
        self._flash.cancel()
        self._listeners.clear()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __enter__(self) -> "CountdownView":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    # --- Listeners ---

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        if self._disposed:
            return
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                LOGGER.exception("Listener on %s failed", self.topic)

    def _on_countdown_tick(self) -> None:
        self._notify()

    # --- Messages ---

    def handle_message(self, message: ChannelMessage) -> None:
        if self._disposed:
            return
        try:
            self._apply(message)
        except ValueError as exc:
            LOGGER.warning("Ignoring malformed %s on %s: %s", message.event, self.topic, exc)

    def _apply(self, message: ChannelMessage) -> None:
        raise NotImplementedError

    # --- Derived display values ---

    @property
    def countdown(self) -> int:
        return self._countdown.value

    @property
    def flash(self) -> bool:
        return self._flash.active

    @property
    def urgency(self) -> UrgencyLevel:
        return classify_urgency(self._countdown.value)

    @property
    def display_text(self) -> str:
        return format_countdown(self._countdown.value)
