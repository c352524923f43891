"""Broadcast channel interface used by the presenter and the receivers."""

from __future__ import annotations

from typing import Callable, Protocol

from lecture_app.core.models import ChannelMessage

MessageHandler = Callable[[ChannelMessage], None]


class ChannelError(Exception):
    """Base class for relay failures."""


class UnknownEventError(ChannelError):
    """Raised when a message names an event the relay does not carry."""


class Subscription(Protocol):
    def unsubscribe(self) -> None:
        """Stop delivery. Safe to call more than once."""


class BroadcastChannel(Protocol):
    """Fire-and-forget, at-most-once fan-out keyed by topic.

    ``publish`` never waits for receivers and never reports delivery; a
    message published while nobody is subscribed is simply gone.
    """

    def publish(self, topic: str, message: ChannelMessage) -> None:
        ...

    def subscribe(self, topic: str, handler: MessageHandler) -> Subscription:
        ...


class CallbackSubscription:
    """Subscription that runs a cleanup callback exactly once."""

    def __init__(self, cleanup: Callable[[], None]) -> None:
        self._cleanup: Callable[[], None] | None = cleanup

    @property
    def active(self) -> bool:
        return self._cleanup is not None

    def unsubscribe(self) -> None:
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is not None:
            cleanup()
