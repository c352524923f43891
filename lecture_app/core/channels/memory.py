"""In-process broadcast channel used between the presenter and its PiP window."""

from __future__ import annotations

import logging
from itertools import count
from threading import Lock

from lecture_app.core.channels.base import CallbackSubscription, MessageHandler, Subscription
from lecture_app.core.models import ChannelMessage
from lecture_app.utils.events import emit_channel_event

LOGGER = logging.getLogger(__name__)


class InMemoryBroadcastChannel:
    """Synchronous fan-out to handlers registered in the same process."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._handlers: dict[str, dict[int, MessageHandler]] = {}
        self._ids = count(1)

    def publish(self, topic: str, message: ChannelMessage) -> None:
        with self._lock:
            handlers = list(self._handlers.get(topic, {}).values())
        emit_channel_event("publish", topic, event=message.event, details={"receivers": len(handlers)})
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                LOGGER.exception("Handler for %s failed on %s", topic, message.event)

    def subscribe(self, topic: str, handler: MessageHandler) -> Subscription:
        with self._lock:
            handler_id = next(self._ids)
            self._handlers.setdefault(topic, {})[handler_id] = handler
        emit_channel_event("subscribe", topic)

        def remove() -> None:
            with self._lock:
                topic_handlers = self._handlers.get(topic)
                if topic_handlers is not None:
                    topic_handlers.pop(handler_id, None)
                    if not topic_handlers:
                        del self._handlers[topic]
            emit_channel_event("unsubscribe", topic)

        return CallbackSubscription(remove)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._handlers.get(topic, {}))
