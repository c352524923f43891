"""Relay hub standing in for the hosted publish-subscribe service.

The hub is shared between the presenter's Qt thread and the uvicorn thread,
so every public method takes the lock. Push subscribers on another event loop
are fed through ``call_soon_threadsafe``; pollers read from a bounded history
with a per-topic cursor.

Topics are created only by publishers and live subscribers. A topic with no
subscribers and nothing published is dropped as soon as its last subscriber
leaves, and once ``max_topics`` is reached the least recently active idle
topic makes room for a new one.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Any, Callable

from lecture_app.constants.network_constants import HUB_HISTORY_SIZE, HUB_MAX_TOPICS, POLL_AUDIENCE_WINDOW_SECONDS
from lecture_app.core.channels.base import (
    CallbackSubscription,
    MessageHandler,
    Subscription,
    UnknownEventError,
)
from lecture_app.core.models import KNOWN_EVENTS, RETAINED_EVENTS, TIMER_UPDATE, ChannelMessage, TimerSnapshot
from lecture_app.utils.events import emit_channel_event

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RelayEnvelope:
    """A published message stamped with its per-topic cursor."""

    cursor: int
    topic: str
    message: ChannelMessage
    published_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "cursor": self.cursor,
            "topic": self.topic,
            "event": self.message.event,
            "payload": dict(self.message.payload),
            "publishedAt": self.published_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RelayEnvelope":
        cursor = data.get("cursor")
        if isinstance(cursor, bool) or not isinstance(cursor, int):
            raise ValueError(f"Envelope cursor must be an integer, got {cursor!r}")
        return cls(
            cursor=cursor,
            topic=str(data.get("topic") or ""),
            message=ChannelMessage.from_dict(data),
            published_at=str(data.get("publishedAt") or ""),
        )


@dataclass(slots=True)
class PollResult:
    cursor: int
    envelopes: list[RelayEnvelope]


class _StreamSubscriber:
    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop
        self.queue: asyncio.Queue[RelayEnvelope] = asyncio.Queue()

    def deliver(self, envelope: RelayEnvelope) -> None:
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, envelope)
        except RuntimeError:
            # The subscriber's loop has shut down; the stream is already gone.
            LOGGER.debug("Dropped %s for a closed stream on %s", envelope.message.event, envelope.topic)


@dataclass(slots=True)
class _TopicState:
    history: deque[RelayEnvelope]
    last_active: float
    cursor: int = 0
    retained: dict[str, RelayEnvelope] = field(default_factory=dict)
    handlers: dict[int, MessageHandler] = field(default_factory=dict)
    streams: dict[int, _StreamSubscriber] = field(default_factory=dict)
    pollers: dict[str, float] = field(default_factory=dict)


class HubStream:
    """Live stream of envelopes for one push subscriber.

    ``retained`` holds the state messages that existed when the stream opened,
    so a new subscriber can render current state before the next broadcast.
    """

    def __init__(
        self,
        topic: str,
        subscriber: _StreamSubscriber,
        retained: list[RelayEnvelope],
        close_callback: Callable[[], None],
    ) -> None:
        self.topic = topic
        self.retained = retained
        self._subscriber = subscriber
        self._subscription = CallbackSubscription(close_callback)

    async def get(self, timeout: float | None = None) -> RelayEnvelope | None:
        """Return the next envelope, or ``None`` when ``timeout`` expires first."""
        if timeout is None:
            return await self._subscriber.queue.get()
        try:
            return await asyncio.wait_for(self._subscriber.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        self._subscription.unsubscribe()

    async def __aenter__(self) -> "HubStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class ChannelHub:
    """Thread-safe topic relay with retained state, history and audience tracking."""

    def __init__(
        self,
        *,
        history_size: int = HUB_HISTORY_SIZE,
        audience_window_seconds: float = POLL_AUDIENCE_WINDOW_SECONDS,
        max_topics: int = HUB_MAX_TOPICS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_topics < 1:
            raise ValueError(f"max_topics must be at least 1, got {max_topics}")
        self._lock = Lock()
        self._topics: dict[str, _TopicState] = {}
        self._history_size = history_size
        self._audience_window = audience_window_seconds
        self._max_topics = max_topics
        self._clock = clock
        self._ids = count(1)

    # Callers hold the lock for every helper below.

    def _state(self, topic: str) -> _TopicState:
        now = self._clock()
        state = self._topics.get(topic)
        if state is None:
            if len(self._topics) >= self._max_topics:
                self._evict_idle(now)
            state = _TopicState(history=deque(maxlen=self._history_size), last_active=now)
            self._topics[topic] = state
        state.last_active = now
        return state

    def _prune_pollers(self, state: _TopicState, now: float) -> None:
        cutoff = now - self._audience_window
        for client_id in [cid for cid, seen in state.pollers.items() if seen < cutoff]:
            del state.pollers[client_id]

    def _is_idle(self, state: _TopicState, now: float) -> bool:
        self._prune_pollers(state, now)
        return not (state.handlers or state.streams or state.pollers)

    def _evict_idle(self, now: float) -> None:
        idle = [topic for topic, state in self._topics.items() if self._is_idle(state, now)]
        if not idle:
            LOGGER.warning("Relay holds %d topics and none are idle; growing past the limit", len(self._topics))
            return
        oldest = min(idle, key=lambda topic: self._topics[topic].last_active)
        del self._topics[oldest]
        LOGGER.info("Evicted idle topic %s to stay within %d topics", oldest, self._max_topics)

    def _discard_if_unused(self, topic: str) -> None:
        state = self._topics.get(topic)
        if state is not None and not state.history and self._is_idle(state, self._clock()):
            del self._topics[topic]

    def publish(self, topic: str, message: ChannelMessage) -> RelayEnvelope:
        if message.event not in KNOWN_EVENTS:
            raise UnknownEventError(f"Unknown event '{message.event}'.")
        with self._lock:
            state = self._state(topic)
            state.cursor += 1
            envelope = RelayEnvelope(
                cursor=state.cursor,
                topic=topic,
                message=message,
                published_at=datetime.now(timezone.utc).isoformat(),
            )
            state.history.append(envelope)
            if message.event in RETAINED_EVENTS:
                state.retained[message.event] = envelope
            handlers = list(state.handlers.values())
            streams = list(state.streams.values())

        emit_channel_event(
            "relay",
            topic,
            event=message.event,
            details={"cursor": envelope.cursor, "receivers": len(handlers) + len(streams)},
        )
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                LOGGER.exception("Hub handler for %s failed on %s", topic, message.event)
        for stream in streams:
            stream.deliver(envelope)
        return envelope

    def subscribe(self, topic: str, handler: MessageHandler) -> Subscription:
        with self._lock:
            handler_id = next(self._ids)
            self._state(topic).handlers[handler_id] = handler

        def remove() -> None:
            with self._lock:
                state = self._topics.get(topic)
                if state is not None:
                    state.handlers.pop(handler_id, None)
                    self._discard_if_unused(topic)

        return CallbackSubscription(remove)

    def open_stream(self, topic: str) -> HubStream:
        """Register a push subscriber on the running event loop."""
        subscriber = _StreamSubscriber(asyncio.get_running_loop())
        with self._lock:
            stream_id = next(self._ids)
            state = self._state(topic)
            state.streams[stream_id] = subscriber
            retained = sorted(state.retained.values(), key=lambda env: env.cursor)
        emit_channel_event("stream_open", topic, level=logging.INFO)

        def remove() -> None:
            with self._lock:
                state = self._topics.get(topic)
                if state is not None:
                    state.streams.pop(stream_id, None)
                    self._discard_if_unused(topic)
            emit_channel_event("stream_close", topic, level=logging.INFO)

        return HubStream(topic, subscriber, retained, remove)

    def poll(self, topic: str, since: int | None = None, client_id: str | None = None) -> PollResult:
        """Return what a poller has not seen yet.

        A first poll (``since`` is ``None``) only returns retained state, so a
        late joiner never replays a transient ``question_sent``. If the poller
        fell further behind than the history reaches, retained state newer than
        its cursor is included to resynchronise it. Polling a topic nobody
        has published or subscribed to returns nothing and creates nothing.
        """
        with self._lock:
            state = self._topics.get(topic)
            if state is None:
                return PollResult(cursor=0, envelopes=[])
            now = self._clock()
            state.last_active = now
            if client_id:
                state.pollers[client_id] = now
            if since is None or since > state.cursor:
                envelopes = sorted(state.retained.values(), key=lambda env: env.cursor)
                return PollResult(cursor=state.cursor, envelopes=envelopes)

            selected = {env.cursor: env for env in state.history if env.cursor > since}
            oldest = state.history[0].cursor if state.history else state.cursor + 1
            if oldest > since + 1:
                for env in state.retained.values():
                    if env.cursor > since:
                        selected.setdefault(env.cursor, env)
            envelopes = [selected[key] for key in sorted(selected)]
            return PollResult(cursor=state.cursor, envelopes=envelopes)

    def audience_count(self, topic: str) -> int:
        """Live push streams plus pollers seen within the audience window."""
        with self._lock:
            state = self._topics.get(topic)
            if state is None:
                return 0
            self._prune_pollers(state, self._clock())
            return len(state.streams) + len(state.pollers)

    def latest_snapshot(self, topic: str) -> TimerSnapshot | None:
        with self._lock:
            state = self._topics.get(topic)
            envelope = state.retained.get(TIMER_UPDATE) if state is not None else None
        if envelope is None:
            return None
        return TimerSnapshot.from_payload(envelope.message.payload)

    def topics(self) -> list[str]:
        with self._lock:
            return sorted(self._topics)


class HubChannel:
    """:class:`BroadcastChannel` view of a :class:`ChannelHub` in the same process."""

    def __init__(self, hub: ChannelHub) -> None:
        self._hub = hub

    def publish(self, topic: str, message: ChannelMessage) -> None:
        self._hub.publish(topic, message)

    def subscribe(self, topic: str, handler: MessageHandler) -> Subscription:
        return self._hub.subscribe(topic, handler)
