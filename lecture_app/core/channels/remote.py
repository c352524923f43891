"""HTTP channel backends for receivers running outside the presenter process.

Two subscription strategies talk to the relay API: a push backend reading the
Server-Sent Events stream and a poll backend asking for new envelopes on an
interval. :func:`detect_channel` picks one from the relay's advertised
capabilities. Both run on the caller's asyncio loop and publish with a
fire-and-forget POST.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Coroutine
from urllib.parse import quote
from uuid import uuid4

import httpx

from lecture_app.constants.network_constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    HTTP_TIMEOUT_SECONDS,
    PUSH_RECONNECT_DELAY_SECONDS,
)
from lecture_app.core.channels.base import CallbackSubscription, MessageHandler, Subscription
from lecture_app.core.channels.hub import RelayEnvelope
from lecture_app.core.channels.sse import SseDecoder
from lecture_app.core.models import ChannelMessage
from lecture_app.utils.events import emit_channel_event

LOGGER = logging.getLogger(__name__)


class _HttpChannel:
    transport_name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        client_id: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
        self._owns_client = client is None
        self._tasks: set[asyncio.Task[None]] = set()
        self.client_id = client_id or uuid4().hex

    def _topic_url(self, topic: str, suffix: str) -> str:
        return f"{self._base_url}/channels/{quote(topic, safe='')}/{suffix}"

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def publish(self, topic: str, message: ChannelMessage) -> None:
        self._spawn(self._post(topic, message))

    async def _post(self, topic: str, message: ChannelMessage) -> None:
        try:
            response = await self._client.post(self._topic_url(topic, "messages"), json=message.to_dict())
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.warning("Publish of %s to %s dropped: %s", message.event, topic, exc)

    def subscribe(self, topic: str, handler: MessageHandler) -> Subscription:
        task = self._spawn(self._run_subscription(topic, handler))
        emit_channel_event("subscribe", topic, details={"transport": self.transport_name}, level=logging.INFO)

        def stop() -> None:
            task.cancel()
            emit_channel_event("unsubscribe", topic, details={"transport": self.transport_name}, level=logging.INFO)

        return CallbackSubscription(stop)

    async def _run_subscription(self, topic: str, handler: MessageHandler) -> None:
        raise NotImplementedError

    def _deliver(self, topic: str, handler: MessageHandler, data: Any) -> int | None:
        """Hand one envelope to ``handler`` and return its cursor."""
        try:
            envelope = RelayEnvelope.from_dict(data)
        except (TypeError, ValueError, AttributeError) as exc:
            LOGGER.warning("Ignoring malformed envelope on %s: %s", topic, exc)
            return None
        try:
            handler(envelope.message)
        except Exception:
            LOGGER.exception("Handler for %s failed on %s", topic, envelope.message.event)
        return envelope.cursor

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._owns_client:
            await self._client.aclose()


class HttpPollChannel(_HttpChannel):
    """Interval-poll backend; resumes from the last cursor it saw."""

    transport_name = "poll"

    def __init__(
        self,
        base_url: str,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        client: httpx.AsyncClient | None = None,
        client_id: str | None = None,
    ) -> None:
        super().__init__(base_url, client=client, client_id=client_id)
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.poll_interval = poll_interval

    async def _run_subscription(self, topic: str, handler: MessageHandler) -> None:
        cursor: int | None = None
        while True:
            params: dict[str, Any] = {"client_id": self.client_id}
            if cursor is not None:
                params["since"] = cursor
            try:
                response = await self._client.get(self._topic_url(topic, "messages"), params=params)
                response.raise_for_status()
                body = response.json()
                if not isinstance(body, dict) or not isinstance(body.get("messages", []), list):
                    raise ValueError(f"expected an object with a message list, got {type(body).__name__}")
                for item in body.get("messages", []):
                    self._deliver(topic, handler, item)
                next_cursor = body.get("cursor")
                if isinstance(next_cursor, int) and not isinstance(next_cursor, bool):
                    cursor = next_cursor
            except (httpx.HTTPError, ValueError) as exc:
                LOGGER.warning("Poll of %s failed: %s", topic, exc)
            await asyncio.sleep(self.poll_interval)


class HttpPushChannel(_HttpChannel):
    """Server-Sent Events backend; reconnects after a delay when the stream drops."""

    transport_name = "push"

    def __init__(
        self,
        base_url: str,
        *,
        reconnect_delay: float = PUSH_RECONNECT_DELAY_SECONDS,
        client: httpx.AsyncClient | None = None,
        client_id: str | None = None,
    ) -> None:
        super().__init__(base_url, client=client, client_id=client_id)
        self.reconnect_delay = reconnect_delay

    async def _run_subscription(self, topic: str, handler: MessageHandler) -> None:
        url = self._topic_url(topic, "stream")
        timeout = httpx.Timeout(HTTP_TIMEOUT_SECONDS, read=None)
        while True:
            try:
                async with self._client.stream(
                    "GET",
                    url,
                    headers={"Accept": "text/event-stream"},
                    timeout=timeout,
                ) as response:
                    response.raise_for_status()
                    decoder = SseDecoder()
                    async for line in response.aiter_lines():
                        event = decoder.feed(line)
                        if event is not None:
                            self._handle_event(topic, handler, event.data)
                    event = decoder.feed("")
                    if event is not None:
                        self._handle_event(topic, handler, event.data)
                LOGGER.info("Stream for %s ended; reconnecting", topic)
            except httpx.HTTPError as exc:
                LOGGER.warning("Stream for %s failed: %s", topic, exc)
            await asyncio.sleep(self.reconnect_delay)

    def _handle_event(self, topic: str, handler: MessageHandler, data: str) -> None:
        try:
            parsed = json.loads(data)
        except ValueError as exc:
            LOGGER.warning("Ignoring undecodable event on %s: %s", topic, exc)
            return
        self._deliver(topic, handler, parsed)


async def detect_channel(
    base_url: str,
    *,
    client: httpx.AsyncClient | None = None,
    poll_interval: float | None = None,
) -> HttpPushChannel | HttpPollChannel:
    """Pick the push backend when the relay advertises it, otherwise poll."""
    base_url = base_url.rstrip("/")
    http_client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    try:
        response = await http_client.get(f"{base_url}/capabilities")
        response.raise_for_status()
        capabilities = response.json()
        if not isinstance(capabilities, dict):
            capabilities = {}
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.warning("Capability detection against %s failed, falling back to polling: %s", base_url, exc)
        capabilities = {}
    finally:
        if client is None:
            await http_client.aclose()

    if capabilities.get("push"):
        LOGGER.info("Using push transport for %s", base_url)
        return HttpPushChannel(base_url, client=client)

    interval = poll_interval or capabilities.get("poll_interval_seconds") or DEFAULT_POLL_INTERVAL_SECONDS
    LOGGER.info("Using poll transport for %s every %.1fs", base_url, float(interval))
    return HttpPollChannel(base_url, poll_interval=float(interval), client=client)
