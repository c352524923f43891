"""Server-Sent Events framing for the push transport."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

KEEPALIVE_FRAME = ": keepalive\n\n"


def format_sse(data: dict[str, Any], *, event: str | None = None, event_id: int | None = None) -> str:
    lines: list[str] = []
    if event_id is not None:
        lines.append(f"id: {event_id}")
    if event:
        lines.append(f"event: {event}")
    body = json.dumps(data, separators=(",", ":"))
    lines.extend(f"data: {line}" for line in body.splitlines() or [""])
    return "\n".join(lines) + "\n\n"


@dataclass(slots=True)
class SseEvent:
    event: str
    data: str
    event_id: str | None = None

    def json(self) -> Any:
        return json.loads(self.data)


class SseDecoder:
    """Incremental decoder: feed it lines, collect completed events."""

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._event_id: str | None = None
        self.last_event_id: str | None = None

    def feed(self, line: str) -> SseEvent | None:
        line = line.rstrip("\r\n")
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            self._event_id = value
        return None

    def _dispatch(self) -> SseEvent | None:
        if not self._data:
            self._event = ""
            self._event_id = None
            return None
        if self._event_id is not None:
            self.last_event_id = self._event_id
        event = SseEvent(event=self._event or "message", data="\n".join(self._data), event_id=self._event_id)
        self._event = ""
        self._data = []
        self._event_id = None
        return event

    def decode(self, lines: Iterable[str]) -> Iterator[SseEvent]:
        for line in lines:
            event = self.feed(line)
            if event is not None:
                yield event
