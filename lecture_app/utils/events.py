"""Structured log helpers for broadcast channel activity."""

from __future__ import annotations

import logging
from typing import Any

CHANNEL_EVENT_LOGGER = logging.getLogger("lecture_app.channels.events")


def _clean(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    text = str(value).strip()
    if len(text) > 120:
        return text[:120] + "…"
    return text


def emit_channel_event(
    action: str,
    topic: str,
    *,
    event: str | None = None,
    details: dict[str, Any] | None = None,
    level: int = logging.DEBUG,
    logger: logging.Logger = CHANNEL_EVENT_LOGGER,
) -> None:
    """Log a channel action with the topic and event kind attached as ``extra`` fields."""
    cleaned = {key: _clean(value) for key, value in (details or {}).items() if value is not None}
    suffix = ", ".join(f"{key}={value}" for key, value in cleaned.items())
    label = f"[{action}] {topic}" + (f" {event}" if event else "")
    message = f"{label} ({suffix})" if suffix else label
    logger.log(
        level,
        message,
        extra={
            "channel_action": action,
            "channel_topic": topic,
            "channel_event": event or "",
            "channel_details": cleaned,
        },
    )
