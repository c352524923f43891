"""Countdown presentation helpers shared by the presenter and every receiver."""

from __future__ import annotations

from enum import Enum

from lecture_app.constants.timer_constants import (
    CRITICAL_THRESHOLD_SECONDS,
    FAIR_CORRECTNESS_PERCENT,
    GOOD_CORRECTNESS_PERCENT,
    WARNING_THRESHOLD_SECONDS,
)


class UrgencyLevel(Enum):
    """How close the next auto-question is."""

    CALM = "calm"
    WARNING = "warning"
    CRITICAL = "critical"


class CorrectnessTier(Enum):
    UNKNOWN = "unknown"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


def classify_urgency(seconds: int) -> UrgencyLevel:
    """Map seconds remaining to an urgency tier.

    More than 30 seconds is calm, 10 to 30 seconds is a warning, and anything
    below 10 (including 0, the imminent state) is critical.
    """
    seconds = max(0, seconds)
    if seconds > WARNING_THRESHOLD_SECONDS:
        return UrgencyLevel.CALM
    if seconds >= CRITICAL_THRESHOLD_SECONDS:
        return UrgencyLevel.WARNING
    return UrgencyLevel.CRITICAL


def is_get_ready(seconds: int) -> bool:
    """True while students should be prompted to get ready."""
    return 0 < seconds <= WARNING_THRESHOLD_SECONDS


def format_countdown(seconds: int) -> str:
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def interval_progress_percent(remaining_seconds: int, interval_minutes: int) -> float:
    """Share of the current interval that has already elapsed, in percent."""
    total = interval_minutes * 60
    if total <= 0:
        return 0.0
    remaining = min(max(0, remaining_seconds), total)
    return (total - remaining) / total * 100


def correctness_tier(percentage: float | None) -> CorrectnessTier:
    if percentage is None:
        return CorrectnessTier.UNKNOWN
    if percentage >= GOOD_CORRECTNESS_PERCENT:
        return CorrectnessTier.GOOD
    if percentage >= FAIR_CORRECTNESS_PERCENT:
        return CorrectnessTier.FAIR
    return CorrectnessTier.POOR


def question_preview(text: str | None, limit: int) -> str:
    """Collapse whitespace and truncate ``text`` to ``limit`` characters."""
    if not text:
        return ""
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[:limit].rstrip() + "..."
