from __future__ import annotations

import pytest

from lecture_app.core.urgency import (
    CorrectnessTier,
    UrgencyLevel,
    classify_urgency,
    correctness_tier,
    format_countdown,
    format_duration,
    interval_progress_percent,
    is_get_ready,
    question_preview,
)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (900, UrgencyLevel.CALM),
        (31, UrgencyLevel.CALM),
        (30, UrgencyLevel.WARNING),
        (10, UrgencyLevel.WARNING),
        (9, UrgencyLevel.CRITICAL),
        (0, UrgencyLevel.CRITICAL),
        (-5, UrgencyLevel.CRITICAL),
    ],
)
def test_classify_urgency_thresholds(seconds: int, expected: UrgencyLevel) -> None:
    assert classify_urgency(seconds) is expected


def test_get_ready_window_excludes_zero() -> None:
    assert is_get_ready(30)
    assert is_get_ready(1)
    assert not is_get_ready(31)
    assert not is_get_ready(0)


def test_format_countdown_never_negative() -> None:
    assert format_countdown(125) == "2:05"
    assert format_countdown(0) == "0:00"
    assert format_countdown(-3) == "0:00"


def test_format_duration_switches_to_hours() -> None:
    assert format_duration(59) == "0:59"
    assert format_duration(3599) == "59:59"
    assert format_duration(3725) == "1:02:05"


def test_interval_progress_percent() -> None:
    assert interval_progress_percent(120, 2) == 0.0
    assert interval_progress_percent(60, 2) == 50.0
    assert interval_progress_percent(0, 2) == 100.0
    assert interval_progress_percent(500, 2) == 0.0


@pytest.mark.parametrize(
    ("percentage", "tier"),
    [
        (None, CorrectnessTier.UNKNOWN),
        (100.0, CorrectnessTier.GOOD),
        (70.0, CorrectnessTier.GOOD),
        (69.9, CorrectnessTier.FAIR),
        (40.0, CorrectnessTier.FAIR),
        (12.5, CorrectnessTier.POOR),
    ],
)
def test_correctness_tier(percentage: float | None, tier: CorrectnessTier) -> None:
    assert correctness_tier(percentage) is tier


def test_question_preview_collapses_and_truncates() -> None:
    assert question_preview(None, 10) == ""
    assert question_preview("  What   is\n2+2? ", 100) == "What is 2+2?"
    preview = question_preview("word " * 40, 20)
    assert preview.endswith("...")
    assert len(preview) <= 23
