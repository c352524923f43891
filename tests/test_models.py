from __future__ import annotations

import pytest

from lecture_app.core.models import (
    QUESTION_SENT,
    QUESTION_STATS,
    TIMER_UPDATE,
    ChannelMessage,
    QuestionSentEvent,
    QuestionStats,
    TimerSessionState,
    TimerSnapshot,
    presenter_topic,
    student_topic,
)


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "nextQuestionIn": 120,
        "intervalMinutes": 2,
        "autoQuestionEnabled": True,
        "isRecording": True,
        "studentCount": 4,
    }
    payload.update(overrides)
    return payload


def test_topics_are_keyed_by_instructor() -> None:
    assert student_topic("abc") == "lecture-timer-abc"
    assert presenter_topic("abc") == "lecture-presenter-abc"


def test_snapshot_payload_uses_wire_keys() -> None:
    snapshot = TimerSnapshot(next_question_in=90, interval_minutes=2, auto_question_enabled=True, is_recording=False)
    message = snapshot.to_message()

    assert message.event == TIMER_UPDATE
    assert message.payload == {
        "nextQuestionIn": 90,
        "intervalMinutes": 2,
        "autoQuestionEnabled": True,
        "isRecording": False,
        "studentCount": 0,
    }


def test_snapshot_from_payload_reads_optional_ordering_fields() -> None:
    snapshot = TimerSnapshot.from_payload(_payload(sequence=7, sessionId="s1"))

    assert snapshot.next_question_in == 120
    assert snapshot.student_count == 4
    assert snapshot.sequence == 7
    assert snapshot.session_id == "s1"
    assert snapshot.is_active


def test_snapshot_student_count_is_optional() -> None:
    payload = _payload()
    del payload["studentCount"]
    assert TimerSnapshot.from_payload(payload).student_count == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"nextQuestionIn": -1},
        {"nextQuestionIn": "120"},
        {"nextQuestionIn": True},
        {"intervalMinutes": 0},
        {"autoQuestionEnabled": "yes"},
        {"studentCount": -2},
        {"sequence": "3"},
        {"sessionId": 12},
    ],
)
def test_snapshot_rejects_malformed_payloads(overrides: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        TimerSnapshot.from_payload(_payload(**overrides))


def test_snapshot_is_inactive_unless_recording_and_enabled() -> None:
    assert not TimerSnapshot.from_payload(_payload(isRecording=False)).is_active
    assert not TimerSnapshot.from_payload(_payload(autoQuestionEnabled=False)).is_active


def test_question_sent_payload_round_trips_question_text() -> None:
    event = QuestionSentEvent(question="Why is the sky blue?", timestamp="2024-01-01T00:00:00+00:00")
    message = event.to_message()

    assert message.event == QUESTION_SENT
    assert message.payload["lastQuestionSent"]["question"] == "Why is the sky blue?"
    assert QuestionSentEvent.from_payload(message.payload) == event


def test_question_sent_tolerates_missing_details() -> None:
    event = QuestionSentEvent.from_payload({})
    assert event.question is None
    assert event.question_type == "multiple_choice"


def test_channel_message_from_dict_validates() -> None:
    assert ChannelMessage.from_dict({"event": "timer_update"}).payload == {}
    with pytest.raises(ValueError):
        ChannelMessage.from_dict({"payload": {}})
    with pytest.raises(ValueError):
        ChannelMessage.from_dict({"event": "timer_update", "payload": [1, 2]})


def test_question_stats_percentage() -> None:
    assert QuestionStats(0, 0).correct_percentage is None
    stats = QuestionStats(response_count=8, correct_count=6)
    assert stats.correct_percentage == 75.0
    assert stats.to_message().event == QUESTION_STATS
    assert stats.to_message().payload == {"responseCount": 8, "correctPercentage": 75.0}
    with pytest.raises(ValueError):
        QuestionStats(response_count=2, correct_count=3)


def test_session_state_countdown_needs_recording_and_auto_question() -> None:
    state = TimerSessionState(interval_minutes=3)
    assert state.interval_seconds == 180
    assert not state.countdown_active
    state.is_recording = True
    assert state.countdown_active
    state.auto_question_enabled = False
    assert not state.countdown_active
    assert TimerSessionState(interval_minutes=3).session_id != state.session_id
