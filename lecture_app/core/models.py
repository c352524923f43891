"""Domain models and wire messages for the lecture countdown broadcast."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from lecture_app.constants.network_constants import PRESENTER_TOPIC_PREFIX, STUDENT_TOPIC_PREFIX

# Student topic events
TIMER_UPDATE = "timer_update"
QUESTION_SENT = "question_sent"

# Presenter (PiP) topic events
STATE_UPDATE = "state_update"
COUNTDOWN_TICK = "countdown_tick"
RECORDING_STATUS = "recording_status"
QUESTION_STATS = "question_stats"

KNOWN_EVENTS: frozenset[str] = frozenset(
    {TIMER_UPDATE, QUESTION_SENT, STATE_UPDATE, COUNTDOWN_TICK, RECORDING_STATUS, QUESTION_STATS}
)
# Events whose latest value describes current state and may be shown to late joiners.
RETAINED_EVENTS: frozenset[str] = frozenset({TIMER_UPDATE, STATE_UPDATE, RECORDING_STATUS})


def student_topic(instructor_id: str) -> str:
    return f"{STUDENT_TOPIC_PREFIX}{instructor_id}"


def presenter_topic(instructor_id: str) -> str:
    return f"{PRESENTER_TOPIC_PREFIX}{instructor_id}"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_int(payload: dict[str, Any], key: str, *, minimum: int) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"'{key}' must be >= {minimum}, got {value}")
    return value


def _require_bool(payload: dict[str, Any], key: str) -> bool:
    value = payload.get(key)
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be a boolean, got {value!r}")
    return value


@dataclass(slots=True, frozen=True)
class ChannelMessage:
    """Envelope carried by every broadcast channel."""

    event: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.event, "payload": dict(self.payload)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChannelMessage":
        event = data.get("event")
        if not isinstance(event, str) or not event:
            raise ValueError("Channel message is missing its event name.")
        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValueError("Channel message payload must be an object.")
        return cls(event=event, payload=payload)


@dataclass(slots=True, frozen=True)
class TimerSnapshot:
    """Authoritative timer state published by the instructor's client."""

    next_question_in: int
    interval_minutes: int
    auto_question_enabled: bool
    is_recording: bool
    student_count: int = 0
    sequence: int | None = None
    session_id: str | None = None

    def __post_init__(self) -> None:
        if self.next_question_in < 0:
            raise ValueError("next_question_in cannot be negative.")
        if self.interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive.")
        if self.student_count < 0:
            raise ValueError("student_count cannot be negative.")

    @property
    def is_active(self) -> bool:
        """True when students should see the countdown."""
        return self.auto_question_enabled and self.is_recording

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "nextQuestionIn": self.next_question_in,
            "intervalMinutes": self.interval_minutes,
            "autoQuestionEnabled": self.auto_question_enabled,
            "isRecording": self.is_recording,
            "studentCount": self.student_count,
        }
        if self.sequence is not None:
            payload["sequence"] = self.sequence
        if self.session_id is not None:
            payload["sessionId"] = self.session_id
        return payload

    def to_message(self) -> ChannelMessage:
        return ChannelMessage(TIMER_UPDATE, self.to_payload())

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TimerSnapshot":
        sequence = payload.get("sequence")
        if sequence is not None and (isinstance(sequence, bool) or not isinstance(sequence, int)):
            raise ValueError(f"'sequence' must be an integer, got {sequence!r}")
        session_id = payload.get("sessionId")
        if session_id is not None and not isinstance(session_id, str):
            raise ValueError(f"'sessionId' must be a string, got {session_id!r}")
        student_count = _require_int(payload, "studentCount", minimum=0) if "studentCount" in payload else 0
        return cls(
            next_question_in=_require_int(payload, "nextQuestionIn", minimum=0),
            interval_minutes=_require_int(payload, "intervalMinutes", minimum=1),
            auto_question_enabled=_require_bool(payload, "autoQuestionEnabled"),
            is_recording=_require_bool(payload, "isRecording"),
            student_count=student_count,
            sequence=sequence,
            session_id=session_id,
        )


@dataclass(slots=True, frozen=True)
class QuestionSentEvent:
    """Notification that a check-in question went out; carries no identifier."""

    question: str | None = None
    question_type: str = "multiple_choice"
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_payload(self) -> dict[str, Any]:
        return {
            "lastQuestionSent": {
                "question": self.question,
                "type": self.question_type,
                "timestamp": self.timestamp,
            }
        }

    def to_message(self) -> ChannelMessage:
        return ChannelMessage(QUESTION_SENT, self.to_payload())

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "QuestionSentEvent":
        details = payload.get("lastQuestionSent") or {}
        if not isinstance(details, dict):
            raise ValueError("'lastQuestionSent' must be an object.")
        question = details.get("question")
        if question is not None and not isinstance(question, str):
            question = str(question)
        return cls(
            question=question,
            question_type=str(details.get("type") or "multiple_choice"),
            timestamp=str(details.get("timestamp") or payload.get("timestamp") or _utc_now_iso()),
        )


@dataclass(slots=True, frozen=True)
class QuestionStats:
    """Response statistics for the most recently sent question."""

    response_count: int
    correct_count: int

    def __post_init__(self) -> None:
        if self.response_count < 0 or self.correct_count < 0:
            raise ValueError("Response counts cannot be negative.")
        if self.correct_count > self.response_count:
            raise ValueError("correct_count cannot exceed response_count.")

    @property
    def correct_percentage(self) -> float | None:
        if self.response_count == 0:
            return None
        return self.correct_count / self.response_count * 100

    def to_message(self) -> ChannelMessage:
        return ChannelMessage(
            QUESTION_STATS,
            {"responseCount": self.response_count, "correctPercentage": self.correct_percentage},
        )


@dataclass(slots=True)
class TimerSessionState:
    """Session-scoped presenter state; lives only as long as the lecture session."""

    interval_minutes: int
    auto_question_enabled: bool = True
    is_recording: bool = False
    next_question_in: int = 0
    student_count: int = 0
    recording_duration: int = 0
    sequence: int = 0
    last_question_text: str | None = None
    session_id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def interval_seconds(self) -> int:
        return self.interval_minutes * 60

    @property
    def countdown_active(self) -> bool:
        return self.is_recording and self.auto_question_enabled
