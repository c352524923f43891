"""Picture-in-picture mirror of the presenter's own state."""

from __future__ import annotations

import logging
from typing import Any

from lecture_app.constants.timer_constants import PIP_FLASH_SECONDS, PIP_PREVIEW_CHARS
from lecture_app.core.channels.base import BroadcastChannel
from lecture_app.core.models import (
    COUNTDOWN_TICK,
    QUESTION_SENT,
    QUESTION_STATS,
    RECORDING_STATUS,
    STATE_UPDATE,
    TIMER_UPDATE,
    ChannelMessage,
    QuestionSentEvent,
    TimerSnapshot,
    presenter_topic,
)
from lecture_app.core.scheduling import Scheduler
from lecture_app.core.services.countdown import CountdownView
from lecture_app.core.urgency import CorrectnessTier, correctness_tier, format_duration, question_preview

LOGGER = logging.getLogger(__name__)


def _optional_int(payload: dict[str, Any], key: str) -> int | None:
    if key not in payload:
        return None
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"'{key}' must be a non-negative integer, got {value!r}")
    return value


def _optional_bool(payload: dict[str, Any], key: str) -> bool | None:
    if key not in payload:
        return None
    value = payload[key]
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be a boolean, got {value!r}")
    return value


class PipMirror(CountdownView):
    """Compact always-on-top view model fed by the presenter topic."""

    def __init__(
        self,
        channel: BroadcastChannel,
        instructor_id: str,
        scheduler: Scheduler,
        *,
        flash_seconds: float = PIP_FLASH_SECONDS,
    ) -> None:
        super().__init__(channel, presenter_topic(instructor_id), scheduler, flash_seconds=flash_seconds)
        self.instructor_id = instructor_id
        self.is_recording = False
        self.recording_duration = 0
        self.student_count = 0
        self.auto_question_enabled = False
        self.interval_minutes = 0
        self.last_question: str | None = None
        self.correct_percentage: float | None = None
        self.response_count = 0

    def _apply(self, message: ChannelMessage) -> None:
        payload = message.payload
        if message.event == STATE_UPDATE:
            self._apply_state(payload)
        elif message.event == COUNTDOWN_TICK:
            countdown = _optional_int(payload, "nextAutoQuestionIn")
            students = _optional_int(payload, "studentCount")
            if students is not None:
                self.student_count = students
            if countdown is not None:
                self._countdown.sync(countdown)
        elif message.event == RECORDING_STATUS:
            recording = _optional_bool(payload, "isRecording")
            if recording is not None:
                self.is_recording = recording
                if not recording:
                    self._countdown.sync(0, running=False)
        elif message.event == QUESTION_SENT:
            event = QuestionSentEvent.from_payload(payload)
            if event.question:
                self.last_question = question_preview(event.question, PIP_PREVIEW_CHARS)
            self.correct_percentage = None
            self.response_count = 0
            self._flash.trigger()
        elif message.event == QUESTION_STATS:
            self._apply_stats(payload)
        elif message.event == TIMER_UPDATE:
            snapshot = TimerSnapshot.from_payload(payload)
            self.is_recording = snapshot.is_recording
            self.auto_question_enabled = snapshot.auto_question_enabled
            self.interval_minutes = snapshot.interval_minutes
            self.student_count = snapshot.student_count
            self._countdown.sync(snapshot.next_question_in, running=snapshot.is_active)
        else:
            return
        self._notify()

    def _apply_state(self, payload: dict[str, Any]) -> None:
        recording = _optional_bool(payload, "isRecording")
        auto = _optional_bool(payload, "autoQuestionEnabled")
        duration = _optional_int(payload, "recordingDuration")
        interval = _optional_int(payload, "autoQuestionInterval")
        students = _optional_int(payload, "studentCount")
        countdown = _optional_int(payload, "nextAutoQuestionIn")
        if recording is not None:
            self.is_recording = recording
        if auto is not None:
            self.auto_question_enabled = auto
        if duration is not None:
            self.recording_duration = duration
        if interval is not None:
            self.interval_minutes = interval
        if students is not None:
            self.student_count = students
        if countdown is not None:
            self._countdown.sync(countdown, running=self.is_recording and self.auto_question_enabled)

    def _apply_stats(self, payload: dict[str, Any]) -> None:
        responses = _optional_int(payload, "responseCount")
        if responses is not None:
            self.response_count = responses
        percentage = payload.get("correctPercentage")
        if percentage is None:
            self.correct_percentage = None
        elif isinstance(percentage, bool) or not isinstance(percentage, (int, float)):
            raise ValueError(f"'correctPercentage' must be a number, got {percentage!r}")
        else:
            self.correct_percentage = float(percentage)

    @property
    def countdown_visible(self) -> bool:
        return self.is_recording and self.auto_question_enabled

    @property
    def duration_text(self) -> str:
        return format_duration(self.recording_duration)

    @property
    def correctness(self) -> CorrectnessTier:
        return correctness_tier(self.correct_percentage)

    @property
    def minute_bar_percent(self) -> float:
        """Fill of the PiP's last-minute bar; full for anything a minute or more away."""
        return min(100.0, self.countdown / 60 * 100)
