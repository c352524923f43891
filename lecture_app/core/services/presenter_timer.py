"""Instructor-side countdown: the single source of truth for the auto-question timer."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from lecture_app.constants.timer_constants import (
    ALWAYS_SYNC_BELOW_SECONDS,
    BROADCAST_PREVIEW_CHARS,
    DEFAULT_INTERVAL_MINUTES,
    TICK_SECONDS,
)
from lecture_app.core.channels.base import BroadcastChannel
from lecture_app.core.models import (
    COUNTDOWN_TICK,
    RECORDING_STATUS,
    STATE_UPDATE,
    ChannelMessage,
    QuestionSentEvent,
    QuestionStats,
    TimerSessionState,
    TimerSnapshot,
    presenter_topic,
    student_topic,
)
from lecture_app.core.scheduling import Scheduler, TimerHandle
from lecture_app.core.urgency import question_preview

LOGGER = logging.getLogger(__name__)

AutoQuestionHandler = Callable[[], str | None]


def _validate_positive_int(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


class PresenterTimerController:
    """Runs the countdown and broadcasts it.

    Snapshots go to the student topic; the richer presenter events go to the
    presenter topic for the PiP window. Publishing is fire-and-forget: a
    failing channel is logged and the local countdown carries on.
    """

    def __init__(
        self,
        channel: BroadcastChannel,
        instructor_id: str,
        scheduler: Scheduler,
        *,
        presenter_channel: BroadcastChannel | None = None,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        auto_question_enabled: bool = True,
        question_handler: AutoQuestionHandler | None = None,
        sync_every_seconds: int = 1,
    ) -> None:
        if not instructor_id:
            raise ValueError("instructor_id must not be empty")
        self._channel = channel
        self._presenter_channel = presenter_channel
        self._scheduler = scheduler
        self.instructor_id = instructor_id
        self.student_topic = student_topic(instructor_id)
        self.presenter_topic = presenter_topic(instructor_id)
        self.question_handler = question_handler
        self._sync_every = _validate_positive_int(sync_every_seconds, "sync_every_seconds")
        self._state = TimerSessionState(
            interval_minutes=_validate_positive_int(interval_minutes, "interval_minutes"),
            auto_question_enabled=auto_question_enabled,
        )
        self._tick_handle: TimerHandle | None = None
        self._disposed = False

    @property
    def state(self) -> TimerSessionState:
        """A copy of the session state; mutate it through the controller only."""
        return replace(self._state)

    @property
    def is_recording(self) -> bool:
        return self._state.is_recording

    # --- Recording lifecycle ---

    def start_recording(self) -> bool:
        if self._disposed or self._state.is_recording:
            return False
        state = self._state
        state.is_recording = True
        state.recording_duration = 0
        state.next_question_in = state.interval_seconds if state.auto_question_enabled else 0
        self._tick_handle = self._scheduler.call_every(TICK_SECONDS, self.tick)
        LOGGER.info(
            "Recording started for %s (auto-question %s, every %s min)",
            self.instructor_id,
            "on" if state.auto_question_enabled else "off",
            state.interval_minutes,
        )
        self._publish_presenter(ChannelMessage(RECORDING_STATUS, {"isRecording": True}))
        self.publish_state()
        return True

    def stop_recording(self) -> bool:
        if not self._state.is_recording:
            return False
        self._cancel_tick()
        state = self._state
        state.is_recording = False
        state.next_question_in = 0
        state.recording_duration = 0
        LOGGER.info("Recording stopped for %s", self.instructor_id)
        self._publish_presenter(ChannelMessage(RECORDING_STATUS, {"isRecording": False}))
        self.publish_state()
        return True

    # --- Configuration ---

    def set_auto_question_enabled(self, enabled: bool) -> None:
        enabled = bool(enabled)
        state = self._state
        if state.auto_question_enabled == enabled:
            return
        state.auto_question_enabled = enabled
        state.next_question_in = state.interval_seconds if state.countdown_active else 0
        LOGGER.info("Auto-question %s for %s", "enabled" if enabled else "disabled", self.instructor_id)
        self.publish_state()

    def set_interval_minutes(self, minutes: int) -> None:
        state = self._state
        state.interval_minutes = _validate_positive_int(minutes, "interval_minutes")
        if state.countdown_active:
            state.next_question_in = state.interval_seconds
        self.publish_state()

    def set_student_count(self, count: int) -> None:
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(f"student_count must be a non-negative integer, got {count!r}")
        if count == self._state.student_count:
            return
        self._state.student_count = count
        self.publish_state()

    # --- Timer ---

    def tick(self) -> None:
        """Advance the session clock by one second."""
        state = self._state
        if self._disposed or not state.is_recording:
            return
        state.recording_duration += 1

        if state.countdown_active:
            state.next_question_in = max(0, state.next_question_in - 1)
            fired = state.next_question_in == 0
            if fired:
                self._fire_auto_question()
            remaining = state.next_question_in
            if fired or remaining % self._sync_every == 0 or remaining <= ALWAYS_SYNC_BELOW_SECONDS:
                self._publish_snapshot()
            self._publish_presenter(
                ChannelMessage(
                    COUNTDOWN_TICK,
                    {"nextAutoQuestionIn": remaining, "studentCount": state.student_count},
                )
            )
        self._publish_presenter(self.state_update())

    def _fire_auto_question(self) -> None:
        state = self._state
        question: str | None = None
        send = True
        if self.question_handler is not None:
            try:
                question = self.question_handler()
            except Exception:
                LOGGER.exception("Auto-question handler failed for %s; resetting countdown", self.instructor_id)
                send = False
            else:
                if question is None:
                    LOGGER.info("No auto-question available for %s; skipping this interval", self.instructor_id)
                    send = False
        state.next_question_in = state.interval_seconds
        if send:
            self._emit_question_sent(question)

    # --- Questions ---

    def send_question(self, question: str | None) -> QuestionSentEvent:
        """Send a question immediately; the countdown keeps running."""
        return self._emit_question_sent(question)

    def _emit_question_sent(self, question: str | None) -> QuestionSentEvent:
        self._state.last_question_text = question
        event = QuestionSentEvent(question=question_preview(question, BROADCAST_PREVIEW_CHARS) or None)
        message = event.to_message()
        LOGGER.info("Question sent to %s", self.student_topic)
        self._publish(self._channel, self.student_topic, message)
        self._publish_presenter(message)
        return event

    def report_question_stats(self, response_count: int, correct_count: int) -> QuestionStats:
        """Broadcast grading results for the last question to students and the PiP."""
        stats = QuestionStats(response_count=response_count, correct_count=correct_count)
        message = stats.to_message()
        self._publish(self._channel, self.student_topic, message)
        self._publish_presenter(message)
        return stats

    # --- Broadcasting ---

    def snapshot(self) -> TimerSnapshot:
        state = self._state
        return TimerSnapshot(
            next_question_in=state.next_question_in,
            interval_minutes=state.interval_minutes,
            auto_question_enabled=state.auto_question_enabled,
            is_recording=state.is_recording,
            student_count=state.student_count,
            sequence=state.sequence,
            session_id=state.session_id,
        )

    def state_update(self) -> ChannelMessage:
        """Presenter-topic message describing the whole session state."""
        state = self._state
        payload = {
            "isRecording": state.is_recording,
            "recordingDuration": state.recording_duration,
            "autoQuestionEnabled": state.auto_question_enabled,
            "autoQuestionInterval": state.interval_minutes,
            "studentCount": state.student_count,
            "nextAutoQuestionIn": state.next_question_in,
        }
        return ChannelMessage(STATE_UPDATE, payload)

    def publish_state(self) -> None:
        """Broadcast a fresh snapshot and state update right now."""
        self._publish_snapshot()
        self._publish_presenter(self.state_update())

    def _publish_snapshot(self) -> None:
        self._state.sequence += 1
        self._publish(self._channel, self.student_topic, self.snapshot().to_message())

    def _publish_presenter(self, message: ChannelMessage) -> None:
        if self._presenter_channel is not None:
            self._publish(self._presenter_channel, self.presenter_topic, message)

    def _publish(self, channel: BroadcastChannel, topic: str, message: ChannelMessage) -> None:
        if self._disposed:
            return
        try:
            channel.publish(topic, message)
        except Exception as exc:
            LOGGER.warning("Broadcast of %s to %s failed: %s", message.event, topic, exc)

    # --- Teardown ---

    def _cancel_tick(self) -> None:
        handle, self._tick_handle = self._tick_handle, None
        if handle is not None:
            handle.cancel()

    def dispose(self) -> None:
        """Stop the tick timer; further calls publish nothing."""
        if self._disposed:
            return
        if self._state.is_recording:
            self.stop_recording()
        self._cancel_tick()
        self._disposed = True
