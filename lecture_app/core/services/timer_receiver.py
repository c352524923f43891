"""Student-side receiver for the instructor's countdown broadcast."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from lecture_app.constants.timer_constants import (
    BROADCAST_PREVIEW_CHARS,
    STALE_AFTER_SECONDS,
    STUDENT_FLASH_SECONDS,
)
from lecture_app.core.channels.base import BroadcastChannel
from lecture_app.core.models import (
    QUESTION_SENT,
    QUESTION_STATS,
    TIMER_UPDATE,
    ChannelMessage,
    QuestionSentEvent,
    TimerSnapshot,
    student_topic,
)
from lecture_app.core.scheduling import Scheduler, TimerHandle
from lecture_app.core.services.countdown import CountdownView
from lecture_app.core.urgency import interval_progress_percent, is_get_ready, question_preview

LOGGER = logging.getLogger(__name__)


class ReceiverState(Enum):
    """INACTIVE renders nothing; ACTIVE shows the countdown."""

    INACTIVE = "inactive"
    ACTIVE = "active"


class OrderingPolicy(Enum):
    """How a receiver treats snapshots that arrive out of order."""

    LAST_WRITE_WINS = "last_write_wins"
    SEQUENCED = "sequenced"


class StudentTimerReceiver(CountdownView):
    """Follows one instructor's timer topic and interpolates between snapshots.

    With the default last-write-wins policy every snapshot overwrites the local
    counter, so a late-delivered older snapshot moves the display backward.
    ``OrderingPolicy.SEQUENCED`` discards snapshots whose sequence number is not
    newer than the last one applied from the same presenter session.
    """

    def __init__(
        self,
        channel: BroadcastChannel,
        instructor_id: str,
        scheduler: Scheduler,
        *,
        ordering: OrderingPolicy = OrderingPolicy.LAST_WRITE_WINS,
        flash_seconds: float = STUDENT_FLASH_SECONDS,
        stale_after_seconds: float = STALE_AFTER_SECONDS,
    ) -> None:
        super().__init__(channel, student_topic(instructor_id), scheduler, flash_seconds=flash_seconds)
        self.instructor_id = instructor_id
        self.ordering = ordering
        self._stale_after = stale_after_seconds
        self._state = ReceiverState.INACTIVE
        self._interval_minutes = 0
        self._student_count = 0
        self._correct_percentage: float | None = None
        self._last_question: str | None = None
        self._last_sync_at: float | None = None
        self._last_sequence: int | None = None
        self._last_session_id: str | None = None
        self._stale_reported = False
        self._stale_handle: TimerHandle | None = None

    def _apply(self, message: ChannelMessage) -> None:
        if message.event == TIMER_UPDATE:
            self.apply_snapshot(TimerSnapshot.from_payload(message.payload))
        elif message.event == QUESTION_SENT:
            self.apply_question_sent(QuestionSentEvent.from_payload(message.payload))
        elif message.event == QUESTION_STATS:
            self._apply_stats(message.payload)

    def apply_snapshot(self, snapshot: TimerSnapshot) -> bool:
        """Adopt ``snapshot`` as the authoritative state. Returns False if discarded."""
        if self._disposed:
            return False
        if self._is_out_of_order(snapshot):
            LOGGER.debug(
                "Discarding snapshot %s on %s; already applied %s",
                snapshot.sequence,
                self.topic,
                self._last_sequence,
            )
            return False

        if snapshot.sequence is not None:
            self._last_sequence = snapshot.sequence
            self._last_session_id = snapshot.session_id
        self._last_sync_at = self._scheduler.now()
        if self._stale_reported:
            LOGGER.info("Timer broadcast on %s resumed", self.topic)
        self._stale_reported = False
        self._interval_minutes = snapshot.interval_minutes
        self._student_count = snapshot.student_count

        if snapshot.is_active:
            if self._state is ReceiverState.INACTIVE:
                LOGGER.info("Lecture countdown active on %s", self.topic)
            self._state = ReceiverState.ACTIVE
            self._countdown.sync(snapshot.next_question_in)
            self._arm_stale_timer()
        else:
            if self._state is ReceiverState.ACTIVE:
                LOGGER.info("Lecture countdown inactive on %s", self.topic)
            self._state = ReceiverState.INACTIVE
            self._countdown.sync(0, running=False)
            self._cancel_stale_timer()
        self._notify()
        return True

    def _is_out_of_order(self, snapshot: TimerSnapshot) -> bool:
        if self.ordering is not OrderingPolicy.SEQUENCED:
            return False
        if snapshot.sequence is None or self._last_sequence is None:
            return False
        if snapshot.session_id != self._last_session_id:
            return False
        return snapshot.sequence <= self._last_sequence

    def apply_question_sent(self, event: QuestionSentEvent) -> None:
        if self._disposed:
            return
        self._correct_percentage = None
        self._last_question = question_preview(event.question, BROADCAST_PREVIEW_CHARS) or None
        self._flash.trigger()
        self._notify()

    def set_correct_percentage(self, percentage: float | None) -> None:
        """Show the grading result for the student's last answer."""
        if percentage is not None and not 0 <= percentage <= 100:
            raise ValueError("percentage must be between 0 and 100")
        self._correct_percentage = percentage
        self._notify()

    def _apply_stats(self, payload: dict[str, Any]) -> None:
        percentage = payload.get("correctPercentage")
        if percentage is not None and (isinstance(percentage, bool) or not isinstance(percentage, (int, float))):
            raise ValueError(f"'correctPercentage' must be a number, got {percentage!r}")
        self.set_correct_percentage(None if percentage is None else float(percentage))

    # --- Staleness ---

    def _arm_stale_timer(self) -> None:
        self._cancel_stale_timer()
        self._stale_handle = self._scheduler.call_later(self._stale_after, self._on_stale)

    def _cancel_stale_timer(self) -> None:
        handle, self._stale_handle = self._stale_handle, None
        if handle is not None:
            handle.cancel()

    def _on_stale(self) -> None:
        self._stale_handle = None
        if self._disposed or not self.is_active:
            return
        self._stale_reported = True
        LOGGER.warning(
            "No timer broadcast on %s for %.0fs; showing last known state",
            self.topic,
            self.seconds_since_sync or 0.0,
        )
        self._notify()

    def dispose(self) -> None:
        self._cancel_stale_timer()
        super().dispose()

    # --- Display state ---

    @property
    def state(self) -> ReceiverState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is ReceiverState.ACTIVE

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    @property
    def student_count(self) -> int:
        return self._student_count

    @property
    def correct_percentage(self) -> float | None:
        return self._correct_percentage

    @property
    def last_question(self) -> str | None:
        return self._last_question

    @property
    def seconds_since_sync(self) -> float | None:
        if self._last_sync_at is None:
            return None
        return self._scheduler.now() - self._last_sync_at

    @property
    def is_stale(self) -> bool:
        """True while active and no snapshot arrived within the stale window."""
        if not self.is_active:
            return False
        if self._stale_reported:
            return True
        elapsed = self.seconds_since_sync
        return elapsed is not None and elapsed > self._stale_after

    @property
    def get_ready(self) -> bool:
        return self.is_active and is_get_ready(self.countdown)

    @property
    def progress_percent(self) -> float:
        if self._interval_minutes <= 0:
            return 0.0
        return interval_progress_percent(self.countdown, self._interval_minutes)
