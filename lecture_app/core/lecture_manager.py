"""Business logic shared between the presenter UI, the PiP window and the relay."""

from __future__ import annotations

import logging

from lecture_app.core.channels.base import BroadcastChannel
from lecture_app.core.channels.hub import ChannelHub, HubChannel
from lecture_app.core.channels.memory import InMemoryBroadcastChannel
from lecture_app.core.models import QuestionSentEvent, QuestionStats, TimerSessionState, TimerSnapshot
from lecture_app.core.scheduling import Scheduler
from lecture_app.core.services.pip_mirror import PipMirror
from lecture_app.core.services.presenter_timer import PresenterTimerController
from lecture_app.core.services.question_queue import QuestionQueue
from lecture_app.core.settings import LectureSettings

LOGGER = logging.getLogger(__name__)


class LectureManager:
    """Facade over the presenter timer, the question queue and the relay hub.

    Everything except the hub runs on the scheduler's thread. The hub is the
    only object shared with the API server thread and locks internally.
    """

    def __init__(
        self,
        settings: LectureSettings,
        scheduler: Scheduler,
        *,
        hub: ChannelHub | None = None,
        presenter_channel: BroadcastChannel | None = None,
        question_queue: QuestionQueue | None = None,
    ) -> None:
        self.settings = settings
        self._scheduler = scheduler
        self.hub = hub or ChannelHub()
        self._presenter_channel = presenter_channel or InMemoryBroadcastChannel()
        self.queue = question_queue or QuestionQueue()
        self._controller = PresenterTimerController(
            HubChannel(self.hub),
            settings.instructor_id,
            scheduler,
            presenter_channel=self._presenter_channel,
            interval_minutes=settings.interval_minutes,
            auto_question_enabled=settings.auto_question_enabled,
            question_handler=self.queue.next_question,
            sync_every_seconds=settings.sync_every_seconds,
        )
        self._mirrors: list[PipMirror] = []
        # Publish the idle state so students who open the page before recording see INACTIVE.
        self._controller.publish_state()

    # --- Identity ---

    @property
    def instructor_id(self) -> str:
        return self._controller.instructor_id

    @property
    def student_topic(self) -> str:
        return self._controller.student_topic

    @property
    def presenter_topic(self) -> str:
        return self._controller.presenter_topic

    # --- Recording ---

    def start_recording(self) -> bool:
        return self._controller.start_recording()

    def stop_recording(self) -> bool:
        return self._controller.stop_recording()

    def is_recording(self) -> bool:
        return self._controller.is_recording

    def set_interval_minutes(self, minutes: int) -> None:
        self._controller.set_interval_minutes(minutes)

    def set_auto_question_enabled(self, enabled: bool) -> None:
        self._controller.set_auto_question_enabled(enabled)

    # --- Questions ---

    def enqueue_question(self, question: str) -> int:
        return self.queue.enqueue(question)

    def get_queued_questions(self) -> list[str]:
        return self.queue.get_questions()

    def send_question_now(self, question: str | None = None) -> QuestionSentEvent | None:
        """Send ``question``, or the next queued one. Returns None when there is nothing to send."""
        text = question.strip() if question else None
        if not text:
            text = self.queue.next_question()
        if text is None:
            LOGGER.info("Send requested with an empty queue")
            return None
        return self._controller.send_question(text)

    def report_question_stats(self, response_count: int, correct_count: int) -> QuestionStats:
        return self._controller.report_question_stats(response_count, correct_count)

    # --- Audience ---

    def refresh_audience(self) -> int:
        """Copy the relay's audience count into the broadcast student count."""
        count = self.hub.audience_count(self.student_topic)
        self._controller.set_student_count(count)
        return count

    # --- PiP ---

    def open_pip_mirror(self, scheduler: Scheduler | None = None) -> PipMirror:
        mirror = PipMirror(
            self._presenter_channel,
            self.instructor_id,
            scheduler or self._scheduler,
            flash_seconds=self.settings.pip_flash_seconds,
        )
        mirror.start()
        # Seed with current state instead of waiting for the next tick.
        mirror.handle_message(self._controller.state_update())
        self._mirrors.append(mirror)
        return mirror

    def close_pip_mirror(self, mirror: PipMirror) -> None:
        mirror.dispose()
        if mirror in self._mirrors:
            self._mirrors.remove(mirror)

    # --- State ---

    def snapshot(self) -> TimerSnapshot:
        return self._controller.snapshot()

    def get_state(self) -> TimerSessionState:
        return self._controller.state

    def dispose(self) -> None:
        for mirror in list(self._mirrors):
            self.close_pip_mirror(mirror)
        self._controller.dispose()
