from __future__ import annotations

import logging

import pytest

from lecture_app.core.channels.memory import InMemoryBroadcastChannel
from lecture_app.core.models import ChannelMessage
from lecture_app.core.services.presenter_timer import PresenterTimerController

from conftest import ManualScheduler, MessageRecorder

STUDENT_TOPIC = "lecture-timer-prof"
PRESENTER_TOPIC = "lecture-presenter-prof"


def _controller(channel, scheduler, **kwargs) -> PresenterTimerController:
    kwargs.setdefault("interval_minutes", 2)
    return PresenterTimerController(channel, "prof", scheduler, **kwargs)


def _countdowns(recorder: MessageRecorder) -> list[int]:
    return [message.payload["nextQuestionIn"] for message in recorder.of("timer_update")]


def test_start_recording_broadcasts_full_interval(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler)

    assert controller.start_recording()
    assert not controller.start_recording()

    assert _countdowns(recorder) == [120]
    snapshot = recorder.messages[-1].payload
    assert snapshot["isRecording"] is True
    assert snapshot["autoQuestionEnabled"] is True
    assert snapshot["intervalMinutes"] == 2
    assert scheduler.pending == 1


def test_tick_decrements_and_broadcasts_each_second(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler)
    controller.start_recording()

    scheduler.advance(3)

    assert _countdowns(recorder) == [120, 119, 118, 117]
    assert controller.state.recording_duration == 3


def test_countdown_resets_and_sends_question_at_zero(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    asked: list[int] = []

    def next_question() -> str:
        asked.append(1)
        return "What is entropy?"

    controller = _controller(channel, scheduler, question_handler=next_question)
    controller.start_recording()

    scheduler.advance(120)

    assert asked == [1]
    assert controller.state.next_question_in == 120
    assert _countdowns(recorder)[-1] == 120
    sent = recorder.of("question_sent")
    assert len(sent) == 1
    assert sent[0].payload["lastQuestionSent"]["question"] == "What is entropy?"
    assert min(_countdowns(recorder)) == 1


def test_handler_returning_none_skips_the_interval(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler, interval_minutes=1, question_handler=lambda: None)
    controller.start_recording()

    scheduler.advance(60)

    assert recorder.of("question_sent") == []
    assert controller.state.next_question_in == 60


def test_handler_failure_is_logged_and_countdown_resets(channel, scheduler, recorder, caplog) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)

    def broken() -> str:
        raise RuntimeError("queue unavailable")

    controller = _controller(channel, scheduler, interval_minutes=1, question_handler=broken)
    controller.start_recording()

    with caplog.at_level(logging.ERROR):
        scheduler.advance(60)

    assert "Auto-question handler failed" in caplog.text
    assert recorder.of("question_sent") == []
    assert controller.state.next_question_in == 60
    assert controller.is_recording


def test_without_handler_an_untitled_question_is_announced(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler, interval_minutes=1)
    controller.start_recording()

    scheduler.advance(60)

    sent = recorder.of("question_sent")
    assert len(sent) == 1
    assert sent[0].payload["lastQuestionSent"]["question"] is None


def test_sync_cadence_broadcasts_sparsely_until_the_final_seconds(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler, interval_minutes=1, sync_every_seconds=5)
    controller.start_recording()

    scheduler.advance(10)
    assert _countdowns(recorder) == [60, 55, 50]

    scheduler.advance(42)
    assert _countdowns(recorder)[-3:] == [10, 9, 8]


def test_disabled_auto_question_keeps_countdown_at_zero(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler, auto_question_enabled=False)
    controller.start_recording()

    scheduler.advance(5)

    assert _countdowns(recorder) == [0]
    assert controller.state.recording_duration == 5

    controller.set_auto_question_enabled(True)
    assert _countdowns(recorder)[-1] == 120
    assert recorder.messages[-1].payload["autoQuestionEnabled"] is True


def test_interval_change_restarts_the_countdown(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler)
    controller.start_recording()
    scheduler.advance(30)

    controller.set_interval_minutes(5)

    assert controller.state.next_question_in == 300
    assert recorder.messages[-1].payload["intervalMinutes"] == 5


@pytest.mark.parametrize("minutes", [0, -3, True, 1.5])
def test_interval_must_be_a_positive_integer(channel, scheduler, minutes) -> None:
    controller = _controller(channel, scheduler)
    with pytest.raises(ValueError):
        controller.set_interval_minutes(minutes)


def test_student_count_is_validated_and_broadcast_on_change(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler)

    controller.set_student_count(12)
    controller.set_student_count(12)

    assert [message.payload["studentCount"] for message in recorder.of("timer_update")] == [12]
    with pytest.raises(ValueError):
        controller.set_student_count(-1)


def test_stop_recording_broadcasts_inactive_state(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler)
    controller.start_recording()
    scheduler.advance(2)

    assert controller.stop_recording()
    assert not controller.stop_recording()

    last = recorder.messages[-1].payload
    assert last["isRecording"] is False
    assert last["nextQuestionIn"] == 0
    assert scheduler.pending == 0


def test_manual_question_does_not_reset_the_countdown(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler)
    controller.start_recording()
    scheduler.advance(20)

    event = controller.send_question("a" * 150)

    assert controller.state.next_question_in == 100
    assert event.question == "a" * 100 + "..."
    assert len(recorder.of("question_sent")[0].payload["lastQuestionSent"]["question"]) == 103
    assert controller.state.last_question_text == "a" * 150


def test_snapshot_sequence_increases_within_a_session(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler)
    controller.start_recording()
    scheduler.advance(4)

    sequences = [message.payload["sequence"] for message in recorder.of("timer_update")]
    sessions = {message.payload["sessionId"] for message in recorder.of("timer_update")}

    assert sequences == sorted(sequences)
    assert len(set(sequences)) == len(sequences)
    assert len(sessions) == 1


def test_presenter_topic_gets_rich_events(channel, scheduler) -> None:
    presenter_channel = InMemoryBroadcastChannel()
    pip = MessageRecorder()
    presenter_channel.subscribe(PRESENTER_TOPIC, pip)
    controller = _controller(channel, scheduler, presenter_channel=presenter_channel)

    controller.start_recording()
    scheduler.advance(1)
    controller.send_question("Q1")
    stats = controller.report_question_stats(10, 7)

    events = pip.events()
    assert events[:2] == ["recording_status", "state_update"]
    assert "countdown_tick" in events
    assert pip.of("countdown_tick")[0].payload == {"nextAutoQuestionIn": 119, "studentCount": 0}
    assert pip.of("state_update")[-1].payload["recordingDuration"] == 1
    assert events[-2:] == ["question_sent", "question_stats"]
    assert stats.correct_percentage == 70.0


class _FailingChannel:
    def publish(self, topic: str, message: ChannelMessage) -> None:
        raise ConnectionError("relay down")

    def subscribe(self, topic, handler):
        raise NotImplementedError


def test_failing_channel_is_logged_and_countdown_continues(scheduler, caplog) -> None:
    controller = _controller(_FailingChannel(), scheduler)

    with caplog.at_level(logging.WARNING):
        controller.start_recording()
        scheduler.advance(3)

    assert controller.state.next_question_in == 117
    assert "Broadcast of timer_update to lecture-timer-prof failed" in caplog.text


def test_dispose_stops_recording_and_silences_the_controller(channel, scheduler, recorder) -> None:
    channel.subscribe(STUDENT_TOPIC, recorder)
    controller = _controller(channel, scheduler)
    controller.start_recording()

    controller.dispose()
    published = len(recorder.messages)
    controller.tick()
    controller.send_question("late")

    assert recorder.messages[published - 1].payload["isRecording"] is False
    assert len(recorder.messages) == published
    assert scheduler.pending == 0
    assert not controller.start_recording()


def test_empty_instructor_id_is_rejected(channel) -> None:
    with pytest.raises(ValueError):
        PresenterTimerController(channel, "", ManualScheduler())


def test_question_stats_reach_students_and_pip(channel, scheduler, recorder) -> None:
    presenter_channel = InMemoryBroadcastChannel()
    pip = MessageRecorder()
    channel.subscribe(STUDENT_TOPIC, recorder)
    presenter_channel.subscribe(PRESENTER_TOPIC, pip)
    controller = _controller(channel, scheduler, presenter_channel=presenter_channel)

    controller.report_question_stats(4, 1)

    assert recorder.of("question_stats")[0].payload == {"responseCount": 4, "correctPercentage": 25.0}
    assert pip.events() == ["question_stats"]
    with pytest.raises(ValueError):
        controller.report_question_stats(2, 5)
