from __future__ import annotations

import asyncio
import logging

import pytest

from lecture_app.core.channels.base import UnknownEventError
from lecture_app.core.channels.hub import ChannelHub, HubChannel, RelayEnvelope
from lecture_app.core.models import ChannelMessage, QuestionSentEvent, TimerSnapshot

from conftest import MessageRecorder

TOPIC = "lecture-timer-prof"


def _snapshot(seconds: int) -> ChannelMessage:
    return TimerSnapshot(
        next_question_in=seconds,
        interval_minutes=2,
        auto_question_enabled=True,
        is_recording=True,
    ).to_message()


class FakeClock:
    def __init__(self) -> None:
        self.value = 100.0

    def __call__(self) -> float:
        return self.value


def test_publish_assigns_increasing_cursors() -> None:
    hub = ChannelHub()
    first = hub.publish(TOPIC, _snapshot(120))
    second = hub.publish(TOPIC, _snapshot(119))
    other = hub.publish("lecture-timer-other", _snapshot(60))

    assert (first.cursor, second.cursor) == (1, 2)
    assert other.cursor == 1
    assert hub.topics() == ["lecture-timer-other", TOPIC]


def test_unknown_events_are_rejected() -> None:
    with pytest.raises(UnknownEventError):
        ChannelHub().publish(TOPIC, ChannelMessage("chat_message", {}))


def test_first_poll_returns_retained_state_but_not_question_sent() -> None:
    hub = ChannelHub()
    hub.publish(TOPIC, _snapshot(120))
    hub.publish(TOPIC, QuestionSentEvent(question="Q1").to_message())
    hub.publish(TOPIC, _snapshot(119))

    result = hub.poll(TOPIC)

    assert result.cursor == 3
    assert [env.message.event for env in result.envelopes] == ["timer_update"]
    assert result.envelopes[0].message.payload["nextQuestionIn"] == 119


def test_later_polls_return_everything_after_the_cursor() -> None:
    hub = ChannelHub()
    hub.publish(TOPIC, _snapshot(120))
    cursor = hub.poll(TOPIC).cursor
    hub.publish(TOPIC, QuestionSentEvent(question="Q1").to_message())
    hub.publish(TOPIC, _snapshot(119))

    result = hub.poll(TOPIC, since=cursor)

    assert [env.message.event for env in result.envelopes] == ["question_sent", "timer_update"]
    assert hub.poll(TOPIC, since=result.cursor).envelopes == []


def test_poller_behind_history_is_resynchronised_from_retained_state() -> None:
    hub = ChannelHub(history_size=2)
    hub.publish(TOPIC, _snapshot(120))
    hub.publish(TOPIC, ChannelMessage("recording_status", {"isRecording": True}))
    for seconds in (119, 118, 117):
        hub.publish(TOPIC, QuestionSentEvent(question=str(seconds)).to_message())

    result = hub.poll(TOPIC, since=1)

    events = [env.message.event for env in result.envelopes]
    assert events[0] == "recording_status"
    assert events.count("question_sent") == 2
    assert [env.cursor for env in result.envelopes] == sorted(env.cursor for env in result.envelopes)


def test_audience_counts_recent_pollers() -> None:
    clock = FakeClock()
    hub = ChannelHub(audience_window_seconds=10, clock=clock)
    hub.publish(TOPIC, _snapshot(120))
    hub.poll(TOPIC, client_id="a")
    hub.poll(TOPIC, client_id="b")
    hub.poll(TOPIC, client_id="a")
    assert hub.audience_count(TOPIC) == 2

    clock.value += 11
    hub.poll(TOPIC, client_id="b")
    assert hub.audience_count(TOPIC) == 1
    assert hub.audience_count("lecture-timer-nobody") == 0


def test_latest_snapshot_reads_retained_timer_update() -> None:
    hub = ChannelHub()
    assert hub.latest_snapshot(TOPIC) is None
    hub.publish(TOPIC, _snapshot(42))
    assert hub.latest_snapshot(TOPIC).next_question_in == 42


def test_hub_channel_delivers_to_sync_subscribers() -> None:
    hub = ChannelHub()
    channel = HubChannel(hub)
    received = MessageRecorder()
    subscription = channel.subscribe(TOPIC, received)

    channel.publish(TOPIC, _snapshot(10))
    subscription.unsubscribe()
    channel.publish(TOPIC, _snapshot(9))

    assert [message.payload["nextQuestionIn"] for message in received.messages] == [10]


def test_stream_gets_retained_state_then_live_envelopes() -> None:
    hub = ChannelHub()
    hub.publish(TOPIC, _snapshot(120))

    async def scenario() -> tuple[list[RelayEnvelope], RelayEnvelope | None, RelayEnvelope | None, int, int]:
        async with hub.open_stream(TOPIC) as stream:
            retained = list(stream.retained)
            hub.publish(TOPIC, QuestionSentEvent(question="Q").to_message())
            live = await stream.get(timeout=1.0)
            idle = await stream.get(timeout=0.01)
            during = hub.audience_count(TOPIC)
        return retained, live, idle, during, hub.audience_count(TOPIC)

    retained, live, idle, during, after = asyncio.run(scenario())

    assert [env.message.event for env in retained] == ["timer_update"]
    assert live is not None and live.message.event == "question_sent"
    assert idle is None
    assert during == 1
    assert after == 0


def test_envelope_dict_round_trip_keeps_cursor() -> None:
    envelope = ChannelHub().publish(TOPIC, _snapshot(5))
    data = envelope.to_dict()

    assert data["cursor"] == 1
    assert data["event"] == "timer_update"
    assert RelayEnvelope.from_dict(data) == envelope
    with pytest.raises(ValueError):
        RelayEnvelope.from_dict({**data, "cursor": "1"})


def test_polling_unknown_topics_creates_nothing() -> None:
    hub = ChannelHub()

    for index in range(10_000):
        result = hub.poll(f"lecture-timer-junk-{index}", client_id=f"client-{index}")
        assert (result.cursor, result.envelopes) == (0, [])

    assert hub.topics() == []
    assert hub.audience_count("lecture-timer-junk-0") == 0


def test_topic_without_messages_is_dropped_when_its_last_subscriber_leaves() -> None:
    hub = ChannelHub()
    first = hub.subscribe("lecture-timer-empty", MessageRecorder())
    second = hub.subscribe("lecture-timer-empty", MessageRecorder())

    first.unsubscribe()
    assert hub.topics() == ["lecture-timer-empty"]
    second.unsubscribe()
    assert hub.topics() == []

    async def scenario() -> list[str]:
        async with hub.open_stream("lecture-timer-stream"):
            during = hub.topics()
        return during

    assert asyncio.run(scenario()) == ["lecture-timer-stream"]
    assert hub.topics() == []


def test_topic_with_retained_state_outlives_its_subscribers() -> None:
    hub = ChannelHub()
    subscription = hub.subscribe(TOPIC, MessageRecorder())
    hub.publish(TOPIC, _snapshot(30))

    subscription.unsubscribe()

    assert hub.topics() == [TOPIC]
    assert hub.latest_snapshot(TOPIC).next_question_in == 30


def test_topic_limit_evicts_the_least_recently_active_idle_topic() -> None:
    clock = FakeClock()
    hub = ChannelHub(max_topics=3, audience_window_seconds=10, clock=clock)
    hub.subscribe("lecture-timer-live", MessageRecorder())
    clock.value += 1
    hub.publish("lecture-timer-old", _snapshot(10))
    clock.value += 1
    hub.publish("lecture-timer-recent", _snapshot(20))
    clock.value += 1
    hub.poll("lecture-timer-old")

    hub.publish("lecture-timer-new", _snapshot(30))

    assert hub.topics() == ["lecture-timer-live", "lecture-timer-new", "lecture-timer-old"]


def test_recent_pollers_keep_a_topic_from_eviction(caplog) -> None:
    clock = FakeClock()
    hub = ChannelHub(max_topics=1, audience_window_seconds=10, clock=clock)
    hub.publish(TOPIC, _snapshot(10))
    hub.poll(TOPIC, client_id="student")

    with caplog.at_level(logging.WARNING):
        hub.publish("lecture-timer-other", _snapshot(20))
    assert hub.topics() == ["lecture-timer-other", TOPIC]
    assert "none are idle" in caplog.text

    clock.value += 11
    hub.publish("lecture-timer-third", _snapshot(30))
    assert TOPIC not in hub.topics()


def test_topic_limit_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ChannelHub(max_topics=0)
