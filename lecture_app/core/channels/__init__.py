"""Broadcast channel abstraction and its backends."""

from .base import BroadcastChannel, ChannelError, MessageHandler, Subscription, UnknownEventError
from .hub import ChannelHub, HubChannel, HubStream, PollResult, RelayEnvelope
from .memory import InMemoryBroadcastChannel
from .remote import HttpPollChannel, HttpPushChannel, detect_channel

__all__ = [
    "BroadcastChannel",
    "ChannelError",
    "ChannelHub",
    "HttpPollChannel",
    "HttpPushChannel",
    "HubChannel",
    "HubStream",
    "InMemoryBroadcastChannel",
    "MessageHandler",
    "PollResult",
    "RelayEnvelope",
    "Subscription",
    "UnknownEventError",
    "detect_channel",
]
