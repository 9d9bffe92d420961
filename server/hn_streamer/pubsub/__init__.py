"""
hn_streamer.pubsub — Story-specific broker integration.

Public API:
    StoryPublisher       — publishes StoryEvents to the story topic with retries
    StoryConsumer        — pulls story messages into the window aggregator
    connect_with_backoff — retries a broker connect() until Redis answers
    publish_with_retry   — bounded-retry publish shared with the digest forwarder
    channels             — topic name constants and key helpers
    serializer           — story_to_dict() / story_from_dict()
"""
from .connection import connect_with_backoff
from .consumer import ConsumeStats, StoryConsumer
from .publisher import PublishStats, StoryPublisher, publish_with_retry
from . import channels, serializer

__all__ = [
    "ConsumeStats",
    "PublishStats",
    "StoryConsumer",
    "StoryPublisher",
    "channels",
    "connect_with_backoff",
    "publish_with_retry",
    "serializer",
]
