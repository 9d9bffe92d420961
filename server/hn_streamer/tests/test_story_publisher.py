"""
Tests for hn_streamer.pubsub.publisher
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from hn_streamer.models.story import StoryEvent
from hn_streamer.pubsub.channels import STORIES
from hn_streamer.pubsub.publisher import StoryPublisher
from pub_sub_feed import PublisherError, SerializationError
from stream.stub import InMemoryStream


def _event(item_id: int = 7) -> StoryEvent:
    return StoryEvent(
        id=item_id,
        title="A story",
        author="alice",
        score=3,
        comment_count=0,
        fetched_at=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
    )


def _publisher(producer, **kwargs) -> StoryPublisher:
    kwargs.setdefault("retry_delay_seconds", 0)
    return StoryPublisher(producer, **kwargs)


async def test_publishes_wire_form_keyed_by_id():
    stream = InMemoryStream()
    publisher = _publisher(stream)

    assert await publisher.publish(_event(7)) is True

    [message] = stream.get_messages(STORIES)
    assert message.data["id"] == 7
    assert message.data["commentCount"] == 0
    assert stream.key_of(message.message_id) == "7"
    assert publisher.stats.published == 1


async def test_custom_topic():
    stream = InMemoryStream()
    publisher = _publisher(stream, topic="stories-test")
    await publisher.publish(_event())
    assert len(stream.get_messages("stories-test")) == 1
    assert stream.get_messages(STORIES) == []


async def test_transient_failure_is_retried():
    producer = AsyncMock()
    producer.publish = AsyncMock(side_effect=[PublisherError("down"), "1-0"])
    publisher = _publisher(producer)

    assert await publisher.publish(_event()) is True
    assert producer.publish.await_count == 2
    assert publisher.stats.retries == 1
    assert publisher.stats.lost == 0


async def test_gives_up_after_retry_ceiling():
    producer = AsyncMock()
    producer.publish = AsyncMock(side_effect=PublisherError("down"))
    publisher = _publisher(producer, max_retries=3)

    assert await publisher.publish(_event()) is False
    assert producer.publish.await_count == 3
    assert publisher.stats.lost == 1
    assert publisher.stats.published == 0


async def test_serialization_error_is_not_retried():
    producer = AsyncMock()
    producer.publish = AsyncMock(side_effect=SerializationError("bad"))
    publisher = _publisher(producer)

    assert await publisher.publish(_event()) is False
    assert producer.publish.await_count == 1
    assert publisher.stats.lost == 1


def test_max_retries_must_be_positive():
    with pytest.raises(ValueError):
        StoryPublisher(InMemoryStream(), max_retries=0)
