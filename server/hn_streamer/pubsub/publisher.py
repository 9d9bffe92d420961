"""
Story Publisher

Domain-aware wrapper around a stream producer (FeedPublisher in production,
InMemoryStream in --mock mode). Given a StoryEvent it:
  1. Serializes the event to its wire dict   (story_to_dict)
  2. Appends it to the story topic, key = id (producer.publish)
  3. Retries transient failures with bounded exponential backoff

After the retry ceiling the event is dropped and counted as lost, and
publish() returns False so the fetcher can stop the cycle and try again on
its next tick. Backoff sleeps end early once shutdown is set.

Usage:
    async with FeedPublisher(redis_url=...) as producer:
        publisher = StoryPublisher(producer, topic="hn-stories")
        await publisher.publish(event)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pub_sub_feed import PublisherError, SerializationError
from stream.interface import StreamProducer

from ..core.types import ReconnectionState
from ..models.story import StoryEvent
from .channels import STORIES, story_key
from .serializer import story_to_dict

logger = logging.getLogger(__name__)

__all__ = ["PublishStats", "StoryPublisher", "publish_with_retry"]


@dataclass
class PublishStats:
    published: int = 0
    retries: int = 0
    lost: int = 0


async def publish_with_retry(
    producer: StreamProducer,
    topic: str,
    data: dict[str, Any],
    *,
    key: str | None,
    max_retries: int,
    backoff: ReconnectionState,
    stats: PublishStats,
    shutdown: Optional[asyncio.Event] = None,
) -> bool:
    """
    Publish one payload, retrying PublisherErrors up to max_retries attempts.

    Returns True once the broker accepted the payload, False if it was dropped.
    Never raises for broker or serialization failures. When shutdown is set
    during a backoff wait, the remaining attempts are abandoned.
    """
    for attempt in range(1, max_retries + 1):
        try:
            await producer.publish(topic, data, key=key)
        except SerializationError as e:
            stats.lost += 1
            logger.error(
                "Dropping unserializable payload",
                extra={"topic": topic, "key": key, "error": str(e)},
            )
            return False
        except PublisherError as e:
            if attempt >= max_retries:
                stats.lost += 1
                logger.error(
                    "Publish failed after retries, dropping payload",
                    extra={"topic": topic, "key": key, "attempts": attempt, "error": str(e)},
                )
                return False
            stats.retries += 1
            delay = backoff.next_delay()
            logger.warning(
                "Publish failed, retrying",
                extra={"topic": topic, "key": key, "attempt": attempt,
                       "delay_seconds": delay, "error": str(e)},
            )
            if shutdown is None:
                await asyncio.sleep(delay)
                continue
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue
            stats.lost += 1
            logger.warning(
                "Shutdown during publish backoff, dropping payload",
                extra={"topic": topic, "key": key, "attempts": attempt},
            )
            return False
        else:
            stats.published += 1
            return True
    return False


class StoryPublisher:
    """
    Publishes StoryEvents to the story topic with bounded retries.

    Args:
        producer:            Anything satisfying StreamProducer
        topic:               Stream name (default "hn-stories")
        max_retries:         Attempts per event before it is counted as lost
        retry_delay_seconds: First backoff delay; doubles up to max_retry_delay_seconds
        shutdown:            Optional event that cuts a backoff wait short
    """

    def __init__(
        self,
        producer: StreamProducer,
        topic: str = STORIES,
        *,
        max_retries: int = 3,
        retry_delay_seconds: float = 0.5,
        max_retry_delay_seconds: float = 5.0,
        shutdown: Optional[asyncio.Event] = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self._producer = producer
        self._topic = topic
        self._max_retries = max_retries
        self._retry_delay = retry_delay_seconds
        self._max_retry_delay = max_retry_delay_seconds
        self._shutdown = shutdown
        self._stats = PublishStats()

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def stats(self) -> PublishStats:
        return self._stats

    async def publish(self, event: StoryEvent) -> bool:
        """
        Serialize and publish a story event.

        Returns True if the broker accepted it, False if it was dropped.
        """
        backoff = ReconnectionState(
            initial_delay_seconds=self._retry_delay,
            max_delay_seconds=self._max_retry_delay,
        )
        ok = await publish_with_retry(
            self._producer,
            self._topic,
            story_to_dict(event),
            key=story_key(event),
            max_retries=self._max_retries,
            backoff=backoff,
            stats=self._stats,
            shutdown=self._shutdown,
        )
        if ok:
            logger.debug(
                "StoryPublisher: story %s published to %s", event.id, self._topic
            )
        return ok
