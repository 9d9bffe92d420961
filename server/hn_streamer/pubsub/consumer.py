"""
Story Consumer

Reads the story topic and feeds the window aggregator:

    pull -> story_from_dict -> sink.ingest(event) -> ack

A message is acknowledged only after the sink accepted the event, so an
ingest failure leaves it pending for redelivery. Payloads that fail strict
decoding are acknowledged and skipped. Broker errors back off and reconnect;
the loop only exits on shutdown.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from pub_sub_feed import FeedMessage, SubscriberError
from stream.interface import StreamConsumer

from ..core.types import ReconnectionState, ValidationError
from ..models.story import StoryEvent
from .serializer import story_from_dict

logger = logging.getLogger(__name__)


class StorySink(Protocol):
    def ingest(self, event: StoryEvent) -> Any: ...


@dataclass
class ConsumeStats:
    consumed: int = 0
    malformed: int = 0
    ingest_failures: int = 0
    broker_errors: int = 0
    reconnects: int = 0


class StoryConsumer:
    """
    Args:
        consumer:      FeedSubscriber, InMemoryConsumer or anything satisfying StreamConsumer
        sink:          Object with ingest(StoryEvent), normally the WindowAggregator
        poll_timeout:  Seconds each pull may block before re-checking shutdown
    """

    def __init__(
        self,
        consumer: StreamConsumer,
        sink: StorySink,
        *,
        poll_timeout: float = 1.0,
        reconnect_backoff: ReconnectionState | None = None,
    ) -> None:
        self._consumer = consumer
        self._sink = sink
        self._poll_timeout = poll_timeout
        self._backoff = reconnect_backoff or ReconnectionState()
        self._stats = ConsumeStats()

    @property
    def stats(self) -> ConsumeStats:
        return self._stats

    async def run(self, shutdown: asyncio.Event) -> None:
        logger.info("Story consumer started")
        while not shutdown.is_set():
            try:
                message = await self._consumer.pull(timeout=self._poll_timeout)
                if message is not None:
                    await self.handle(message)
                self._backoff.reset()
            except SubscriberError as e:
                self._stats.broker_errors += 1
                delay = self._backoff.next_delay()
                logger.warning(
                    "Broker read failed, reconnecting",
                    extra={"error": str(e), "delay_seconds": delay},
                )
                try:
                    await asyncio.wait_for(shutdown.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                if not shutdown.is_set():
                    await self._reconnect()
        logger.info(
            "Story consumer stopped",
            extra={"consumed": self._stats.consumed, "malformed": self._stats.malformed},
        )

    async def handle(self, message: FeedMessage) -> bool:
        """
        Decode, ingest and acknowledge one message.

        Returns True when the message was acknowledged.
        """
        try:
            event = story_from_dict(message.data)
        except ValidationError as e:
            self._stats.malformed += 1
            logger.warning(
                "Skipping malformed story message",
                extra={"message_id": message.message_id, "error": str(e)},
            )
            await self._consumer.ack(message.message_id)
            return True

        try:
            self._sink.ingest(event)
        except Exception as e:
            # Leave the message pending so it is redelivered
            self._stats.ingest_failures += 1
            logger.error(
                "Aggregator rejected story, leaving unacknowledged",
                extra={"message_id": message.message_id, "story_id": event.id, "error": str(e)},
                exc_info=True,
            )
            return False

        self._stats.consumed += 1
        await self._consumer.ack(message.message_id)
        return True

    async def _reconnect(self) -> None:
        reconnect = getattr(self._consumer, "reconnect", None)
        if reconnect is None:
            return
        try:
            await reconnect()
            self._stats.reconnects += 1
            logger.info("Story consumer reconnected")
        except SubscriberError as e:
            logger.warning("Reconnect failed", extra={"error": str(e)})
