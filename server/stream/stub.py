"""
In-Memory Stream Stub

asyncio-based implementation of the stream protocols for local development
(--mock) and tests. Models a single consumer group per topic: every
published entry is delivered once, and entries pulled but not acked are
redelivered after reset_delivery(), like a consumer restart.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from collections import defaultdict, deque
from typing import Any

from pub_sub_feed import FeedMessage

logger = logging.getLogger(__name__)


class InMemoryStream:
    """
    Dev stub that satisfies StreamProducer and, through consumer(), StreamConsumer.

        stream = InMemoryStream()
        await stream.publish("hn-stories", {...}, key="1")
        consumer = stream.consumer("hn-stories")
        message = await consumer.pull(timeout=1.0)
        await consumer.ack(message.message_id)
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[FeedMessage]] = defaultdict(list)
        self._cursor: dict[str, int] = defaultdict(int)
        self._pending: dict[str, dict[str, FeedMessage]] = defaultdict(dict)
        self._redeliver: dict[str, deque[FeedMessage]] = defaultdict(deque)
        self._acked: set[str] = set()
        self._keys: dict[str, str | None] = {}
        self._seq = itertools.count(1)
        self._changed = asyncio.Condition()

    # ------------------------------------------------------------------
    # StreamProducer
    # ------------------------------------------------------------------

    async def publish(
        self,
        topic: str,
        data: dict[str, Any],
        key: str | None = None,
    ) -> str:
        message_id = f"{next(self._seq)}-0"
        self._entries[topic].append(
            FeedMessage(message_id=message_id, channel=topic, data=dict(data))
        )
        self._keys[message_id] = key
        async with self._changed:
            self._changed.notify_all()
        logger.debug(f"Published to {topic}: {message_id}")
        return message_id

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def consumer(self, topic: str) -> InMemoryConsumer:
        return InMemoryConsumer(self, topic)

    async def _next(self, topic: str, timeout: float | None) -> FeedMessage | None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        async with self._changed:
            while True:
                redeliver = self._redeliver[topic]
                if redeliver:
                    message = redeliver.popleft()
                    self._pending[topic][message.message_id] = message
                    return message
                cursor = self._cursor[topic]
                if cursor < len(self._entries[topic]):
                    message = self._entries[topic][cursor]
                    self._cursor[topic] = cursor + 1
                    self._pending[topic][message.message_id] = message
                    return message
                remaining = None if deadline is None else deadline - loop.time()
                if remaining is not None and remaining <= 0:
                    return None
                try:
                    await asyncio.wait_for(self._changed.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    return None

    def _ack(self, topic: str, message_id: str) -> None:
        self._pending[topic].pop(message_id, None)
        self._acked.add(message_id)

    def reset_delivery(self, topic: str) -> None:
        """Simulate a consumer restart: unacked entries are delivered again."""
        pending = self._pending.pop(topic, {})
        self._redeliver[topic].extend(pending.values())

    # ------------------------------------------------------------------
    # Introspection (for tests)
    # ------------------------------------------------------------------

    def get_messages(self, topic: str) -> list[FeedMessage]:
        """Return all messages published to a topic."""
        return list(self._entries.get(topic, []))

    def key_of(self, message_id: str) -> str | None:
        return self._keys.get(message_id)

    def pending_ids(self, topic: str) -> frozenset[str]:
        return frozenset(self._pending.get(topic, {}))

    @property
    def acked_ids(self) -> frozenset[str]:
        return frozenset(self._acked)


class InMemoryConsumer:
    """StreamConsumer view of one InMemoryStream topic."""

    def __init__(self, stream: InMemoryStream, topic: str) -> None:
        self._stream = stream
        self._topic = topic

    @property
    def topic(self) -> str:
        return self._topic

    async def pull(self, timeout: float | None = None) -> FeedMessage | None:
        return await self._stream._next(self._topic, timeout)

    async def ack(self, message_id: str) -> None:
        self._stream._ack(self._topic, message_id)
