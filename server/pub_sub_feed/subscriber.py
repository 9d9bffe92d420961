"""
Feed Subscriber

Reads one Redis stream as a member of a consumer group and exposes a simple
blocking pull() / ack() interface. Offsets are committed only when the
caller acknowledges a message, so anything pulled but not acked is
redelivered to this consumer after a restart (at-least-once).

Usage:
    subscriber = FeedSubscriber(
        topic="hn-stories",
        group="hn-aggregator",
        consumer="aggregator-1",
        redis_url="redis://localhost:6379/0",
    )
    await subscriber.connect()

    while True:
        message = await subscriber.pull(timeout=1.0)
        if message is None:
            continue                          # timeout, check for shutdown
        handle(message.data)
        await subscriber.ack(message.message_id)

    await subscriber.close()

Context manager usage:
    async with FeedSubscriber(topic=..., group=..., consumer=..., redis_url=...) as sub:
        message = await sub.pull()
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError, ResponseError

from .serializer import PAYLOAD_FIELD, SerializationError, deserialize

logger = logging.getLogger(__name__)

# Stream ID meaning "entries delivered to me but not yet acknowledged"
_PENDING_ID = "0"
# Stream ID meaning "entries never delivered to any consumer of the group"
_NEW_ID = ">"


class SubscriberError(Exception):
    """Raised when a subscriber operation fails."""


@dataclass(frozen=True)
class FeedMessage:
    """A decoded stream entry awaiting acknowledgement."""

    message_id: str
    channel: str
    data: dict[str, Any]


def _decode(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


class FeedSubscriber:
    """
    Consumes one stream through a consumer group and delivers messages via pull().

    On first start the group is created at the beginning of the stream, so
    every retained entry is delivered. On restart the consumer first drains
    its own pending entries, then continues with new ones.

    Args:
        topic:         Stream name (e.g. "hn-stories").
        group:         Consumer group name; offsets are committed per group.
        consumer:      Consumer name within the group.
        redis_url:     Redis connection URL (e.g. "redis://localhost:6379/0").
        poll_interval: Seconds each XREADGROUP may block. 0 disables blocking.
        batch_size:    Maximum entries fetched per read.
    """

    def __init__(
        self,
        topic: str,
        group: str,
        consumer: str,
        redis_url: str,
        *,
        poll_interval: float = 1.0,
        batch_size: int = 100,
    ) -> None:
        if not topic:
            raise ValueError("topic must be a non-empty stream name")
        if not group or not consumer:
            raise ValueError("group and consumer must be non-empty")
        self._topic = topic
        self._group = group
        self._consumer = consumer
        self._redis_url = redis_url
        self._poll_interval = poll_interval
        self._batch_size = batch_size
        self._redis: Redis | None = None
        self._buffer: deque[tuple[Any, Any]] = deque()
        self._read_pending = True
        self._pending_cursor = _PENDING_ID
        self._malformed = 0

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the Redis connection and make sure the consumer group exists."""
        self._redis = Redis.from_url(self._redis_url, decode_responses=False)
        try:
            await self._redis.ping()
        except RedisError as exc:
            await self._redis.aclose()
            self._redis = None
            raise SubscriberError(f"Cannot connect to Redis: {exc}") from exc

        try:
            await self._redis.xgroup_create(
                self._topic, self._group, id=_PENDING_ID, mkstream=True
            )
            logger.info(
                "FeedSubscriber created group '%s' on '%s' at earliest offset",
                self._group,
                self._topic,
            )
        except ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise SubscriberError(f"Cannot create consumer group: {exc}") from exc
            logger.info(
                "FeedSubscriber resuming group '%s' on '%s'", self._group, self._topic
            )
        except RedisError as exc:
            raise SubscriberError(f"Cannot create consumer group: {exc}") from exc

        self._buffer.clear()
        self._read_pending = True
        self._pending_cursor = _PENDING_ID

    async def close(self) -> None:
        """Close the Redis connection. Unacked messages stay pending."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        self._buffer.clear()
        logger.info("FeedSubscriber disconnected from Redis")

    async def reconnect(self) -> None:
        """Drop the current connection and join the group again, pending entries first."""
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except RedisError as exc:
                logger.debug("Ignoring error while closing stale connection: %s", exc)
            self._redis = None
        await self.connect()

    # ── Context manager support ───────────────────────────────────────────────

    async def __aenter__(self) -> FeedSubscriber:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ── Main interface ────────────────────────────────────────────────────────

    async def pull(self, timeout: float | None = None) -> FeedMessage | None:
        """
        Block until the stream delivers a decodable message.

        Malformed envelopes are logged, acknowledged and skipped so a single
        bad entry can never wedge the subscription.

        Args:
            timeout: Seconds to wait before returning None.
                     Pass None (default) to block indefinitely.

        Returns:
            The next FeedMessage, or None if the timeout expires.

        Raises:
            SubscriberError: If not connected or the Redis connection breaks.
        """
        if self._redis is None:
            raise SubscriberError("FeedSubscriber is not connected — call connect() first")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        while True:
            while self._buffer:
                raw_id, fields = self._buffer.popleft()
                message = await self._decode_entry(raw_id, fields)
                if message is not None:
                    return message

            remaining: float | None = None
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return None

            entries = await self._read(remaining)
            if entries:
                self._buffer.extend(entries)
                continue

            if self._read_pending:
                # Backlog drained; switch to never-delivered entries
                self._read_pending = False
                continue

            if self._poll_interval <= 0:
                await asyncio.sleep(0.01)
            else:
                await asyncio.sleep(0)

    async def ack(self, message_id: str) -> None:
        """Commit a message so it is never redelivered to this group."""
        if self._redis is None:
            raise SubscriberError("FeedSubscriber is not connected — call connect() first")
        try:
            await self._redis.xack(self._topic, self._group, message_id)
        except RedisError as exc:
            raise SubscriberError(f"Redis XACK failed for {message_id}: {exc}") from exc

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _read(self, remaining: float | None) -> list[tuple[Any, Any]]:
        stream_id = self._pending_cursor if self._read_pending else _NEW_ID
        block: int | None = None
        if not self._read_pending and self._poll_interval > 0:
            wait = self._poll_interval if remaining is None else min(remaining, self._poll_interval)
            block = max(1, int(wait * 1000))

        try:
            response = await self._redis.xreadgroup(
                self._group,
                self._consumer,
                {self._topic: stream_id},
                count=self._batch_size,
                block=block,
            )
        except RedisError as exc:
            raise SubscriberError(f"Redis error while waiting for message: {exc}") from exc

        entries: list[tuple[Any, Any]] = []
        if not response:
            return entries
        for _stream, stream_entries in response:
            entries.extend(stream_entries or [])
        if self._read_pending and entries:
            # Each backlog entry is handed out once per connection
            self._pending_cursor = _decode(entries[-1][0])
        return entries

    async def _decode_entry(self, raw_id: Any, fields: Any) -> FeedMessage | None:
        message_id = _decode(raw_id)
        raw = None
        if fields:
            raw = fields.get(PAYLOAD_FIELD.encode()) or fields.get(PAYLOAD_FIELD)

        try:
            if raw is None:
                raise SerializationError("Stream entry has no payload field")
            channel, data = deserialize(raw)
        except SerializationError as exc:
            self._malformed += 1
            logger.warning(
                "Skipping malformed feed message",
                extra={"message_id": message_id, "topic": self._topic, "error": str(exc)},
            )
            await self.ack(message_id)
            return None

        return FeedMessage(message_id=message_id, channel=channel, data=data)

    # ── Introspection ─────────────────────────────────────────────────────────

    @property
    def topic(self) -> str:
        """The stream this subscriber reads."""
        return self._topic

    @property
    def malformed_count(self) -> int:
        """Number of entries skipped because they could not be decoded."""
        return self._malformed
