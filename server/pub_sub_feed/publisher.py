"""
Feed Publisher

Generic Redis Streams publisher. Accepts an explicit topic (stream name) and
a plain dict payload — no domain knowledge required. Entries are appended
with XADD, so they stay in the stream until consumer groups acknowledge them.

Usage:
    publisher = FeedPublisher(redis_url="redis://localhost:6379/0")
    await publisher.connect()

    message_id = await publisher.publish("hn-stories", {"id": 1}, key="1")

    await publisher.close()

Context manager usage:
    async with FeedPublisher(redis_url=...) as pub:
        await pub.publish("hn-stories", data)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .serializer import PAYLOAD_FIELD, serialize

logger = logging.getLogger(__name__)


class PublisherError(Exception):
    """Raised when a publish operation fails."""


class FeedPublisher:
    """
    Appends JSON-serializable dicts to Redis streams.

    The caller is responsible for deciding which topic to publish to.

    Args:
        redis_url:      Redis connection URL.
        timeout:        Seconds before a single XADD is abandoned.
        max_len:        Approximate cap on stream length (None = unbounded).
    """

    def __init__(
        self,
        redis_url: str,
        *,
        timeout: float = 5.0,
        max_len: int | None = 100_000,
    ) -> None:
        self._redis_url = redis_url
        self._timeout = timeout
        self._max_len = max_len
        self._redis: Redis | None = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the Redis connection."""
        self._redis = Redis.from_url(
            self._redis_url,
            decode_responses=False,
            socket_timeout=self._timeout,
            socket_connect_timeout=self._timeout,
        )
        try:
            await self._redis.ping()
            logger.info("FeedPublisher connected to Redis at %s", self._redis_url)
        except RedisError as exc:
            await self._redis.aclose()
            self._redis = None
            raise PublisherError(f"Cannot connect to Redis: {exc}") from exc

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("FeedPublisher disconnected from Redis")

    async def __aenter__(self) -> FeedPublisher:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    @property
    def connected(self) -> bool:
        return self._redis is not None

    # ── Publish ───────────────────────────────────────────────────────────────

    async def publish(
        self,
        topic: str,
        data: dict[str, Any],
        key: str | None = None,
    ) -> str:
        """
        Append data to a single stream.

        Args:
            topic: The Redis stream name.
            data:  JSON-serializable dict payload.
            key:   Optional partition/identity key carried in the envelope.

        Returns:
            The entry ID assigned by Redis (e.g. "1700000000000-0").

        Raises:
            PublisherError: If not connected, Redis errors or the call times out.
            SerializationError: If data cannot be serialized.
        """
        if self._redis is None:
            raise PublisherError("FeedPublisher is not connected — call connect() first")

        payload = serialize(topic, data, key)
        try:
            message_id = await asyncio.wait_for(
                self._redis.xadd(
                    topic,
                    {PAYLOAD_FIELD: payload},
                    maxlen=self._max_len,
                    approximate=True,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise PublisherError(f"Redis XADD timed out on topic '{topic}'") from exc
        except RedisError as exc:
            raise PublisherError(f"Redis publish failed on topic '{topic}'") from exc

        if isinstance(message_id, bytes):
            message_id = message_id.decode()
        logger.debug("Published to '%s' as %s", topic, message_id)
        return message_id
