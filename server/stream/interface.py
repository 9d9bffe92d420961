"""
Stream Protocol Definitions

Abstract interfaces that both the in-memory dev stub and the Redis-backed
pub_sub_feed classes satisfy. The story publisher, the story consumer and
the digest forwarder depend only on these protocols.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pub_sub_feed import FeedMessage


@runtime_checkable
class StreamProducer(Protocol):
    """Appends messages to a named stream."""

    async def publish(
        self,
        topic: str,
        data: dict[str, Any],
        key: str | None = None,
    ) -> str:
        """
        Publish a message to the stream.

        Returns the message ID assigned by the stream backend.
        """
        ...


@runtime_checkable
class StreamConsumer(Protocol):
    """Consumes one stream with explicit acknowledgement."""

    async def pull(self, timeout: float | None = None) -> FeedMessage | None:
        """
        Return the next undelivered (or pending) message, or None on timeout.
        """
        ...

    async def ack(self, message_id: str) -> None:
        """Acknowledge a message as processed."""
        ...
