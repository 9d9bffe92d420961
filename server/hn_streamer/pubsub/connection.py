"""
Broker startup connect

FeedPublisher and FeedSubscriber raise on connect() when Redis is down.
connect_with_backoff() keeps retrying with exponential backoff instead,
so the service waits for the broker rather than exiting.

Usage:
    if not await connect_with_backoff(producer, shutdown, name="publisher"):
        return  # shutdown requested before Redis came up
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from pub_sub_feed import PublisherError, SubscriberError

from ..core.types import ReconnectionState

logger = logging.getLogger(__name__)


class Connectable(Protocol):
    async def connect(self) -> None: ...


async def connect_with_backoff(
    resource: Connectable,
    shutdown: asyncio.Event,
    *,
    name: str,
    backoff: Optional[ReconnectionState] = None,
) -> bool:
    """
    Call resource.connect() until it succeeds or shutdown is set.

    Returns True once connected, False if shutdown came first.
    """
    backoff = backoff or ReconnectionState()
    while not shutdown.is_set():
        try:
            await resource.connect()
        except (PublisherError, SubscriberError) as e:
            delay = backoff.next_delay()
            logger.warning(
                f"Broker unreachable for {name}, retrying",
                extra={"attempt": backoff.attempt_count, "delay_seconds": delay, "error": str(e)},
            )
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            continue
        if backoff.attempt_count:
            logger.info(f"Broker reachable for {name} after {backoff.attempt_count} retries")
        return True
    return False
