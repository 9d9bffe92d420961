"""
Digest Forwarder

Drains the aggregator's finalized-digest queue and appends each hour to the
digest topic (hn-updates), so downstream consumers get one entry per
finalized hour without polling the query API.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from hn_streamer.core.types import ReconnectionState
from hn_streamer.pubsub.channels import UPDATES, digest_key
from hn_streamer.pubsub.publisher import PublishStats, publish_with_retry
from stream.interface import StreamProducer

from .buckets import HistoricalDigest

logger = logging.getLogger(__name__)


def digest_to_message(digest: HistoricalDigest) -> dict[str, Any]:
    """Dashboard payload plus the fields only downstream consumers need."""
    message = digest.to_dict()
    message["story_count"] = digest.story_count
    message["top_words"] = [[word, count] for word, count in digest.top_words]
    return message


class DigestForwarder:
    def __init__(
        self,
        queue: asyncio.Queue[HistoricalDigest],
        producer: StreamProducer,
        topic: str = UPDATES,
        *,
        max_retries: int = 3,
        retry_delay_seconds: float = 0.5,
        poll_timeout: float = 1.0,
    ) -> None:
        self._queue = queue
        self._producer = producer
        self._topic = topic
        self._max_retries = max_retries
        self._retry_delay = retry_delay_seconds
        self._poll_timeout = poll_timeout
        self._stats = PublishStats()
        self._shutdown: asyncio.Event | None = None

    @property
    def stats(self) -> PublishStats:
        return self._stats

    async def forward(self, digest: HistoricalDigest) -> bool:
        if digest.hour is None:
            return False
        return await publish_with_retry(
            self._producer,
            self._topic,
            digest_to_message(digest),
            key=digest_key(digest.hour),
            max_retries=self._max_retries,
            backoff=ReconnectionState(initial_delay_seconds=self._retry_delay),
            stats=self._stats,
            shutdown=self._shutdown,
        )

    async def run(self, shutdown: asyncio.Event) -> None:
        self._shutdown = shutdown
        logger.info(f"Digest forwarder publishing to {self._topic}")
        while not shutdown.is_set():
            try:
                digest = await asyncio.wait_for(self._queue.get(), timeout=self._poll_timeout)
            except asyncio.TimeoutError:
                continue
            try:
                await self.forward(digest)
            finally:
                self._queue.task_done()
        logger.info(
            "Digest forwarder stopped",
            extra={"published": self._stats.published, "lost": self._stats.lost},
        )
