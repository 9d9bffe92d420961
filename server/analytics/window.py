"""
Window Aggregator

Folds StoryEvents into hourly buckets. Exactly one bucket is open at a time;
an event for a later hour finalizes it (plus one empty bucket per quiet hour
in between) and opens the new hour. Events for hours that are already
finalized only feed the cumulative ranks. Events stamped more than one hour
past the wall-clock hour are dropped so a bad clock upstream can never drag
the window forward.

ingest() and tick() share one lock, which makes them the single writer for
both the open bucket and the history store.

Usage:
    store = HistoryStore(retention=24)
    aggregator = WindowAggregator(store, max_stories_per_hour=500)
    aggregator.ingest(event)                 # from the broker consumer
    await aggregator.run_ticker(shutdown)    # time-based finalization
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from hn_streamer.core.types import RecentIdCache
from hn_streamer.models.story import StoryEvent

from .buckets import HistoricalDigest, HourBucket
from .history import HistoryStore
from .ranking import ONE_HOUR, floor_to_hour
from .words import WordCounter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestResult(str, Enum):
    APPENDED = "appended"
    LATE = "late"
    DUPLICATE = "duplicate"
    FUTURE = "future"


@dataclass
class AggregatorStats:
    ingested: int = 0
    late: int = 0
    duplicates: int = 0
    future: int = 0
    finalized: int = 0
    empty_finalized: int = 0
    dropped_digests: int = 0


class WindowAggregator:
    """
    Hourly tumbling-window aggregator.

    Args:
        store:                  History store receiving finalized digests
        max_stories_per_hour:   Stories retained per open bucket
        digest_story_limit:     Stories kept in each finalized digest
        top_n:                  Length of the per-hour author/domain/word ranks
        dedupe_capacity:        Recent event IDs remembered for dedupe (0 disables)
        finalized_queue:        Optional queue receiving every finalized digest
        clock:                  Returns the current UTC time
    """

    def __init__(
        self,
        store: HistoryStore,
        *,
        max_stories_per_hour: int = 500,
        digest_story_limit: int = 30,
        top_n: int = 10,
        dedupe_capacity: int = 0,
        finalized_queue: Optional[asyncio.Queue[HistoricalDigest]] = None,
        word_counter: Optional[WordCounter] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._max_stories = max_stories_per_hour
        self._digest_story_limit = digest_story_limit
        self._top_n = top_n
        self._recent_ids = RecentIdCache(dedupe_capacity) if dedupe_capacity > 0 else None
        self._queue = finalized_queue
        self._word_counter = word_counter or WordCounter()
        self._clock = clock

        self._open: Optional[HourBucket] = None
        self._last_finalized_hour: Optional[datetime] = None
        self._lock = threading.Lock()
        self._stats = AggregatorStats()

    @property
    def stats(self) -> AggregatorStats:
        return self._stats

    @property
    def open_hour(self) -> Optional[datetime]:
        with self._lock:
            return self._open.hour_start if self._open is not None else None

    # ── Writer entry points ──

    def ingest(self, event: StoryEvent) -> IngestResult:
        """Route one event to the open bucket, a new bucket, or the cumulative ranks."""
        hour = floor_to_hour(event.fetched_at)
        if hour > floor_to_hour(self._clock()) + ONE_HOUR:
            with self._lock:
                self._stats.future += 1
            logger.warning(
                "Dropping story stamped in the future",
                extra={"story_id": event.id, "fetched_at": event.fetched_at.isoformat()},
            )
            return IngestResult.FUTURE
        with self._lock:
            if self._recent_ids is not None:
                if event.id in self._recent_ids:
                    self._stats.duplicates += 1
                    return IngestResult.DUPLICATE
                self._recent_ids.add(event.id)

            if self._open is None:
                if self._last_finalized_hour is not None and hour <= self._last_finalized_hour:
                    return self._merge_late(event, hour)
                self._open = self._new_bucket(hour)
            elif hour < self._open.hour_start:
                return self._merge_late(event, hour)
            elif hour > self._open.hour_start:
                self._roll_over(hour)

            self._open.add(event, self._word_counter)
            self._stats.ingested += 1
            return IngestResult.APPENDED

    def tick(self, now: Optional[datetime] = None) -> list[HistoricalDigest]:
        """
        Time-based trigger.

        Opens the current hour when nothing is open, or finalizes the open
        bucket (and any quiet hours) once the clock has moved past it.

        Returns the digests finalized by this call.
        """
        current = floor_to_hour(now or self._clock())
        with self._lock:
            if self._open is None:
                if self._last_finalized_hour is None or current > self._last_finalized_hour:
                    self._open = self._new_bucket(current)
                return []
            if current <= self._open.hour_start:
                return []
            return self._roll_over(current)

    def discard_open(self) -> Optional[HourBucket]:
        """Drop the open bucket without finalizing it. Used at shutdown."""
        with self._lock:
            bucket, self._open = self._open, None
        if bucket is not None:
            logger.info(
                "Discarding partial hour",
                extra={"hour": bucket.hour_start.isoformat(), "stories": bucket.story_count},
            )
        return bucket

    async def run_ticker(self, shutdown: asyncio.Event, interval: float = 60.0) -> None:
        """Call tick() every `interval` seconds until shutdown, then discard the open hour."""
        logger.info(f"Finalize ticker running every {interval:.0f}s")
        try:
            while not shutdown.is_set():
                try:
                    self.tick()
                except Exception:
                    logger.exception("Unexpected error in finalize tick")
                try:
                    await asyncio.wait_for(shutdown.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.discard_open()
            logger.info("Finalize ticker stopped")

    # ── Internals (lock held) ──

    def _new_bucket(self, hour: datetime) -> HourBucket:
        return HourBucket(hour_start=hour, max_stories=self._max_stories)

    def _merge_late(self, event: StoryEvent, hour: datetime) -> IngestResult:
        self._stats.late += 1
        self._store.merge_into_cumulative(
            {event.domain: 1} if event.domain else {},
            {event.author: 1},
        )
        logger.debug(
            "Late event merged into cumulative ranks only",
            extra={"story_id": event.id, "hour": hour.isoformat()},
        )
        return IngestResult.LATE

    def _roll_over(self, target: datetime) -> list[HistoricalDigest]:
        """Finalize the open bucket and every quiet hour before `target`, then open `target`."""
        assert self._open is not None
        finalized = [self._finalize(self._open)]

        gap_start = self._open.hour_start + ONE_HOUR
        quiet_hours = int((target - gap_start) / ONE_HOUR)
        # Quiet hours older than the retention window would be evicted at once
        retention = self._store.retention
        if quiet_hours > retention:
            gap_start = target - retention * ONE_HOUR
            quiet_hours = retention
        for i in range(quiet_hours):
            finalized.append(self._finalize(self._new_bucket(gap_start + i * ONE_HOUR)))
            self._stats.empty_finalized += 1

        self._open = self._new_bucket(target)
        return finalized

    def _finalize(self, bucket: HourBucket) -> HistoricalDigest:
        digest = HistoricalDigest.from_bucket(
            bucket,
            story_limit=self._digest_story_limit,
            top_n=self._top_n,
        )
        self._store.append_finalized(digest)
        self._store.merge_into_cumulative(bucket.domain_counts, bucket.author_counts)
        self._last_finalized_hour = bucket.hour_start
        self._stats.finalized += 1

        if self._queue is not None:
            try:
                self._queue.put_nowait(digest)
            except asyncio.QueueFull:
                self._stats.dropped_digests += 1
                logger.warning(
                    "Digest queue full, not forwarding hour",
                    extra={"hour": bucket.hour_start.isoformat()},
                )

        logger.info(
            f"Finalized hour {bucket.hour_start.isoformat()}: "
            f"{bucket.story_count} stories, avg score {bucket.avg_score:.2f}"
        )
        return digest
