"""
Story Fetcher

Poll loop that turns Hacker News listings into StoryEvents:

    listing IDs -> skip recently seen -> fetch details in chunks
                -> normalize -> on_story callback (the publisher)

A failing item is skipped and counted; a failing listing skips the cycle.
When on_story returns False the broker is down past its retry ceiling: the
cycle stops there and that story, plus everything after it, stays unseen so
the next tick picks it up again. None of these ever stops the loop.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol

from hn_streamer.core.types import RecentIdCache, TrackerError
from hn_streamer.hn_client.normalizer import normalize_story
from hn_streamer.models.story import StoryEvent

logger = logging.getLogger(__name__)

StoryCallback = Callable[[StoryEvent], Awaitable[Any]]

# Pause between detail chunks so a cold start doesn't hammer the API
CHUNK_PAUSE_SECONDS = 0.1


class StorySource(Protocol):
    """What the fetcher needs from an API client."""

    async def fetch_listing(self, listing: str) -> list[int]: ...

    async def fetch_item(self, item_id: int) -> dict[str, Any]: ...


@dataclass
class FetcherStats:
    polls: int = 0
    poll_failures: int = 0
    items_fetched: int = 0
    item_errors: int = 0
    events_emitted: int = 0
    publish_failures: int = 0
    last_poll_at: Optional[datetime] = None


class StoryFetcher:
    """
    Polls the listing endpoints on a fixed interval and emits new stories.

    Args:
        client:             API client (HackerNewsClient or anything with the same methods)
        on_story:           Awaited once per new StoryEvent, in discovery order;
                            returning False pauses the cycle until the next tick
        listings:           Listing names to union, e.g. ("topstories", "newstories")
        poll_interval:      Seconds between poll cycles
        max_per_poll:       IDs considered from each listing per cycle
        seen_cache_size:    Capacity of the recent-IDs cache
        concurrency:        Item details fetched concurrently per chunk
    """

    def __init__(
        self,
        client: StorySource,
        on_story: StoryCallback,
        *,
        listings: Iterable[str] = ("topstories",),
        poll_interval: float = 60.0,
        max_per_poll: int = 100,
        seen_cache_size: int = 500,
        concurrency: int = 20,
        chunk_pause: float = CHUNK_PAUSE_SECONDS,
    ) -> None:
        self._client = client
        self._on_story = on_story
        self._listings = tuple(listings)
        self._poll_interval = poll_interval
        self._max_per_poll = max_per_poll
        self._seen = RecentIdCache(seen_cache_size)
        self._concurrency = max(1, concurrency)
        self._chunk_pause = chunk_pause
        self._stats = FetcherStats()

    @property
    def stats(self) -> FetcherStats:
        return self._stats

    @property
    def seen(self) -> RecentIdCache:
        return self._seen

    async def run(self, shutdown: asyncio.Event) -> None:
        """Poll until shutdown is set. Each wait wakes as soon as shutdown fires."""
        logger.info(
            f"Story fetcher polling {', '.join(self._listings)} "
            f"every {self._poll_interval:.0f}s"
        )
        while not shutdown.is_set():
            try:
                await self.poll_once()
            except Exception:
                # poll_once handles expected failures; anything else is a bug
                # but must not take the fetcher down
                logger.exception("Unexpected error in poll cycle")
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Story fetcher stopped")

    async def poll_once(self) -> list[StoryEvent]:
        """
        Run a single poll cycle.

        Returns the StoryEvents emitted during this cycle.
        """
        self._stats.polls += 1
        self._stats.last_poll_at = datetime.now(timezone.utc)

        try:
            ids = await self._discover_ids()
        except TrackerError as e:
            self._stats.poll_failures += 1
            logger.warning(
                "Listing fetch failed, retrying next tick",
                extra={"error": str(e)},
            )
            return []

        new_ids = [i for i in ids if i not in self._seen]
        if not new_ids:
            logger.debug("No new stories this cycle")
            return []

        emitted: list[StoryEvent] = []
        for start in range(0, len(new_ids), self._concurrency):
            chunk = new_ids[start:start + self._concurrency]
            results = await asyncio.gather(
                *(self._resolve(item_id) for item_id in chunk)
            )
            for event in results:
                if event is None:
                    continue
                try:
                    accepted = await self._on_story(event)
                except Exception as e:
                    self._seen.add(event.id)
                    logger.error(
                        "Story callback failed",
                        extra={"story_id": event.id, "error": str(e)},
                        exc_info=True,
                    )
                    continue
                if accepted is False:
                    self._stats.publish_failures += 1
                    logger.warning(
                        "Broker unavailable, pausing until next tick",
                        extra={"story_id": event.id, "emitted": len(emitted)},
                    )
                    return emitted
                self._seen.add(event.id)
                emitted.append(event)
                self._stats.events_emitted += 1

            if start + self._concurrency < len(new_ids) and self._chunk_pause > 0:
                await asyncio.sleep(self._chunk_pause)

        logger.info(
            f"Poll cycle: {len(ids)} listed, {len(new_ids)} new, {len(emitted)} emitted"
        )
        return emitted

    async def _discover_ids(self) -> list[int]:
        """Union the configured listings, preserving first-seen order."""
        ordered: dict[int, None] = {}
        for listing in self._listings:
            ids = await self._client.fetch_listing(listing)
            for item_id in ids[: self._max_per_poll]:
                ordered.setdefault(item_id, None)
        return list(ordered)

    async def _resolve(self, item_id: int) -> Optional[StoryEvent]:
        """Fetch and normalize one item. Returns None (and counts it) on failure."""
        try:
            raw = await self._client.fetch_item(item_id)
            self._stats.items_fetched += 1
            return normalize_story(raw, fetched_at=datetime.now(timezone.utc))
        except TrackerError as e:
            self._stats.item_errors += 1
            logger.warning(
                "Skipping story",
                extra={"story_id": item_id, "operation": "fetch_item", "error": str(e)},
            )
        except ValueError as e:
            # StoryEvent invariants
            self._stats.item_errors += 1
            logger.warning(
                "Skipping story with invalid fields",
                extra={"story_id": item_id, "error": str(e)},
            )
        return None
