"""
Mock Hacker News API for running without network access.

Serves synthetic listings and items through the same interface as
HackerNewsClient, so the real StoryFetcher, publisher and aggregator run
unchanged. Each listing call may surface a few brand-new stories; a small
share of items come back dead or without a URL to exercise the skip paths.

Usage:
    python main.py --mock
"""
from __future__ import annotations

import asyncio
import itertools
import random
import time
from typing import Any

from hn_streamer.core.types import ValidationError

TITLES: list[str] = [
    # ── Programming ───────────────────────────────────────────────
    "Show HN: A tiny Rust library for parsing configuration files",
    "Why we moved our monorepo from Bazel back to Make",
    "Python 3.14 free-threaded build benchmarks",
    "The hidden cost of microservices in small teams",
    "Writing a compiler in a weekend",
    "Understanding async cancellation in practice",
    "Postgres is enough for your job queue",
    "SQLite as an application file format",
    # ── AI ────────────────────────────────────────────────────────
    "Open weights language model matches frontier benchmarks",
    "Ask HN: How are you evaluating retrieval pipelines?",
    "Running inference on a Raspberry Pi cluster",
    "Transformers explained with spreadsheets",
    # ── Hardware & Science ────────────────────────────────────────
    "New battery chemistry doubles energy density in lab tests",
    "Reverse engineering a 1980s synthesizer chip",
    "Astronomers detect water vapor on a distant exoplanet",
    "A homemade particle detector built from webcam sensors",
    # ── Business ──────────────────────────────────────────────────
    "Launch HN: Managed Redis streams for small startups",
    "The economics of open source maintenance",
    "Remote work three years later: what the data says",
    "Ask HN: Who is hiring?",
]

DOMAINS = [
    "github.com", "www.nytimes.com", "arxiv.org", "blog.example.dev",
    "lwn.net", "www.theverge.com", "news.ycombinator.com", "medium.com",
]

AUTHORS = ["pg", "dang", "tptacek", "patio11", "jacquesm", "ingve", "todsacerdoti", "rbanffy"]

# Length of the simulated listing; items that fall off it are forgotten
LISTING_SIZE = 500


class MockHackerNewsClient:
    """
    Drop-in replacement for HackerNewsClient.

    Args:
        new_per_poll: Upper bound on new story IDs added per listing call
        latency:      Simulated (min, max) request latency in seconds
    """

    def __init__(
        self,
        *,
        new_per_poll: int = 5,
        latency: tuple[float, float] = (0.01, 0.05),
        seed: int | None = None,
    ) -> None:
        self._rng = random.Random(seed)
        self._ids = itertools.count(40_000_000)
        self._new_per_poll = new_per_poll
        self._latency = latency
        self._items: dict[int, dict[str, Any]] = {}
        self._listing: list[int] = []

    async def __aenter__(self) -> MockHackerNewsClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        return None

    async def _pause(self) -> None:
        await asyncio.sleep(self._rng.uniform(*self._latency))

    def _make_item(self, item_id: int) -> dict[str, Any]:
        item: dict[str, Any] = {
            "id": item_id,
            "type": "story",
            "title": self._rng.choice(TITLES),
            "by": self._rng.choice(AUTHORS),
            "score": self._rng.randint(1, 500),
            "descendants": self._rng.randint(0, 300),
            "time": int(time.time()),
        }
        if self._rng.random() < 0.85:
            slug = item["title"].lower().replace(" ", "-")[:40]
            item["url"] = f"https://{self._rng.choice(DOMAINS)}/{slug}"
        if self._rng.random() < 0.03:
            item["dead"] = True
        return item

    async def fetch_listing(self, listing: str) -> list[int]:
        await self._pause()
        for _ in range(self._rng.randint(0, self._new_per_poll)):
            item_id = next(self._ids)
            self._items[item_id] = self._make_item(item_id)
            self._listing.insert(0, item_id)
        for item_id in self._listing[LISTING_SIZE:]:
            self._items.pop(item_id, None)
        del self._listing[LISTING_SIZE:]
        return list(self._listing)

    async def fetch_item(self, item_id: int) -> dict[str, Any]:
        await self._pause()
        item = self._items.get(item_id)
        if item is None:
            raise ValidationError("Item not found", field="id", value=item_id)
        # Scores drift between fetches like the real API
        item["score"] += self._rng.randint(0, 5)
        return dict(item)
