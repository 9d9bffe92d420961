"""
History Store

Bounded ring of finalized hourly digests plus the all-time domain and
author ranks. One writer (the aggregator), many readers (the query API).
"""
from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from datetime import datetime, timezone
from typing import Mapping, Optional

from .buckets import EMPTY_DIGEST, HistoricalDigest
from .ranking import rank_counts

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Keeps the last `retention` finalized hours, oldest evicted first.

    Cumulative ranks only ever grow: evicting an hour from the ring does not
    take its counts back out.
    """

    def __init__(self, retention: int = 24) -> None:
        if retention < 1:
            raise ValueError("retention must be at least 1")
        self._retention = retention
        self._digests: deque[HistoricalDigest] = deque(maxlen=retention)
        self._domain_rank: Counter[str] = Counter()
        self._source_rank: Counter[str] = Counter()
        self._last_update: Optional[datetime] = None
        self._lock = threading.Lock()

    @property
    def retention(self) -> int:
        return self._retention

    @property
    def last_update(self) -> Optional[datetime]:
        with self._lock:
            return self._last_update

    def __len__(self) -> int:
        with self._lock:
            return len(self._digests)

    # ── Writes ──

    def append_finalized(self, digest: HistoricalDigest) -> None:
        if digest.hour is None:
            raise ValueError("cannot store the empty sentinel digest")
        with self._lock:
            self._digests.append(digest)
            self._last_update = datetime.now(timezone.utc)
        logger.debug(
            "Stored finalized hour",
            extra={"hour": digest.hour.isoformat(), "stories": digest.story_count},
        )

    def merge_into_cumulative(
        self,
        domain_counts: Mapping[str, int],
        author_counts: Mapping[str, int],
    ) -> None:
        with self._lock:
            self._domain_rank.update(domain_counts)
            self._source_rank.update(author_counts)

    # ── Reads ──

    def latest(self) -> HistoricalDigest:
        with self._lock:
            if not self._digests:
                return EMPTY_DIGEST
            return self._digests[-1]

    def recent(self, limit: Optional[int] = None) -> list[HistoricalDigest]:
        """Up to `limit` digests, newest first."""
        with self._lock:
            digests = list(reversed(self._digests))
        if limit is not None:
            return digests[: max(0, limit)]
        return digests

    def top_domains(self, n: int) -> list[tuple[str, int]]:
        with self._lock:
            return rank_counts(self._domain_rank, n)

    def top_sources(self, n: int) -> list[tuple[str, int]]:
        with self._lock:
            return rank_counts(self._source_rank, n)
