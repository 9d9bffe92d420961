"""
Ranking helpers shared by hourly digests and the all-time ranks.

Order is count descending, then key ascending, so equal counts always come
out in the same order.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

ONE_HOUR = timedelta(hours=1)


def rank_counts(
    counts: Mapping[str, int],
    limit: Optional[int] = None,
) -> list[tuple[str, int]]:
    """Return (key, count) pairs ordered by count desc, key asc, capped at limit."""
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    if limit is not None:
        return ordered[: max(0, limit)]
    return ordered


def floor_to_hour(ts: datetime) -> datetime:
    """Truncate a timezone-aware timestamp to the start of its UTC hour."""
    if ts.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")
    return ts.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)
