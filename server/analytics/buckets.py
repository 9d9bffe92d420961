"""
Hourly Bucket Models

HourBucket is the open hour's working state, owned by the aggregator.
HistoricalDigest is the frozen summary that replaces it on finalization and
is the only form in which an hour is ever shared with readers.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from hn_streamer.models.story import StoryEvent

from .ranking import ONE_HOUR, rank_counts
from .words import WordCounter

_WORD_COUNTER = WordCounter()


@dataclass
class HourBucket:
    """
    Running statistics for the interval [hour_start, hour_start + 1h).

    `stories` keeps at most max_stories events in arrival order; events past
    the cap still count towards every sum and counter.
    """

    hour_start: datetime
    max_stories: int = 500
    stories: list[StoryEvent] = field(default_factory=list)
    story_count: int = 0
    total_score: int = 0
    total_comments: int = 0
    author_counts: Counter[str] = field(default_factory=Counter)
    domain_counts: Counter[str] = field(default_factory=Counter)
    word_counts: Counter[str] = field(default_factory=Counter)

    @property
    def hour_end(self) -> datetime:
        return self.hour_start + ONE_HOUR

    def add(self, event: StoryEvent, word_counter: WordCounter = _WORD_COUNTER) -> None:
        if len(self.stories) < self.max_stories:
            self.stories.append(event)
        self.story_count += 1
        self.total_score += event.score
        self.total_comments += event.comment_count
        self.author_counts[event.author] += 1
        if event.domain:
            self.domain_counts[event.domain] += 1
        self.word_counts.update(word_counter.count_words(event.title))

    @property
    def avg_score(self) -> float:
        if self.story_count == 0:
            return 0.0
        return self.total_score / self.story_count


def _story_to_payload(event: StoryEvent) -> dict[str, Any]:
    payload: dict[str, Any] = {"title": event.title}
    if event.url is not None:
        payload["url"] = event.url
    payload["author"] = event.author
    payload["score"] = event.score
    payload["comments"] = event.comment_count
    if event.domain is not None:
        payload["domain"] = event.domain
    return payload


@dataclass(frozen=True)
class HistoricalDigest:
    """Read-only summary of a finalized hour. `hour` is None only for EMPTY_DIGEST."""

    hour: Optional[datetime]
    stories: tuple[StoryEvent, ...] = ()
    story_count: int = 0
    avg_score: float = 0.0
    total_comments: int = 0
    top_authors: tuple[tuple[str, int], ...] = ()
    top_domains: tuple[tuple[str, int], ...] = ()
    top_words: tuple[tuple[str, int], ...] = ()

    @classmethod
    def from_bucket(
        cls,
        bucket: HourBucket,
        *,
        story_limit: int = 30,
        top_n: int = 10,
    ) -> HistoricalDigest:
        return cls(
            hour=bucket.hour_start,
            stories=tuple(bucket.stories[: max(0, story_limit)]),
            story_count=bucket.story_count,
            avg_score=bucket.avg_score,
            total_comments=bucket.total_comments,
            top_authors=tuple(rank_counts(bucket.author_counts, top_n)),
            top_domains=tuple(rank_counts(bucket.domain_counts, top_n)),
            top_words=tuple(rank_counts(bucket.word_counts, top_n)),
        )

    @property
    def is_empty_sentinel(self) -> bool:
        return self.hour is None

    def to_dict(self) -> dict[str, Any]:
        """Dashboard payload; avg_score is rounded to 2 decimals."""
        return {
            "hour": self.hour.isoformat() if self.hour is not None else None,
            "stories": [_story_to_payload(s) for s in self.stories],
            "avg_score": round(self.avg_score, 2),
            "total_comments": self.total_comments,
            "top_authors": [[author, count] for author, count in self.top_authors],
            "domains": [[domain, count] for domain, count in self.top_domains],
        }


EMPTY_DIGEST = HistoricalDigest(hour=None)
