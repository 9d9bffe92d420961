"""
Story Data Models

Core data structure for story events flowing from the fetcher through the
broker to the aggregator. Frozen dataclass with __post_init__ validation.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import urlsplit


def extract_domain(url: Optional[str]) -> Optional[str]:
    """
    Derive the ranking domain from a story URL.

    The host is lower-cased, credentials and port are dropped and a single
    leading "www." is stripped, so http://WWW.Example.com/x and
    https://example.com/y both give "example.com".

    Returns None when there is no URL or it has no host.
    """
    if not url:
        return None

    candidate = url.strip()
    if "//" not in candidate:
        candidate = f"//{candidate}"

    try:
        host = urlsplit(candidate).hostname
    except ValueError:
        return None
    if not host:
        return None

    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host or None


@dataclass(frozen=True)
class StoryEvent:
    """
    A single story as sampled at fetch time.

    Identity is `id`. Score and comment count are mutable upstream, so an
    event records the values seen when it was fetched.
    """

    id: int
    title: str
    author: str
    score: int
    comment_count: int
    fetched_at: datetime
    url: Optional[str] = None
    domain: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate required fields."""
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id <= 0:
            raise ValueError(f"id must be a positive integer, got {self.id!r}")
        if not self.title:
            raise ValueError("title must be non-empty string")
        if not self.author:
            raise ValueError("author must be non-empty string")
        if self.score < 0:
            raise ValueError(f"score must be >= 0, got {self.score}")
        if self.comment_count < 0:
            raise ValueError(f"comment_count must be >= 0, got {self.comment_count}")
        if self.fetched_at.tzinfo is None:
            raise ValueError("fetched_at must be timezone-aware")
        if self.url is None and self.domain is not None:
            raise ValueError("domain must be absent when url is absent")
