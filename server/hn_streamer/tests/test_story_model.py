"""
Tests for hn_streamer.models.story
"""
from datetime import datetime, timezone

import pytest

from hn_streamer.models.story import StoryEvent, extract_domain

NOW = datetime(2025, 1, 1, 10, 15, tzinfo=timezone.utc)


def _event(**overrides) -> StoryEvent:
    fields = dict(
        id=1,
        title="Show HN: Something",
        author="alice",
        score=10,
        comment_count=2,
        fetched_at=NOW,
        url="https://a.com/x",
        domain="a.com",
    )
    fields.update(overrides)
    return StoryEvent(**fields)


# ── extract_domain ────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.Example.com/path", "example.com"),
        ("http://example.com:8080/x?y=1", "example.com"),
        ("https://user:pw@blog.example.org/", "blog.example.org"),
        ("example.com/no-scheme", "example.com"),
        ("https://www.www.example.com/", "www.example.com"),
        ("https://EXAMPLE.COM./", "example.com"),
    ],
)
def test_extract_domain(url, expected):
    assert extract_domain(url) == expected


@pytest.mark.parametrize("url", [None, "", "https:///nohost", "   "])
def test_extract_domain_without_host_is_none(url):
    assert extract_domain(url) is None


def test_extract_domain_is_idempotent():
    domain = extract_domain("https://www.News.Example.co.uk/a")
    assert extract_domain(f"http://{domain}/") == domain


# ── StoryEvent ────────────────────────────────────────────────────────────────

def test_valid_event_is_frozen():
    event = _event()
    with pytest.raises(AttributeError):
        event.score = 99


def test_text_post_has_no_url_or_domain():
    event = _event(url=None, domain=None)
    assert event.url is None
    assert event.domain is None


@pytest.mark.parametrize(
    "overrides, match",
    [
        ({"id": 0}, "id"),
        ({"id": True}, "id"),
        ({"title": ""}, "title"),
        ({"author": ""}, "author"),
        ({"score": -1}, "score"),
        ({"comment_count": -3}, "comment_count"),
        ({"fetched_at": datetime(2025, 1, 1)}, "timezone"),
        ({"url": None}, "domain"),
    ],
)
def test_invalid_event_raises(overrides, match):
    with pytest.raises(ValueError, match=match):
        _event(**overrides)
