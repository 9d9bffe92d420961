"""
Tests for analytics.buckets
"""
from datetime import datetime, timezone

from analytics.buckets import EMPTY_DIGEST, HistoricalDigest, HourBucket
from hn_streamer.models.story import StoryEvent

HOUR = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


def _event(item_id, score, domain=None, author="alice", comments=0, title="Story"):
    return StoryEvent(
        id=item_id,
        title=title,
        author=author,
        score=score,
        comment_count=comments,
        fetched_at=HOUR.replace(minute=item_id % 60),
        url=f"https://{domain}/" if domain else None,
        domain=domain,
    )


def test_bucket_sums_and_counts():
    bucket = HourBucket(hour_start=HOUR)
    bucket.add(_event(1, 10, "a.com", comments=4))
    bucket.add(_event(2, 20, "a.com", author="bob"))
    bucket.add(_event(3, 5, "b.com"))

    assert bucket.story_count == 3
    assert bucket.total_score == 35
    assert bucket.total_comments == 4
    assert bucket.author_counts == {"alice": 2, "bob": 1}
    assert bucket.domain_counts == {"a.com": 2, "b.com": 1}
    assert round(bucket.avg_score, 2) == 11.67


def test_text_posts_do_not_count_towards_domains():
    bucket = HourBucket(hour_start=HOUR)
    bucket.add(_event(1, 1))
    assert bucket.domain_counts == {}
    assert bucket.story_count == 1


def test_stories_past_cap_still_count():
    bucket = HourBucket(hour_start=HOUR, max_stories=2)
    for i in range(1, 5):
        bucket.add(_event(i, 10, "a.com"))

    assert [s.id for s in bucket.stories] == [1, 2]
    assert bucket.story_count == 4
    assert bucket.total_score == 40
    assert bucket.domain_counts["a.com"] == 4


def test_empty_bucket_digest():
    digest = HistoricalDigest.from_bucket(HourBucket(hour_start=HOUR))
    assert digest.avg_score == 0.0
    assert digest.to_dict() == {
        "hour": "2025-01-01T10:00:00+00:00",
        "stories": [],
        "avg_score": 0.0,
        "total_comments": 0,
        "top_authors": [],
        "domains": [],
    }


def test_digest_payload_shape():
    bucket = HourBucket(hour_start=HOUR)
    bucket.add(_event(1, 10, "a.com", comments=2))
    bucket.add(_event(2, 20, "a.com", author="bob"))
    bucket.add(_event(3, 5, "b.com"))
    bucket.add(_event(4, 0))

    payload = HistoricalDigest.from_bucket(bucket, story_limit=3, top_n=1).to_dict()

    assert payload["avg_score"] == 8.75
    assert payload["domains"] == [["a.com", 2]]
    assert payload["top_authors"] == [["alice", 3]]
    assert len(payload["stories"]) == 3
    assert payload["stories"][0] == {
        "title": "Story",
        "url": "https://a.com/",
        "author": "alice",
        "score": 10,
        "comments": 2,
        "domain": "a.com",
    }


def test_text_post_payload_omits_url_and_domain():
    bucket = HourBucket(hour_start=HOUR)
    bucket.add(_event(1, 3))
    story = HistoricalDigest.from_bucket(bucket).to_dict()["stories"][0]
    assert "url" not in story
    assert "domain" not in story


def test_empty_sentinel():
    assert EMPTY_DIGEST.is_empty_sentinel
    assert EMPTY_DIGEST.to_dict() == {
        "hour": None,
        "stories": [],
        "avg_score": 0,
        "total_comments": 0,
        "top_authors": [],
        "domains": [],
    }
