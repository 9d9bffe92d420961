"""
Tests for analytics.ranking and analytics.words
"""
from datetime import datetime, timedelta, timezone

import pytest

from analytics.ranking import floor_to_hour, rank_counts
from analytics.words import WordCounter


def test_rank_counts_orders_by_count_then_key():
    counts = {"b.com": 2, "a.com": 2, "c.com": 5, "d.com": 1}
    assert rank_counts(counts) == [("c.com", 5), ("a.com", 2), ("b.com", 2), ("d.com", 1)]


def test_rank_counts_limit():
    counts = {"x": 3, "y": 2, "z": 1}
    assert rank_counts(counts, 2) == [("x", 3), ("y", 2)]
    assert rank_counts(counts, 0) == []


def test_floor_to_hour_truncates_in_utc():
    ts = datetime(2025, 1, 1, 12, 59, 59, 999999, tzinfo=timezone(timedelta(hours=2)))
    assert floor_to_hour(ts) == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_floor_to_hour_rejects_naive():
    with pytest.raises(ValueError):
        floor_to_hour(datetime(2025, 1, 1, 10, 30))


def test_word_counter_skips_stopwords_and_short_words():
    counts = WordCounter().count_words("Show HN: The Rust compiler is in Rust, and it is fast")
    assert counts["rust"] == 2
    assert counts["show"] == 1
    assert counts["compiler"] == 1
    assert "the" not in counts
    assert "hn" not in counts
    assert "is" not in counts
