"""
Analytics Module

Hourly window aggregation, the finalized-hour history store and the digest
forwarder.
"""
from analytics.buckets import EMPTY_DIGEST, HistoricalDigest, HourBucket
from analytics.forwarder import DigestForwarder
from analytics.history import HistoryStore
from analytics.ranking import floor_to_hour, rank_counts
from analytics.window import AggregatorStats, IngestResult, WindowAggregator
from analytics.words import WordCounter

__all__ = [
    "AggregatorStats",
    "DigestForwarder",
    "EMPTY_DIGEST",
    "HistoricalDigest",
    "HistoryStore",
    "HourBucket",
    "IngestResult",
    "WindowAggregator",
    "WordCounter",
    "floor_to_hour",
    "rank_counts",
]
