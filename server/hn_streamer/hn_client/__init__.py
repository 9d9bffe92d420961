"""
Hacker News Client Module

Listing/item API client, item normalizer and the polling story fetcher.
"""
from hn_streamer.hn_client.client import HackerNewsClient
from hn_streamer.hn_client.fetcher import FetcherStats, StoryFetcher
from hn_streamer.hn_client.normalizer import normalize_story

__all__ = [
    "FetcherStats",
    "HackerNewsClient",
    "StoryFetcher",
    "normalize_story",
]
