"""
HN Tracker Core Utilities

Exceptions and retry helpers shared across the pipeline.
"""
from hn_streamer.core.types import (
    ConnectionError,
    ReconnectionState,
    RecentIdCache,
    TrackerError,
    ValidationError,
)

__all__ = [
    "ConnectionError",
    "ReconnectionState",
    "RecentIdCache",
    "TrackerError",
    "ValidationError",
]
