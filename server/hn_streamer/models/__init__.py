"""
HN Tracker Data Models

Frozen dataclasses with validation.
"""
from hn_streamer.models.story import StoryEvent, extract_domain

__all__ = [
    "StoryEvent",
    "extract_domain",
]
