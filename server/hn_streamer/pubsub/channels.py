"""
Broker Topic Definitions

Topic and key scheme for the story pipeline.

Topics:
  hn-stories   — one entry per StoryEvent, key = story id
  hn-updates   — one entry per finalized hourly digest, key = hour (ISO-8601)

Both names can be overridden through configuration (STORY_TOPIC / DIGEST_TOPIC).
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.story import StoryEvent

STORIES = "hn-stories"
UPDATES = "hn-updates"


def story_key(event: StoryEvent) -> str:
    return str(event.id)


def digest_key(hour: datetime) -> str:
    return hour.isoformat()
