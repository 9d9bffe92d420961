"""
Hacker News Item Normalizer

Transforms raw item payloads from the Hacker News API into StoryEvents.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from hn_streamer.core.types import ValidationError
from hn_streamer.models.story import StoryEvent, extract_domain


def _as_count(raw: dict[str, Any], name: str) -> int:
    """Read an optional non-negative counter, defaulting to 0."""
    value = raw.get(name)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"Field {name} must be an integer",
            field=name,
            value=value,
        )
    return max(0, value)


def validate_item(raw: Any) -> None:
    """
    Validate a raw item payload.

    Args:
        raw: Decoded JSON body of /item/{id}.json

    Raises:
        ValidationError: If required fields are missing or invalid
    """
    if not isinstance(raw, dict):
        raise ValidationError(
            f"Expected dict, got {type(raw).__name__}",
            field="item",
            value=raw,
        )

    item_id = raw.get("id")
    if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id <= 0:
        raise ValidationError("Missing or invalid required field: id", field="id", value=item_id)

    if raw.get("deleted") or raw.get("dead"):
        raise ValidationError(
            "Item is deleted or dead",
            field="deleted",
            context={"item_id": item_id},
        )

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError(
            "Missing or empty required field: title",
            field="title",
            context={"item_id": item_id},
        )

    author = raw.get("by")
    if not isinstance(author, str) or not author.strip():
        raise ValidationError(
            "Missing or empty required field: by",
            field="by",
            context={"item_id": item_id},
        )

    url = raw.get("url")
    if url is not None and not isinstance(url, str):
        raise ValidationError("Field url must be a string", field="url", value=url)


def normalize_story(raw: dict[str, Any], fetched_at: Optional[datetime] = None) -> StoryEvent:
    """
    Transform a single item payload into a StoryEvent.

    Args:
        raw: Raw item payload from the Hacker News API
        fetched_at: Sampling time; defaults to now (UTC)

    Returns:
        Normalized StoryEvent

    Raises:
        ValidationError: If the item is invalid
    """
    validate_item(raw)

    if fetched_at is None:
        fetched_at = datetime.now(timezone.utc)

    url = (raw.get("url") or "").strip() or None

    return StoryEvent(
        id=raw["id"],
        title=raw["title"].strip(),
        author=raw["by"].strip(),
        score=_as_count(raw, "score"),
        comment_count=_as_count(raw, "descendants"),
        fetched_at=fetched_at,
        url=url,
        domain=extract_domain(url),
    )
