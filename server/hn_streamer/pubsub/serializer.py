"""
Story Event Serializer

Converts a StoryEvent into the plain dict that FeedPublisher appends to the
story topic, and back. The wire field set is fixed:

    id, title, url, author, score, commentCount, domain, fetchedAt

`url` and `domain` are null for text-only posts. Decoding is strict: a
payload with a missing or ill-typed field raises ValidationError instead of
producing a partial event.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..core.types import ValidationError
from ..models.story import StoryEvent

WIRE_FIELDS = ("id", "title", "url", "author", "score", "commentCount", "domain", "fetchedAt")


def story_to_dict(event: StoryEvent) -> dict[str, Any]:
    """
    Serialize a StoryEvent to a JSON-serializable dict.

    Field names use camelCase to match the dashboard-facing wire format.
    """
    return {
        "id": event.id,
        "title": event.title,
        "url": event.url,
        "author": event.author,
        "score": event.score,
        "commentCount": event.comment_count,
        "domain": event.domain,
        "fetchedAt": event.fetched_at.isoformat(),
    }


def _require(data: dict[str, Any], name: str, kind: type) -> Any:
    value = data.get(name)
    if value is None or isinstance(value, bool) or not isinstance(value, kind):
        raise ValidationError(
            f"Missing or invalid field: {name}",
            field=name,
            value=value,
        )
    return value


def _optional_str(data: dict[str, Any], name: str) -> str | None:
    value = data.get(name)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"Invalid field: {name}", field=name, value=value)
    return value


def _parse_timestamp(ts: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values and 'Z' as UTC."""
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(ts)
    except ValueError as e:
        raise ValidationError(
            f"Invalid timestamp format: {ts}",
            field="fetchedAt",
            value=ts,
        ) from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def story_from_dict(data: dict[str, Any]) -> StoryEvent:
    """
    Decode a wire dict into a StoryEvent.

    Raises:
        ValidationError: If any field is missing, ill-typed or violates
                         StoryEvent's invariants
    """
    if not isinstance(data, dict):
        raise ValidationError(
            f"Expected dict, got {type(data).__name__}",
            field="data",
            value=data,
        )

    try:
        return StoryEvent(
            id=_require(data, "id", int),
            title=_require(data, "title", str),
            author=_require(data, "author", str),
            score=_require(data, "score", int),
            comment_count=_require(data, "commentCount", int),
            fetched_at=_parse_timestamp(_require(data, "fetchedAt", str)),
            url=_optional_str(data, "url"),
            domain=_optional_str(data, "domain"),
        )
    except ValueError as e:
        raise ValidationError(
            f"Invalid story event: {e}",
            context={"story_id": data.get("id")},
        ) from e
