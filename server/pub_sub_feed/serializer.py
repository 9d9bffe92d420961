"""
Feed Serializer

Converts between Python dicts and the JSON strings stored in Redis stream
entries. pub_sub_feed is intentionally decoupled from hn_streamer models — it
operates on plain dicts. The publisher/consumer layer in hn_streamer is
responsible for converting StoryEvent <-> dict before handing off here.

Wire format (envelope, stored under the entry field "payload"):
  {
    "channel": "hn-stories",
    "key": "41234567",
    "data": { ...item fields... }
  }
"""
from __future__ import annotations

import json
from typing import Any

PAYLOAD_FIELD = "payload"


class SerializationError(Exception):
    """Raised when serialization or deserialization fails."""


def serialize(channel: str, data: dict[str, Any], key: str | None = None) -> str:
    """
    Encode a channel name, optional key and data dict into a JSON string.

    Raises SerializationError if encoding fails.
    """
    try:
        return json.dumps({"channel": channel, "key": key, "data": data}, default=str)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to serialize feed message: {exc}") from exc


def deserialize(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """
    Decode a JSON string from Redis into (channel, data).

    Raises SerializationError if decoding fails or the envelope is malformed.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SerializationError(f"Feed message is not valid UTF-8: {exc}") from exc
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Failed to deserialize feed message: {exc}") from exc

    if not isinstance(envelope, dict) or "channel" not in envelope or "data" not in envelope:
        keys = list(envelope.keys()) if isinstance(envelope, dict) else type(envelope).__name__
        raise SerializationError(
            f"Malformed feed envelope — expected {{channel, data}}, got: {keys}"
        )
    if not isinstance(envelope["data"], dict):
        raise SerializationError(
            f"Malformed feed envelope — data must be an object, got "
            f"{type(envelope['data']).__name__}"
        )

    return envelope["channel"], envelope["data"]
