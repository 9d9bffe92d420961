"""
Core Type Definitions and Exceptions

Service-specific types and exceptions shared by the fetcher, the broker
glue and the aggregator.
"""
from __future__ import annotations

import random
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Optional


class TrackerError(Exception):
    """Base exception for all HN tracker errors."""

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ValidationError(TrackerError):
    """Raised when an item payload or a wire message fails validation."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = repr(value)[:100]  # Truncate long values
        super().__init__(message, ctx)
        self.field = field
        self.value = value


class ConnectionError(TrackerError):
    """Raised when an external call (story API, broker) fails."""

    def __init__(
        self,
        message: str,
        service: str,
        retry_count: int = 0,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["service"] = service
        ctx["retry_count"] = retry_count
        super().__init__(message, ctx)
        self.service = service
        self.retry_count = retry_count


@dataclass
class ReconnectionState:
    """Tracks retry attempts for exponential backoff."""

    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0
    multiplier: float = 2.0
    jitter_factor: float = 0.1
    current_delay: float = field(default=1.0, init=False)
    attempt_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.current_delay = self.initial_delay_seconds

    def next_delay(self) -> float:
        """Calculate next delay with exponential backoff and jitter."""
        delay = self.current_delay

        # Apply jitter (+/- jitter_factor)
        jitter = delay * self.jitter_factor
        delay = delay + random.uniform(-jitter, jitter)

        # Update for next attempt
        self.current_delay = min(
            self.current_delay * self.multiplier,
            self.max_delay_seconds,
        )
        self.attempt_count += 1

        return max(0.0, delay)

    def reset(self) -> None:
        """Reset state after a successful call."""
        self.current_delay = self.initial_delay_seconds
        self.attempt_count = 0


class RecentIdCache:
    """Bounded set of recently seen IDs; evicts the oldest first."""

    def __init__(self, capacity: int = 500) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._ids: OrderedDict[int, None] = OrderedDict()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def capacity(self) -> int:
        return self._capacity

    def add(self, item_id: int) -> None:
        if item_id in self._ids:
            self._ids.move_to_end(item_id)
            return
        self._ids[item_id] = None
        while len(self._ids) > self._capacity:
            self._ids.popitem(last=False)
