"""
Tests for hn_streamer.pubsub.connection
"""
import asyncio

from hn_streamer.core.types import ReconnectionState
from hn_streamer.pubsub.connection import connect_with_backoff
from pub_sub_feed import PublisherError, SubscriberError


class FlakyBroker:
    """connect() fails `failures` times, then succeeds."""

    def __init__(self, failures: int, error: type = PublisherError) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    async def connect(self) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("Cannot connect to Redis: connection refused")


def _fast_backoff() -> ReconnectionState:
    return ReconnectionState(initial_delay_seconds=0, max_delay_seconds=0)


async def test_connects_first_time():
    broker = FlakyBroker(failures=0)
    assert await connect_with_backoff(broker, asyncio.Event(), name="publisher") is True
    assert broker.calls == 1


async def test_retries_until_redis_answers():
    broker = FlakyBroker(failures=3, error=SubscriberError)
    backoff = _fast_backoff()

    ok = await connect_with_backoff(broker, asyncio.Event(), name="subscriber", backoff=backoff)

    assert ok is True
    assert broker.calls == 4
    assert backoff.attempt_count == 3


async def test_gives_up_when_shutdown_is_set():
    broker = FlakyBroker(failures=1_000_000)
    shutdown = asyncio.Event()
    backoff = ReconnectionState(initial_delay_seconds=30)

    task = asyncio.create_task(
        connect_with_backoff(broker, shutdown, name="publisher", backoff=backoff)
    )
    await asyncio.sleep(0.05)
    shutdown.set()

    assert await asyncio.wait_for(task, timeout=1.0) is False
    assert broker.calls == 1


async def test_does_not_connect_after_shutdown():
    broker = FlakyBroker(failures=0)
    shutdown = asyncio.Event()
    shutdown.set()

    assert await connect_with_backoff(broker, shutdown, name="publisher") is False
    assert broker.calls == 0
