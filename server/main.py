"""
hn-tracker server — top-level orchestrator

Runs all services in a single async event loop:
  - fetcher: HN listings → new items → StoryPublisher → hn-stories
  - consumer: hn-stories → StoryConsumer → WindowAggregator
  - ticker: time-based hourly finalization → HistoryStore
  - forwarder: finalized digests → hn-updates
  - api: aiohttp Query API over the HistoryStore

Usage:
    cd server
    python main.py            # live: HN API + Redis Streams
    python main.py --mock     # mock: synthetic stories + in-memory broker
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from dataclasses import asdict
from typing import Any, Awaitable

from dotenv import load_dotenv

load_dotenv(".env")

from hn_streamer.config import settings  # noqa: E402  (reads the environment loaded above)

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s - %(message)s",
)
logger = logging.getLogger("hn-tracker")


async def run(*, use_mock: bool = False) -> None:
    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    from analytics import DigestForwarder, HistoryStore, WindowAggregator
    from hn_streamer.hn_client import HackerNewsClient, StoryFetcher
    from hn_streamer.pubsub import StoryConsumer, StoryPublisher, connect_with_backoff
    from query_api import ApiServer

    hn = settings.hackernews
    broker = settings.broker
    agg = settings.aggregation

    # ── Broker ─────────────────────────────────────────────────────
    if use_mock:
        from mock_feed import MockHackerNewsClient
        from stream.stub import InMemoryStream

        stream = InMemoryStream()
        producer: Any = stream
        subscriber: Any = stream.consumer(broker.story_topic)
        client: Any = MockHackerNewsClient()
        logger.info("Mock mode: synthetic stories, in-memory broker")
    else:
        from pub_sub_feed import FeedPublisher, FeedSubscriber

        producer = FeedPublisher(
            redis_url=broker.url,
            timeout=broker.publish_timeout_seconds,
        )
        subscriber = FeedSubscriber(
            topic=broker.story_topic,
            group=broker.consumer_group,
            consumer=broker.consumer_name,
            redis_url=broker.url,
        )
        for name, resource in (("publisher", producer), ("subscriber", subscriber)):
            if not await connect_with_backoff(resource, shutdown_event, name=name):
                logger.info("Shutdown requested before Redis became reachable")
                await producer.close()
                await subscriber.close()
                return
        client = HackerNewsClient(hn.base_url, timeout_seconds=hn.request_timeout_seconds)
        await client.open()
        logger.info(f"Connected to Redis at {broker.url}")

    # ── Aggregation ────────────────────────────────────────────────
    store = HistoryStore(retention=agg.retention_hours)
    digest_queue: asyncio.Queue | None = None
    if broker.digest_topic:
        digest_queue = asyncio.Queue(maxsize=agg.retention_hours * 2)
    aggregator = WindowAggregator(
        store,
        max_stories_per_hour=agg.max_stories_per_hour,
        digest_story_limit=agg.digest_story_limit,
        top_n=agg.top_n,
        dedupe_capacity=hn.seen_cache_size if agg.dedupe_event_ids else 0,
        finalized_queue=digest_queue,
    )

    # ── Pipeline ───────────────────────────────────────────────────
    publisher = StoryPublisher(
        producer,
        broker.story_topic,
        max_retries=broker.publish_max_retries,
        shutdown=shutdown_event,
    )
    fetcher = StoryFetcher(
        client,
        publisher.publish,
        listings=hn.listings,
        poll_interval=hn.poll_interval_seconds,
        max_per_poll=hn.max_stories_per_poll,
        seen_cache_size=hn.seen_cache_size,
        concurrency=hn.fetch_concurrency,
    )
    consumer = StoryConsumer(subscriber, aggregator)
    forwarder = None
    if digest_queue is not None:
        forwarder = DigestForwarder(
            digest_queue,
            producer,
            broker.digest_topic,
            max_retries=broker.publish_max_retries,
        )

    workers: dict[str, asyncio.Task] = {}

    def _health() -> dict[str, bool]:
        return {name: not task.done() for name, task in workers.items()}

    def _stats() -> dict[str, Any]:
        report = {
            "fetcher": asdict(fetcher.stats),
            "publisher": asdict(publisher.stats),
            "consumer": asdict(consumer.stats),
            "aggregator": asdict(aggregator.stats),
        }
        if forwarder is not None:
            report["forwarder"] = asdict(forwarder.stats)
        return report

    api = ApiServer(
        store,
        host=settings.api.host,
        port=settings.api.port,
        health=_health,
        stats=_stats,
        sources_limit=agg.sources_limit,
        top_n=agg.top_n,
    )

    # ── Start services ─────────────────────────────────────────────
    logger.info("Starting hn-tracker server")
    await api.start()

    def _spawn(name: str, coro: Awaitable[None]) -> None:
        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(_report_exit)
        workers[name] = task

    def _report_exit(task: asyncio.Task) -> None:
        if task.cancelled() or shutdown_event.is_set():
            return
        exc = task.exception()
        logger.error(
            f"Worker {task.get_name()} exited unexpectedly",
            exc_info=exc,
        )

    _spawn("ticker", aggregator.run_ticker(shutdown_event, agg.finalize_check_seconds))
    _spawn("consumer", consumer.run(shutdown_event))
    if forwarder is not None:
        _spawn("forwarder", forwarder.run(shutdown_event))
    else:
        logger.info("DIGEST_TOPIC is empty, digest forwarding disabled")
    _spawn("fetcher", fetcher.run(shutdown_event))

    # ── Wait for shutdown ──────────────────────────────────────────
    await shutdown_event.wait()

    # ── Teardown ───────────────────────────────────────────────────
    logger.info("Shutting down...")

    await asyncio.gather(*workers.values(), return_exceptions=True)
    await api.stop()

    if not use_mock:
        await client.close()
        await subscriber.close()
        await producer.close()

    f, p, c, a = fetcher.stats, publisher.stats, consumer.stats, aggregator.stats
    logger.info(
        f"Final - polls: {f.polls}, emitted: {f.events_emitted}, item errors: {f.item_errors}, "
        f"paused cycles: {f.publish_failures}, "
        f"published: {p.published}, lost: {p.lost}, "
        f"consumed: {c.consumed}, malformed: {c.malformed}, "
        f"hours finalized: {a.finalized}, late: {a.late}, future: {a.future}"
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="hn-tracker server")
    parser.add_argument("--mock", action="store_true", help="Use synthetic stories and an in-memory broker")
    args = parser.parse_args()
    asyncio.run(run(use_mock=args.mock))
