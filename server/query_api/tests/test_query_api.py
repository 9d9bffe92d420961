"""
Tests for query_api.server

Served in-process with aiohttp's TestServer/TestClient.
"""
from datetime import datetime, timedelta, timezone

import pytest
from aiohttp.test_utils import TestClient, TestServer

from analytics.buckets import HistoricalDigest
from analytics.history import HistoryStore
from query_api.server import create_app

T0 = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return HistoryStore(retention=24)


@pytest.fixture
def health():
    return {"fetcher": True, "consumer": True}


@pytest.fixture
async def client(store, health):
    app = create_app(store, health=lambda: health, sources_limit=2, top_n=10)
    async with TestClient(TestServer(app)) as c:
        yield c


def _fill(store: HistoryStore) -> None:
    store.append_finalized(HistoricalDigest(
        hour=T0,
        story_count=1,
        avg_score=4.0,
        top_words=(("python", 1),),
    ))
    store.append_finalized(HistoricalDigest(
        hour=T0 + timedelta(hours=1),
        story_count=3,
        avg_score=35 / 3,
        total_comments=4,
        top_authors=(("alice", 2), ("bob", 1)),
        top_domains=(("a.com", 2), ("b.com", 1)),
        top_words=(("rust", 2), ("compiler", 1)),
    ))
    store.merge_into_cumulative({"a.com": 5, "b.com": 3, "c.com": 1}, {"alice": 4, "bob": 4})


# ── Empty store ───────────────────────────────────────────────────────────────

async def test_latest_before_any_hour_is_empty_shape(client):
    resp = await client.get("/api/latest")
    assert resp.status == 200
    assert await resp.json() == {
        "hour": None,
        "stories": [],
        "avg_score": 0,
        "total_comments": 0,
        "top_authors": [],
        "domains": [],
    }


async def test_history_before_any_hour(client):
    resp = await client.get("/api/history")
    assert resp.status == 200
    assert await resp.json() == {"hours": [], "last_update": None}


async def test_sources_before_any_hour(client):
    resp = await client.get("/api/sources")
    assert await resp.json() == []


# ── With data ─────────────────────────────────────────────────────────────────

async def test_latest_returns_newest_hour(client, store):
    _fill(store)
    body = await (await client.get("/api/latest")).json()
    assert body["hour"] == "2025-01-01T11:00:00+00:00"
    assert body["avg_score"] == 11.67
    assert body["domains"] == [["a.com", 2], ["b.com", 1]]
    assert body["top_authors"] == [["alice", 2], ["bob", 1]]


async def test_kafka_latest_matches_latest(client, store):
    _fill(store)
    legacy = await client.get("/api/kafka/latest")
    assert legacy.content_type == "application/json"
    assert await legacy.json() == await (await client.get("/api/latest")).json()


async def test_history_is_newest_first(client, store):
    _fill(store)
    body = await (await client.get("/api/history")).json()
    assert [h["hour"] for h in body["hours"]] == [
        "2025-01-01T11:00:00+00:00",
        "2025-01-01T10:00:00+00:00",
    ]
    assert body["last_update"] is not None


async def test_sources_uses_default_and_query_limit(client, store):
    _fill(store)
    assert await (await client.get("/api/sources")).json() == [["a.com", 5], ["b.com", 3]]
    assert await (await client.get("/api/sources?limit=3")).json() == [
        ["a.com", 5], ["b.com", 3], ["c.com", 1],
    ]


async def test_sources_rejects_bad_limit(client):
    resp = await client.get("/api/sources?limit=lots")
    assert resp.status == 400
    assert "limit" in (await resp.json())["error"]


async def test_top_domains_object_shape(client, store):
    _fill(store)
    body = await (await client.get("/api/top-domains?limit=3")).json()
    assert body == {"domains": [
        {"domain": "a.com", "count": 5},
        {"domain": "b.com", "count": 3},
        {"domain": "c.com", "count": 1},
    ]}


async def test_top_domains_shares_the_sources_default(client, store):
    _fill(store)
    body = await (await client.get("/api/top-domains")).json()
    sources = await (await client.get("/api/sources")).json()
    assert [[d["domain"], d["count"]] for d in body["domains"]] == sources
    assert len(sources) == 2


async def test_top_authors_break_ties_by_name(client, store):
    _fill(store)
    body = await (await client.get("/api/top-authors")).json()
    assert body == {"authors": [
        {"author": "alice", "count": 4},
        {"author": "bob", "count": 4},
    ]}


async def test_words_for_latest_hour(client, store):
    _fill(store)
    body = await (await client.get("/api/words")).json()
    assert body == {"hour": "2025-01-01T11:00:00+00:00", "words": [["rust", 2], ["compiler", 1]]}


# ── Health, CORS, errors ──────────────────────────────────────────────────────

async def test_healthcheck_ok(client):
    resp = await client.get("/api/healthcheck")
    body = await resp.json()
    assert resp.status == 200
    assert body["status"] == "ok"
    assert body["workers"] == {"fetcher": True, "consumer": True}


async def test_healthcheck_degraded_when_worker_died(client, health):
    health["consumer"] = False
    resp = await client.get("/api/healthcheck")
    assert resp.status == 503
    assert (await resp.json())["status"] == "degraded"


async def test_healthcheck_reports_worker_stats(store):
    last_poll = datetime(2025, 1, 1, 10, 5, tzinfo=timezone.utc)
    app = create_app(
        store,
        health=lambda: {"fetcher": True},
        stats=lambda: {"fetcher": {"polls": 3, "last_poll_at": last_poll}},
    )
    async with TestClient(TestServer(app)) as c:
        body = await (await c.get("/api/healthcheck")).json()
    assert body["stats"]["fetcher"] == {"polls": 3, "last_poll_at": str(last_poll)}


async def test_cors_headers_present(client):
    resp = await client.get("/api/latest")
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


async def test_cors_preflight(client):
    resp = await client.options("/api/history")
    assert resp.status == 204
    assert "GET" in resp.headers["Access-Control-Allow-Methods"]


async def test_unknown_path_is_404(client):
    resp = await client.get("/api/nope")
    assert resp.status == 404


async def test_broken_store_returns_json_500():
    class BrokenStore(HistoryStore):
        def latest(self):
            raise RuntimeError("store unavailable")

    async with TestClient(TestServer(create_app(BrokenStore()))) as c:
        resp = await c.get("/api/latest")
        assert resp.status == 500
        assert await resp.json() == {"error": "internal server error"}
