"""
Tests for hn_streamer.hn_client.client

Runs against a local aiohttp TestServer that mimics the Firebase API.
"""
import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from hn_streamer.core.types import ConnectionError, ValidationError
from hn_streamer.hn_client.client import HackerNewsClient

ITEMS = {
    1: {"id": 1, "title": "First", "by": "alice", "score": 5, "url": "https://a.com/1"},
    2: {"id": 2, "title": "Second", "by": "bob", "score": 7},
}


# ── Fixtures ──────────────────────────────────────────────────────────────────

async def _topstories(request: web.Request) -> web.Response:
    return web.json_response([1, 2, "junk", 3])


async def _item(request: web.Request) -> web.Response:
    item_id = int(request.match_info["item_file"].removesuffix(".json"))
    return web.json_response(ITEMS.get(item_id))


async def _broken(request: web.Request) -> web.Response:
    return web.Response(status=500, text="boom")


async def _not_json(request: web.Request) -> web.Response:
    return web.Response(text="<html>nope</html>", content_type="text/html")


async def _not_a_list(request: web.Request) -> web.Response:
    return web.json_response({"ids": [1]})


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1.0)
    return web.json_response([])


@pytest.fixture
async def hn_server():
    app = web.Application()
    app.router.add_get("/v0/topstories.json", _topstories)
    app.router.add_get("/v0/item/{item_file}", _item)
    app.router.add_get("/v0/broken.json", _broken)
    app.router.add_get("/v0/notjson.json", _not_json)
    app.router.add_get("/v0/object.json", _not_a_list)
    app.router.add_get("/v0/slow.json", _slow)
    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
async def client(hn_server):
    async with HackerNewsClient(str(hn_server.make_url("/v0"))) as c:
        yield c


# ── fetch_listing() ───────────────────────────────────────────────────────────

async def test_fetch_listing_drops_non_integer_ids(client):
    assert await client.fetch_listing("topstories") == [1, 2, 3]


async def test_listing_http_error_raises_connection_error(client):
    with pytest.raises(ConnectionError, match="HTTP 500"):
        await client.fetch_listing("broken")


async def test_missing_listing_raises_connection_error(client):
    with pytest.raises(ConnectionError, match="HTTP 404"):
        await client.fetch_listing("nosuchlisting")


async def test_listing_not_json_raises_validation_error(client):
    with pytest.raises(ValidationError, match="Invalid JSON"):
        await client.fetch_listing("notjson")


async def test_listing_not_array_raises_validation_error(client):
    with pytest.raises(ValidationError, match="not a JSON array"):
        await client.fetch_listing("object")


async def test_timeout_raises_connection_error(hn_server):
    async with HackerNewsClient(str(hn_server.make_url("/v0")), timeout_seconds=0.1) as c:
        with pytest.raises(ConnectionError) as exc_info:
            await c.fetch_listing("slow")
    assert exc_info.value.service == "hacker-news"


# ── fetch_item() ──────────────────────────────────────────────────────────────

async def test_fetch_item_returns_raw_payload(client):
    item = await client.fetch_item(1)
    assert item["title"] == "First"
    assert item["by"] == "alice"


async def test_null_item_raises_validation_error(client):
    with pytest.raises(ValidationError, match="Item not found"):
        await client.fetch_item(999)


async def test_unopened_client_raises():
    c = HackerNewsClient("http://localhost:1")
    with pytest.raises(RuntimeError):
        await c.fetch_item(1)
