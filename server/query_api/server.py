"""
Query API

Read-only HTTP/JSON view of the history store, served with aiohttp.web.
Every handler is a plain read: no data yet is a 200 with an empty shape,
never an error.

Endpoints:
    GET /api/latest          latest finalized hour
    GET /api/kafka/latest    same payload, pre-serialized (legacy path)
    GET /api/history         retained hours, newest first
    GET /api/sources         [[domain, count], ...] all-time domain rank
    GET /api/top-domains     {"domains": [{domain, count}, ...]}
    GET /api/top-authors     {"authors": [{author, count}, ...]}
    GET /api/words           title keywords of the latest hour
    GET /api/healthcheck     worker liveness and counters

Usage:
    server = ApiServer(store, host="0.0.0.0", port=3000, health=lambda: {"fetcher": True})
    await server.start()
    ...
    await server.stop()
"""
from __future__ import annotations

import functools
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional

from aiohttp import web

from analytics.history import HistoryStore

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], Mapping[str, bool]]
StatsReport = Callable[[], Mapping[str, Any]]
Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

STORE_KEY = web.AppKey("store", HistoryStore)
HEALTH_KEY = web.AppKey("health", object)
STATS_KEY = web.AppKey("stats", object)
SOURCES_LIMIT_KEY = web.AppKey("sources_limit", int)
TOP_N_KEY = web.AppKey("top_n", int)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _all_healthy() -> Mapping[str, bool]:
    return {}


def _parse_limit(request: web.Request, default: int) -> int:
    raw = request.query.get("limit")
    if raw is None:
        return default
    try:
        limit = int(raw)
    except ValueError:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": f"limit must be an integer, got {raw!r}"}),
            content_type="application/json",
        )
    return max(0, limit)


# ── Middleware ──

@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unhandled error serving request", extra={"path": request.path})
        return web.json_response({"error": "internal server error"}, status=500)


# ── Handlers ──

async def latest(request: web.Request) -> web.Response:
    return web.json_response(request.app[STORE_KEY].latest().to_dict())


async def kafka_latest(request: web.Request) -> web.Response:
    body = json.dumps(request.app[STORE_KEY].latest().to_dict())
    return web.Response(text=body, content_type="application/json")


async def history(request: web.Request) -> web.Response:
    store = request.app[STORE_KEY]
    last_update = store.last_update
    return web.json_response({
        "hours": [digest.to_dict() for digest in store.recent(store.retention)],
        "last_update": last_update.isoformat() if last_update else None,
    })


async def sources(request: web.Request) -> web.Response:
    limit = _parse_limit(request, request.app[SOURCES_LIMIT_KEY])
    ranked = request.app[STORE_KEY].top_domains(limit)
    return web.json_response([[domain, count] for domain, count in ranked])


async def top_domains(request: web.Request) -> web.Response:
    limit = _parse_limit(request, request.app[SOURCES_LIMIT_KEY])
    ranked = request.app[STORE_KEY].top_domains(limit)
    return web.json_response({
        "domains": [{"domain": domain, "count": count} for domain, count in ranked],
    })


async def top_authors(request: web.Request) -> web.Response:
    limit = _parse_limit(request, request.app[TOP_N_KEY])
    ranked = request.app[STORE_KEY].top_sources(limit)
    return web.json_response({
        "authors": [{"author": author, "count": count} for author, count in ranked],
    })


async def words(request: web.Request) -> web.Response:
    digest = request.app[STORE_KEY].latest()
    return web.json_response({
        "hour": digest.hour.isoformat() if digest.hour else None,
        "words": [[word, count] for word, count in digest.top_words],
    })


async def healthcheck(request: web.Request) -> web.Response:
    workers = dict(request.app[HEALTH_KEY]())
    healthy = all(workers.values())
    body = {
        "status": "ok" if healthy else "degraded",
        "workers": workers,
        "time": datetime.now(timezone.utc).isoformat(),
    }
    stats = request.app[STATS_KEY]
    if stats is not None:
        body["stats"] = dict(stats())
    return web.json_response(
        body,
        status=200 if healthy else 503,
        dumps=functools.partial(json.dumps, default=str),
    )


def create_app(
    store: HistoryStore,
    *,
    health: Optional[HealthCheck] = None,
    stats: Optional[StatsReport] = None,
    sources_limit: int = 100,
    top_n: int = 10,
) -> web.Application:
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[STORE_KEY] = store
    app[HEALTH_KEY] = health or _all_healthy
    app[STATS_KEY] = stats
    app[SOURCES_LIMIT_KEY] = sources_limit
    app[TOP_N_KEY] = top_n
    app.router.add_get("/api/latest", latest)
    app.router.add_get("/api/kafka/latest", kafka_latest)
    app.router.add_get("/api/history", history)
    app.router.add_get("/api/sources", sources)
    app.router.add_get("/api/top-domains", top_domains)
    app.router.add_get("/api/top-authors", top_authors)
    app.router.add_get("/api/words", words)
    app.router.add_get("/api/healthcheck", healthcheck)
    return app


class ApiServer:
    """Runs create_app() on an AppRunner/TCPSite pair so it shares the service's event loop."""

    def __init__(
        self,
        store: HistoryStore,
        *,
        host: str = "0.0.0.0",
        port: int = 3000,
        health: Optional[HealthCheck] = None,
        stats: Optional[StatsReport] = None,
        sources_limit: int = 100,
        top_n: int = 10,
    ) -> None:
        self._host = host
        self._port = port
        self._app = create_app(
            store,
            health=health,
            stats=stats,
            sources_limit=sources_limit,
            top_n=top_n,
        )
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        self._runner = web.AppRunner(self._app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info(f"Query API listening on http://{self._host}:{self._port}")

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Query API stopped")
