"""Lightweight aiohttp server -- the JSON read/trade API.

Exposes the Dashboard to a presentation layer. Decimal values are
serialized as strings via pydantic's JSON mode so no precision is lost.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

from aiohttp import web
from pydantic import ValidationError

from core.models.market import AssetSymbol
from core.models.portfolio import TradeRequest

if TYPE_CHECKING:
    from core.bus import AsyncIOBus
    from core.config import AppConfig
    from engine.dashboard import Dashboard

logger = logging.getLogger(__name__)

DASHBOARD_KEY = web.AppKey("dashboard", object)
BUS_KEY = web.AppKey("bus", object)
CONFIG_KEY = web.AppKey("config", object)
REFRESH_TASKS_KEY = web.AppKey("refresh_tasks", set)


def create_app(
    config: AppConfig,
    bus: AsyncIOBus,
    dashboard: Dashboard,
) -> web.Application:
    """Create and configure the aiohttp application."""
    app = web.Application()

    app[CONFIG_KEY] = config
    app[BUS_KEY] = bus
    app[DASHBOARD_KEY] = dashboard
    app[REFRESH_TASKS_KEY] = set()

    app.router.add_get("/health", handle_health)
    app.router.add_get("/events", handle_stream_events)
    app.router.add_get("/state/sync", handle_get_sync)
    app.router.add_get("/state/holdings", handle_get_holdings)
    app.router.add_get("/state/balance", handle_get_balance)
    app.router.add_get("/state/chart", handle_get_chart)
    app.router.add_get("/state/market", handle_get_market)
    app.router.add_get("/state/market/{asset}", handle_get_market_asset)
    app.router.add_post("/refresh", handle_refresh)
    app.router.add_post("/trades", handle_trade)

    return app


def _dashboard(request: web.Request) -> Dashboard:
    return request.app[DASHBOARD_KEY]


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------

async def handle_health(request: web.Request) -> web.Response:
    """GET /health -- health check."""
    dashboard = _dashboard(request)
    return web.json_response({
        "status": "ok",
        "sync": dashboard.get_sync_state().status.value,
        "assets": [a.value for a in dashboard.assets],
    })


async def handle_stream_events(request: web.Request) -> web.StreamResponse:
    """GET /events -- Server-Sent Events stream of sync and trade events."""
    from core.models.events import Event

    bus: AsyncIOBus = request.app[BUS_KEY]

    response = web.StreamResponse(
        status=200,
        reason="OK",
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
    await response.prepare(request)

    queue: asyncio.Queue[Event] = asyncio.Queue()

    async def forward_event(event: Event) -> None:
        await queue.put(event)

    bus.subscribe("*", forward_event)

    try:
        while True:
            event = await queue.get()
            data = event.model_dump_json()
            await response.write(f"event: {event.type}\ndata: {data}\n\n".encode())
    except (asyncio.CancelledError, ConnectionResetError):
        pass
    finally:
        bus.unsubscribe("*", forward_event)

    return response


async def handle_get_sync(request: web.Request) -> web.Response:
    """GET /state/sync -- refresh lifecycle state."""
    return web.json_response(_dashboard(request).get_sync_state().model_dump(mode="json"))


async def handle_get_holdings(request: web.Request) -> web.Response:
    """GET /state/holdings -- holdings table rows plus the portfolio total."""
    dashboard = _dashboard(request)
    holdings = dashboard.get_holdings()
    return web.json_response({
        "holdings": [h.model_dump(mode="json") for h in holdings],
        "total_value": str(dashboard.get_total_value()),
        "sync": dashboard.get_sync_state().status.value,
    })


async def handle_get_balance(request: web.Request) -> web.Response:
    """GET /state/balance -- owned quantities."""
    balance = _dashboard(request).get_balance()
    return web.json_response(balance.model_dump(mode="json")["quantities"])


async def handle_get_chart(request: web.Request) -> web.Response:
    """GET /state/chart -- multi-series chart on a shared label axis."""
    return web.json_response(_dashboard(request).get_chart_series().model_dump(mode="json"))


async def handle_get_market(request: web.Request) -> web.Response:
    """GET /state/market -- latest market statistics for every asset."""
    stats = _dashboard(request).get_market_stats()
    return web.json_response([s.model_dump(mode="json") for s in stats])


async def handle_get_market_asset(request: web.Request) -> web.Response:
    """GET /state/market/{asset} -- latest market statistics for one asset."""
    raw = request.match_info["asset"].upper()
    try:
        asset = AssetSymbol(raw)
    except ValueError:
        return web.json_response({"error": f"Unknown asset: {raw}"}, status=404)

    snapshot = _dashboard(request).get_snapshot(asset)
    if snapshot is None:
        return web.json_response({"error": f"No market data for {raw}"}, status=404)
    return web.json_response(snapshot.model_dump(mode="json"))


async def handle_refresh(request: web.Request) -> web.Response:
    """POST /refresh -- start a refresh batch.

    Returns 409 while a batch is already loading. With `?wait=true` the
    response is sent after the batch finishes.
    """
    dashboard = _dashboard(request)
    if dashboard.get_sync_state().is_loading:
        return web.json_response(
            {"error": "Refresh already in progress",
             "state": dashboard.get_sync_state().model_dump(mode="json")},
            status=409,
        )

    if request.query.get("wait", "").lower() in ("1", "true", "yes"):
        await dashboard.refresh()
        return web.json_response(dashboard.get_sync_state().model_dump(mode="json"))

    tasks: set = request.app[REFRESH_TASKS_KEY]
    task = asyncio.create_task(dashboard.refresh())
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return web.json_response({"status": "started"}, status=202)


async def handle_trade(request: web.Request) -> web.Response:
    """POST /trades -- submit a simulated trade.

    Body: {"direction": "buy", "asset": "BTC", "amount": "0.25"}
    """
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return web.json_response({"error": "Invalid JSON"}, status=400)

    if not isinstance(body, dict) or not {"direction", "asset", "amount"} <= body.keys():
        return web.json_response(
            {"error": "Missing required fields: direction, asset, amount"},
            status=400,
        )

    try:
        trade = TradeRequest(
            direction=str(body["direction"]).lower(),
            asset=str(body["asset"]).upper(),
            amount_text="" if body["amount"] is None else str(body["amount"]),
        )
    except ValidationError as exc:
        return web.json_response(
            {"error": "Invalid trade request", "details": exc.errors(include_url=False, include_context=False)},
            status=400,
        )

    result = await _dashboard(request).submit_trade(trade)
    status = 200 if result.accepted else 422
    return web.json_response(result.model_dump(mode="json"), status=status)
