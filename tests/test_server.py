from __future__ import annotations

import asyncio
from decimal import Decimal

from aiohttp.test_utils import TestClient, TestServer

from conftest import FakeFetcher
from core.bus import AsyncIOBus
from core.config import AppConfig
from core.errors import FetchError
from core.models.market import AssetSymbol
from main import build_dashboard
from market.client import MarketDataClient
from server import create_app

BTC = AssetSymbol.BTC
ETH = AssetSymbol.ETH


def _run(fetcher: FakeFetcher, scenario):
    """Run `scenario(client)` against a fresh app and return its result."""

    async def runner():
        bus = AsyncIOBus()
        config = AppConfig()
        dashboard = build_dashboard(config, MarketDataClient(fetcher), bus)
        app = create_app(config=config, bus=bus, dashboard=dashboard)
        async with TestClient(TestServer(app)) as client:
            return await scenario(client)

    return asyncio.run(runner())


def test_health_and_idle_state(fetcher) -> None:
    async def scenario(client):
        health = await (await client.get("/health")).json()
        sync = await (await client.get("/state/sync")).json()
        holdings = await (await client.get("/state/holdings")).json()
        return health, sync, holdings

    health, sync, holdings = _run(fetcher, scenario)

    assert health == {"status": "ok", "sync": "idle", "assets": ["BTC", "ETH"]}
    assert sync["status"] == "idle"
    assert sync["has_data"] is False
    assert holdings["holdings"] == []
    assert holdings["total_value"] == "0"


def test_refresh_and_read_holdings(fetcher) -> None:
    async def scenario(client):
        refreshed = await client.post("/refresh?wait=true")
        holdings = await (await client.get("/state/holdings")).json()
        chart = await (await client.get("/state/chart")).json()
        market = await (await client.get("/state/market")).json()
        return refreshed.status, await refreshed.json(), holdings, chart, market

    status, sync, holdings, chart, market = _run(fetcher, scenario)

    assert status == 200
    assert sync["status"] == "ready"
    assert [(h["asset"], Decimal(h["total_value"])) for h in holdings["holdings"]] == [
        ("BTC", Decimal("15000")),
        ("ETH", Decimal("10000")),
    ]
    assert Decimal(holdings["total_value"]) == Decimal("25000")
    assert len(chart["labels"]) == 168
    assert [s["name"] for s in chart["series"]] == ["Bitcoin", "Ethereum"]
    assert [m["asset"] for m in market] == ["BTC", "ETH"]


def test_background_refresh_returns_accepted(fetcher) -> None:
    async def scenario(client):
        resp = await client.post("/refresh")
        for _ in range(100):
            sync = await (await client.get("/state/sync")).json()
            if sync["status"] == "ready":
                break
            await asyncio.sleep(0.01)
        return resp.status, sync

    status, sync = _run(fetcher, scenario)

    assert status == 202
    assert sync["status"] == "ready"


def test_refresh_conflict_while_loading(fetcher) -> None:
    async def scenario(client):
        fetcher.gate = asyncio.Event()
        first = await client.post("/refresh")
        for _ in range(100):
            if fetcher.calls:
                break
            await asyncio.sleep(0.01)
        second = await client.post("/refresh")
        fetcher.gate.set()
        return first.status, second.status

    first, second = _run(fetcher, scenario)

    assert first == 202
    assert second == 409


def test_failed_refresh_reports_state(fetcher) -> None:
    fetcher.failures[ETH] = FetchError(ETH, "HTTP 500")

    async def scenario(client):
        return await (await client.post("/refresh?wait=1")).json()

    sync = _run(fetcher, scenario)

    assert sync["status"] == "failed"
    assert sync["failed_assets"] == ["ETH"]


def test_market_asset_lookup(fetcher) -> None:
    async def scenario(client):
        missing = await client.get("/state/market/btc")
        unknown = await client.get("/state/market/DOGE")
        await client.post("/refresh?wait=true")
        found = await client.get("/state/market/btc")
        return missing.status, unknown.status, found.status, await found.json()

    missing, unknown, found, body = _run(fetcher, scenario)

    assert missing == 404
    assert unknown == 404
    assert found == 200
    assert Decimal(body["price"]) == Decimal("30000")


def test_trades_accepted_and_rejected(fetcher) -> None:
    async def scenario(client):
        ok = await client.post("/trades", json={"direction": "Buy", "asset": "btc", "amount": "0.25"})
        short = await client.post("/trades", json={"direction": "sell", "asset": "ETH", "amount": "10"})
        junk = await client.post("/trades", json={"direction": "buy", "asset": "ETH", "amount": "abc"})
        balance = await (await client.get("/state/balance")).json()
        return (ok.status, await ok.json()), (short.status, await short.json()), junk.status, balance

    ok, short, junk, balance = _run(fetcher, scenario)

    assert ok[0] == 200
    assert ok[1]["accepted"] is True
    assert short[0] == 422
    assert short[1]["message"] == "Insufficient balance."
    assert junk == 422
    assert Decimal(balance["BTC"]) == Decimal("0.75")
    assert Decimal(balance["ETH"]) == Decimal("5")


def test_malformed_trade_requests(fetcher) -> None:
    async def scenario(client):
        not_json = await client.post("/trades", data="nope")
        missing = await client.post("/trades", json={"direction": "buy"})
        bad_asset = await client.post("/trades", json={"direction": "buy", "asset": "DOGE", "amount": "1"})
        bad_direction = await client.post("/trades", json={"direction": "hold", "asset": "BTC", "amount": "1"})
        return not_json.status, missing.status, bad_asset.status, bad_direction.status

    assert _run(fetcher, scenario) == (400, 400, 400, 400)
