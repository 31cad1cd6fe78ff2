from __future__ import annotations

import asyncio
from decimal import Decimal

import httpx
import pytest

from conftest import FakeFetcher, coin_payload
from core.errors import FetchError
from core.models.market import AssetSymbol, MarketSnapshot
from market.client import MarketDataClient, parse_snapshot


def test_parse_snapshot_maps_provider_fields() -> None:
    payload = coin_payload(30000, history=[29000, 29500, 30000])
    payload["market_data"]["price_change_percentage_24h"] = -1.25

    snapshot = parse_snapshot(AssetSymbol.BTC, payload)

    assert snapshot.asset == AssetSymbol.BTC
    assert snapshot.price == Decimal("30000")
    assert snapshot.change_percent_24h == Decimal("-1.25")
    assert snapshot.volume_24h == Decimal("1000000")
    assert snapshot.market_cap == Decimal("500000000")
    assert snapshot.circulating_supply == Decimal("19000000")
    assert snapshot.all_time_low == Decimal("1")
    assert snapshot.history == (Decimal("29000"), Decimal("29500"), Decimal("30000"))


def test_parse_snapshot_keeps_decimal_values_exact() -> None:
    payload = coin_payload(1)
    payload["market_data"]["current_price"] = {"usd": Decimal("0.1000000000000000055")}

    snapshot = parse_snapshot(AssetSymbol.ETH, payload)

    assert snapshot.price == Decimal("0.1000000000000000055")


def test_parse_snapshot_uses_configured_quote_currency() -> None:
    payload = coin_payload(100)
    payload["market_data"]["current_price"] = {"usd": 100, "eur": 90}
    for field in ("high_24h", "low_24h", "total_volume", "market_cap", "ath", "atl"):
        payload["market_data"][field]["eur"] = 1

    snapshot = parse_snapshot(AssetSymbol.BTC, payload, vs_currency="eur")

    assert snapshot.price == Decimal("90")


@pytest.mark.parametrize(
    "field",
    ["current_price", "price_change_percentage_24h", "high_24h", "low_24h", "total_volume",
     "market_cap", "circulating_supply", "ath", "atl", "sparkline_7d"],
)
def test_parse_snapshot_rejects_missing_field(field: str) -> None:
    payload = coin_payload(30000)
    del payload["market_data"][field]

    with pytest.raises(FetchError, match="missing field"):
        parse_snapshot(AssetSymbol.BTC, payload)


@pytest.mark.parametrize("bad", ["30000", True, None, {"nested": 1}, float("nan"), float("inf")])
def test_parse_snapshot_rejects_non_numeric_price(bad) -> None:
    payload = coin_payload(30000)
    payload["market_data"]["current_price"] = {"usd": bad}

    with pytest.raises(FetchError):
        parse_snapshot(AssetSymbol.BTC, payload)


def test_parse_snapshot_rejects_negative_price_and_bad_history() -> None:
    negative = coin_payload(30000)
    negative["market_data"]["current_price"] = {"usd": -1}
    with pytest.raises(FetchError, match="negative field"):
        parse_snapshot(AssetSymbol.BTC, negative)

    empty_history = coin_payload(30000, history=[])
    with pytest.raises(FetchError, match="non-empty"):
        parse_snapshot(AssetSymbol.BTC, empty_history)

    bad_point = coin_payload(30000, history=[1, "x", 3])
    with pytest.raises(FetchError, match=r"sparkline_7d.price\[1\]"):
        parse_snapshot(AssetSymbol.BTC, bad_point)


def test_parse_snapshot_rejects_non_object_payloads() -> None:
    with pytest.raises(FetchError, match="not an object"):
        parse_snapshot(AssetSymbol.BTC, ["nope"])
    with pytest.raises(FetchError, match="market_data"):
        parse_snapshot(AssetSymbol.BTC, {"error": "coin not found"})


def test_fetch_snapshot_wraps_unexpected_errors() -> None:
    fetcher = FakeFetcher(failures={AssetSymbol.BTC: httpx.ConnectError("boom")})
    client = MarketDataClient(fetcher)

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(client.fetch_snapshot(AssetSymbol.BTC))

    assert excinfo.value.asset == AssetSymbol.BTC
    assert "ConnectError" in excinfo.value.reason


def test_fetch_all_returns_independent_outcomes() -> None:
    fetcher = FakeFetcher(
        payloads={AssetSymbol.BTC: coin_payload(30000)},
        failures={AssetSymbol.ETH: FetchError(AssetSymbol.ETH, "HTTP 429")},
    )
    client = MarketDataClient(fetcher)

    results = asyncio.run(client.fetch_all([AssetSymbol.BTC, AssetSymbol.ETH]))

    assert isinstance(results[AssetSymbol.BTC], MarketSnapshot)
    assert isinstance(results[AssetSymbol.ETH], FetchError)
    assert results[AssetSymbol.ETH].reason == "HTTP 429"


def test_fetch_all_runs_fetches_concurrently() -> None:
    fetcher = FakeFetcher(payloads={
        AssetSymbol.BTC: coin_payload(30000),
        AssetSymbol.ETH: coin_payload(2000),
    })
    client = MarketDataClient(fetcher)

    async def scenario():
        fetcher.gate = asyncio.Event()
        task = asyncio.create_task(client.fetch_all([AssetSymbol.BTC, AssetSymbol.ETH]))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        # Both fetches started before either was allowed to finish
        started = list(fetcher.calls)
        fetcher.gate.set()
        return started, await task

    started, results = asyncio.run(scenario())

    assert sorted(started) == [AssetSymbol.BTC, AssetSymbol.ETH]
    assert results[AssetSymbol.ETH].price == Decimal("2000")
