from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.errors import FetchError
from core.models.market import AssetSymbol, MarketSnapshot

FIXED_NOW = datetime(2024, 10, 19, 12, 0, tzinfo=timezone.utc)


def coin_payload(price: float | int = 30000, history: list | None = None, **market_overrides) -> dict:
    """A CoinGecko-shaped /coins/{id} document."""
    market = {
        "current_price": {"usd": price, "eur": price * 0.9},
        "price_change_percentage_24h": 2.5,
        "high_24h": {"usd": price * 1.05},
        "low_24h": {"usd": price * 0.95},
        "total_volume": {"usd": 1_000_000},
        "market_cap": {"usd": 500_000_000},
        "circulating_supply": 19_000_000,
        "ath": {"usd": price * 2},
        "atl": {"usd": 1},
        "sparkline_7d": {"price": history if history is not None else [price] * 168},
    }
    market.update(market_overrides)
    return {"id": "coin", "market_data": market}


class FakeFetcher:
    """Async fetch function returning canned payloads or raising per asset."""

    def __init__(self, payloads: dict | None = None, failures: dict | None = None) -> None:
        self.payloads = dict(payloads or {})
        self.failures = dict(failures or {})
        self.calls: list[AssetSymbol] = []
        self.gate: asyncio.Event | None = None

    async def __call__(self, asset: AssetSymbol) -> dict:
        self.calls.append(asset)
        if self.gate is not None:
            await self.gate.wait()
        if asset in self.failures:
            raise self.failures[asset]
        if asset not in self.payloads:
            raise FetchError(asset, "no payload configured")
        return self.payloads[asset]


@pytest.fixture
def make_payload():
    return coin_payload


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(payloads={
        AssetSymbol.BTC: coin_payload(30000),
        AssetSymbol.ETH: coin_payload(2000),
    })


@pytest.fixture
def make_snapshot():
    def _make(asset: AssetSymbol, price: str, change: str = "0", history: list | None = None) -> MarketSnapshot:
        p = Decimal(price)
        return MarketSnapshot(
            asset=asset,
            price=p,
            change_percent_24h=Decimal(change),
            high_24h=p,
            low_24h=p,
            volume_24h=Decimal("1"),
            market_cap=Decimal("1"),
            circulating_supply=Decimal("1"),
            all_time_high=p,
            all_time_low=p,
            history=tuple(Decimal(str(v)) for v in (history or [price])),
            fetched_at=FIXED_NOW,
        )

    return _make
