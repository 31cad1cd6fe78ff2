"""Market data models -- asset identifiers and per-cycle market snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AssetSymbol(str, Enum):
    """The closed set of assets the dashboard can track."""

    BTC = "BTC"
    ETH = "ETH"


class AssetInfo(BaseModel):
    """Static metadata for an asset: provider id, display name, chart color."""

    model_config = ConfigDict(frozen=True)

    symbol: AssetSymbol
    coin_id: str
    name: str
    color: str


ASSETS: dict[AssetSymbol, AssetInfo] = {
    AssetSymbol.BTC: AssetInfo(
        symbol=AssetSymbol.BTC, coin_id="bitcoin", name="Bitcoin", color="#f7931a",
    ),
    AssetSymbol.ETH: AssetInfo(
        symbol=AssetSymbol.ETH, coin_id="ethereum", name="Ethereum", color="#627eea",
    ),
}


def asset_info(asset: AssetSymbol) -> AssetInfo:
    return ASSETS[AssetSymbol(asset)]


class MarketSnapshot(BaseModel):
    """One consistent set of market fields for an asset at a point in time.

    `low_24h <= price <= high_24h` is trusted from the provider and not
    re-checked here. `history` is oldest first, one point per time unit.
    """

    model_config = ConfigDict(frozen=True)

    asset: AssetSymbol
    price: Decimal
    change_percent_24h: Decimal
    high_24h: Decimal
    low_24h: Decimal
    volume_24h: Decimal
    market_cap: Decimal
    circulating_supply: Decimal
    all_time_high: Decimal
    all_time_low: Decimal
    history: tuple[Decimal, ...] = ()
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SnapshotSet(BaseModel):
    """The snapshots of one successful refresh batch, published as a unit."""

    model_config = ConfigDict(frozen=True)

    snapshots: dict[AssetSymbol, MarketSnapshot] = Field(default_factory=dict)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def get(self, asset: AssetSymbol) -> MarketSnapshot | None:
        return self.snapshots.get(asset)

    def __contains__(self, asset: object) -> bool:
        return asset in self.snapshots

    def __len__(self) -> int:
        return len(self.snapshots)
