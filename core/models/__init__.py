"""Pydantic data models shared across all components."""

from core.models.chart import ChartData, ChartPoint, ChartSeries
from core.models.events import Event, EventTypes
from core.models.market import ASSETS, AssetInfo, AssetSymbol, MarketSnapshot, SnapshotSet
from core.models.portfolio import (
    Balance,
    HoldingRecord,
    TradeDirection,
    TradeIntent,
    TradeRequest,
    TradeResult,
)
from core.models.sync import SyncState, SyncStatus

__all__ = [
    "ASSETS",
    "AssetInfo",
    "AssetSymbol",
    "MarketSnapshot",
    "SnapshotSet",
    "Balance",
    "HoldingRecord",
    "TradeDirection",
    "TradeIntent",
    "TradeRequest",
    "TradeResult",
    "ChartData",
    "ChartPoint",
    "ChartSeries",
    "Event",
    "EventTypes",
    "SyncState",
    "SyncStatus",
]
