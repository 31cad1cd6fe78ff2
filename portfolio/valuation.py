"""Valuation engine -- holdings rows and portfolio total from balance + prices."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping

from core.models.market import AssetSymbol, MarketSnapshot, SnapshotSet, asset_info
from core.models.portfolio import Balance, HoldingRecord


class ValuationEngine:
    """Stateless valuation over a fixed asset order.

    The order comes from configuration, not from the snapshot mapping, so
    the holdings table keeps its row order across refreshes.
    """

    def __init__(self, assets: Iterable[AssetSymbol] | None = None) -> None:
        self._assets = list(assets) if assets is not None else list(AssetSymbol)

    @property
    def assets(self) -> list[AssetSymbol]:
        return list(self._assets)

    def compute_holdings(
        self,
        balance: Balance,
        snapshots: SnapshotSet | Mapping[AssetSymbol, MarketSnapshot],
    ) -> list[HoldingRecord]:
        """One record per configured asset that has a snapshot."""
        if isinstance(snapshots, SnapshotSet):
            snapshots = snapshots.snapshots

        holdings: list[HoldingRecord] = []
        for asset in self._assets:
            snapshot = snapshots.get(asset)
            if snapshot is None:
                continue
            quantity = balance.get(asset)
            holdings.append(HoldingRecord(
                asset=asset,
                name=asset_info(asset).name,
                price=snapshot.price,
                change_percent_24h=snapshot.change_percent_24h,
                quantity=quantity,
                total_value=quantity * snapshot.price,
            ))
        return holdings

    @staticmethod
    def compute_total_value(holdings: Iterable[HoldingRecord]) -> Decimal:
        return sum((h.total_value for h in holdings), Decimal(0))
