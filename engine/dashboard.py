"""Dashboard -- the read/trade surface the presentation layer talks to.

Reads are pure: holdings and totals are recomputed from the current
balance and the last published snapshots on every call, so a trade is
reflected immediately without a new fetch.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from core.models.chart import ChartData
from core.models.events import Event, EventTypes
from core.models.market import AssetSymbol, MarketSnapshot
from core.models.portfolio import Balance, HoldingRecord, TradeRequest, TradeResult
from core.models.sync import SyncState
from core.protocols import EventBus
from portfolio.ledger import PortfolioLedger
from portfolio.valuation import ValuationEngine
from sync.coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class Dashboard:
    """Ties the ledger, the coordinator, and valuation together."""

    def __init__(
        self,
        ledger: PortfolioLedger,
        coordinator: SyncCoordinator,
        valuation: ValuationEngine | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._ledger = ledger
        self._coordinator = coordinator
        self._valuation = valuation or ValuationEngine(coordinator.assets)
        self._bus = bus

    @property
    def assets(self) -> list[AssetSymbol]:
        return self._coordinator.assets

    @property
    def coordinator(self) -> SyncCoordinator:
        return self._coordinator

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_holdings(self) -> list[HoldingRecord]:
        return self._valuation.compute_holdings(
            self._ledger.balance, self._coordinator.snapshots,
        )

    def get_total_value(self) -> Decimal:
        return self._valuation.compute_total_value(self.get_holdings())

    def get_chart_series(self) -> ChartData:
        return self._coordinator.chart

    def get_sync_state(self) -> SyncState:
        return self._coordinator.state

    def get_balance(self) -> Balance:
        return self._ledger.balance

    def get_market_stats(self) -> list[MarketSnapshot]:
        """Published snapshots in configured asset order."""
        snapshots = self._coordinator.snapshots
        return [snapshots.get(a) for a in self.assets if a in snapshots]

    def get_snapshot(self, asset: AssetSymbol) -> MarketSnapshot | None:
        return self._coordinator.get_snapshot(asset)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        return await self._coordinator.refresh()

    async def submit_trade(self, request: TradeRequest) -> TradeResult:
        """Apply a trade request and announce the outcome on the bus."""
        result = self._ledger.submit(request)

        if self._bus is not None:
            event_type = EventTypes.TRADE_APPLIED if result.accepted else EventTypes.TRADE_REJECTED
            await self._bus.publish(Event(
                type=event_type,
                source="ledger",
                payload={
                    "direction": request.direction.value,
                    "asset": request.asset.value,
                    "amount": request.amount_text,
                    "error_kind": result.error_kind,
                    "balance": result.balance.model_dump(mode="json")["quantities"],
                },
            ))
        return result
