"""Sync coordinator -- refresh batches and the loading/error lifecycle.

idle -> loading -> ready | failed, and ready/failed -> loading on the next
refresh. A batch publishes only when every configured asset succeeds; on
any failure the previously published snapshots and chart stay in place.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from core.errors import BatchFailure, FetchError, SeriesLengthMismatch
from core.models.chart import ChartData
from core.models.events import Event, EventTypes
from core.models.market import AssetSymbol, MarketSnapshot, SnapshotSet
from core.models.sync import SyncState, SyncStatus
from core.protocols import EventBus
from market.charts import DEFAULT_POINTS_PER_LABEL, DEFAULT_TIME_UNIT, build_chart
from market.client import MarketDataClient

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Owns the published snapshot set and the refresh state machine.

    Only one batch runs at a time. `refresh()` while loading is a no-op;
    it is neither queued nor does it cancel the running batch.

    Usage:
        coordinator = SyncCoordinator(client, assets=[AssetSymbol.BTC, AssetSymbol.ETH])
        await coordinator.refresh()
        coordinator.state.status  # SyncStatus.READY or SyncStatus.FAILED
    """

    def __init__(
        self,
        client: MarketDataClient,
        assets: list[AssetSymbol],
        bus: EventBus | None = None,
        points_per_label: int = DEFAULT_POINTS_PER_LABEL,
        time_unit: timedelta = DEFAULT_TIME_UNIT,
        strict_alignment: bool = False,
    ) -> None:
        self._client = client
        self._assets = list(assets)
        self._bus = bus
        self._points_per_label = points_per_label
        self._time_unit = time_unit
        self._strict_alignment = strict_alignment

        self._snapshots: SnapshotSet | None = None
        self._chart = ChartData()
        self._state = SyncState()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def assets(self) -> list[AssetSymbol]:
        return list(self._assets)

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def snapshots(self) -> SnapshotSet:
        """Last published snapshot set (empty before the first success)."""
        if self._snapshots is None:
            return SnapshotSet()
        return self._snapshots

    @property
    def chart(self) -> ChartData:
        return self._chart

    def get_snapshot(self, asset: AssetSymbol) -> MarketSnapshot | None:
        return self.snapshots.get(asset)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """Run one refresh batch. Returns False if a batch was already running.

        Every batch that starts ends in READY or FAILED. If the batch is
        cancelled, the state it started from is restored and the
        cancellation propagates.
        """
        if self._state.status == SyncStatus.LOADING:
            logger.debug("Refresh ignored: batch already in flight")
            return False

        # Entered before the first await so concurrent callers see it
        previous = self._state
        started_at = datetime.now(timezone.utc)
        self._state = self._state.model_copy(update={
            "status": SyncStatus.LOADING,
            "last_attempt_at": started_at,
        })

        try:
            await self._run_batch(started_at)
        except asyncio.CancelledError:
            if self._state.status == SyncStatus.LOADING:
                logger.warning("Refresh cancelled, restoring %s state", previous.status.value)
                self._state = previous
            raise
        except Exception as exc:
            logger.exception("Refresh batch crashed")
            await self._fail(exc)
        return True

    async def _run_batch(self, started_at: datetime) -> None:
        logger.info("Refreshing market data for %s", ", ".join(a.value for a in self._assets))
        await self._publish(EventTypes.SYNC_STARTED, {"assets": [a.value for a in self._assets]})

        outcomes = await self._client.fetch_all(self._assets)
        errors = [o for o in outcomes.values() if isinstance(o, FetchError)]
        if errors:
            await self._fail(BatchFailure(errors))
            return

        snapshots = {asset: outcomes[asset] for asset in self._assets}
        try:
            chart = self._build_chart(snapshots, started_at)
        except SeriesLengthMismatch as exc:
            # Strict alignment turns this into a failed batch, not a crash
            logger.error("Chart alignment failed: %s", exc)
            await self._fail(exc)
            return

        # Publish snapshots and chart together
        self._snapshots = SnapshotSet(snapshots=snapshots, fetched_at=started_at)
        self._chart = chart
        self._state = SyncState(
            status=SyncStatus.READY,
            last_attempt_at=started_at,
            last_success_at=datetime.now(timezone.utc),
            has_data=True,
        )
        logger.info("Market data ready (%d assets)", len(snapshots))
        await self._publish(EventTypes.SYNC_READY, {
            "assets": [a.value for a in self._assets],
            "fetched_at": started_at.isoformat(),
        })

    def _build_chart(
        self, snapshots: dict[AssetSymbol, MarketSnapshot], as_of: datetime
    ) -> ChartData:
        return build_chart(
            {asset: snap.history for asset, snap in snapshots.items()},
            as_of=as_of,
            points_per_label=self._points_per_label,
            unit=self._time_unit,
            strict=self._strict_alignment,
        )

    async def _fail(self, error: Exception) -> None:
        failed = error.assets if isinstance(error, BatchFailure) else []
        self._state = self._state.model_copy(update={
            "status": SyncStatus.FAILED,
            "last_error": str(error),
            "failed_assets": failed,
            "has_data": self._snapshots is not None,
        })
        logger.warning("Market data refresh failed: %s", error)
        await self._publish(EventTypes.SYNC_FAILED, {
            "error": str(error),
            "failed_assets": [a.value for a in failed],
        })

    async def _publish(self, event_type: str, payload: dict) -> None:
        if self._bus is None:
            return
        await self._bus.publish(Event(type=event_type, source="sync", payload=payload))
