"""Market data client -- turns raw provider documents into MarketSnapshots.

Parsing is fail-fast: a missing, non-numeric, or non-finite required field
rejects the whole snapshot for that asset. Nothing is defaulted to zero,
since a silent zero price would corrupt every valuation built on it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from core.errors import FetchError
from core.models.market import AssetSymbol, MarketSnapshot
from core.protocols import FetchFunction

logger = logging.getLogger(__name__)

_MISSING = object()


class MarketDataClient:
    """Fetches and normalizes market snapshots, one asset at a time.

    Usage:
        client = MarketDataClient(provider.fetch_raw, vs_currency="usd")
        snapshot = await client.fetch_snapshot(AssetSymbol.BTC)
    """

    def __init__(self, fetch: FetchFunction, vs_currency: str = "usd") -> None:
        self._fetch = fetch
        self._vs_currency = vs_currency.lower()

    @property
    def vs_currency(self) -> str:
        return self._vs_currency

    async def fetch_snapshot(self, asset: AssetSymbol) -> MarketSnapshot:
        """Fetch one asset and return its snapshot, or raise FetchError."""
        try:
            payload = await self._fetch(asset)
        except FetchError:
            raise
        except Exception as exc:
            raise FetchError(asset, f"{exc.__class__.__name__}: {exc}") from exc

        return parse_snapshot(asset, payload, self._vs_currency)

    async def fetch_all(
        self, assets: list[AssetSymbol]
    ) -> dict[AssetSymbol, MarketSnapshot | FetchError]:
        """Fetch every asset concurrently.

        Each outcome is independent: a failure for one asset never cancels
        or alters another asset's fetch.
        """
        outcomes = await asyncio.gather(
            *(self.fetch_snapshot(asset) for asset in assets),
            return_exceptions=True,
        )

        results: dict[AssetSymbol, MarketSnapshot | FetchError] = {}
        for asset, outcome in zip(assets, outcomes):
            if isinstance(outcome, MarketSnapshot):
                results[asset] = outcome
            elif isinstance(outcome, FetchError):
                logger.warning("Fetch failed for %s: %s", asset.value, outcome.reason)
                results[asset] = outcome
            elif isinstance(outcome, Exception):
                logger.exception("Unexpected error fetching %s", asset.value, exc_info=outcome)
                results[asset] = FetchError(asset, f"{outcome.__class__.__name__}: {outcome}")
            else:
                # CancelledError and friends
                raise outcome
        return results


# ---------------------------------------------------------------------------
# Provider schema -> MarketSnapshot
# ---------------------------------------------------------------------------

def parse_snapshot(
    asset: AssetSymbol,
    payload: Any,
    vs_currency: str = "usd",
    fetched_at: datetime | None = None,
) -> MarketSnapshot:
    """Translate a CoinGecko `/coins/{id}` document into a MarketSnapshot."""
    if not isinstance(payload, dict):
        raise FetchError(asset, "payload is not an object")

    market = payload.get("market_data")
    if not isinstance(market, dict):
        raise FetchError(asset, "missing field: market_data")

    def quoted(field: str, non_negative: bool = False) -> Decimal:
        return _number(asset, _lookup(asset, market, field, vs_currency), field, non_negative)

    def plain(field: str, non_negative: bool = False) -> Decimal:
        return _number(asset, _lookup(asset, market, field), field, non_negative)

    raw_history = _lookup(asset, market, "sparkline_7d", "price")
    if not isinstance(raw_history, list) or not raw_history:
        raise FetchError(asset, "sparkline_7d.price must be a non-empty list")
    history = tuple(
        _number(asset, value, f"sparkline_7d.price[{i}]") for i, value in enumerate(raw_history)
    )

    return MarketSnapshot(
        asset=asset,
        price=quoted("current_price", non_negative=True),
        change_percent_24h=plain("price_change_percentage_24h"),
        high_24h=quoted("high_24h"),
        low_24h=quoted("low_24h"),
        volume_24h=quoted("total_volume", non_negative=True),
        market_cap=quoted("market_cap", non_negative=True),
        circulating_supply=plain("circulating_supply", non_negative=True),
        all_time_high=quoted("ath"),
        all_time_low=quoted("atl"),
        history=history,
        fetched_at=fetched_at or datetime.now(timezone.utc),
    )


def _lookup(asset: AssetSymbol, data: dict, *path: str) -> Any:
    node: Any = data
    for key in path:
        if not isinstance(node, dict):
            node = _MISSING
            break
        node = node.get(key, _MISSING)
        if node is _MISSING:
            break
    if node is _MISSING or node is None:
        raise FetchError(asset, f"missing field: {'.'.join(path)}")
    return node


def _number(asset: AssetSymbol, value: Any, field: str, non_negative: bool = False) -> Decimal:
    """Coerce a JSON number to a finite Decimal, or reject the snapshot."""
    # bool is an int subclass; true/false is never a price
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise FetchError(asset, f"non-numeric field: {field}")

    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise FetchError(asset, f"non-numeric field: {field}") from exc

    if not number.is_finite():
        raise FetchError(asset, f"non-finite field: {field}")
    if non_negative and number < 0:
        raise FetchError(asset, f"negative field: {field}")
    return number
