"""Error types raised by the sync engine and the ledger.

Fetch errors are recovered by the SyncCoordinator, trade errors by
PortfolioLedger.submit(). SeriesLengthMismatch only escapes when strict
chart alignment is enabled.
"""

from __future__ import annotations

from core.models.market import AssetSymbol


class CoinboardError(Exception):
    """Base class for all domain errors."""


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------

class FetchError(CoinboardError):
    """Network or parse failure for a single asset."""

    def __init__(self, asset: AssetSymbol, reason: str) -> None:
        self.asset = asset
        self.reason = reason
        super().__init__(f"{asset.value}: {reason}")


class BatchFailure(CoinboardError):
    """One or more fetches in a refresh batch failed."""

    def __init__(self, errors: list[FetchError]) -> None:
        self.errors = list(errors)
        detail = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} asset(s) failed to refresh: {detail}")

    @property
    def assets(self) -> list[AssetSymbol]:
        return [e.asset for e in self.errors]


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

class TradeError(CoinboardError):
    """A trade was rejected by validation. `message` is shown to the user."""

    kind = "trade_error"
    message = "Trade rejected."

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail or self.message)


class InvalidAmount(TradeError):
    kind = "invalid_amount"
    message = "Enter a valid amount."


class InsufficientBalance(TradeError):
    kind = "insufficient_balance"
    message = "Insufficient balance."


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------

class SeriesLengthMismatch(CoinboardError):
    """Series combined into one chart have different lengths."""

    def __init__(self, lengths: dict[AssetSymbol, int]) -> None:
        self.lengths = dict(lengths)
        detail = ", ".join(f"{a.value}={n}" for a, n in self.lengths.items())
        super().__init__(f"Chart series lengths differ: {detail}")
