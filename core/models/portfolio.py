"""Portfolio models -- balances, trade requests, and derived holdings."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models.market import AssetSymbol


class TradeDirection(str, Enum):
    BUY = "buy"
    SELL = "sell"


class Balance(BaseModel):
    """Owned quantity per asset. Quantities are never negative.

    Instances are immutable; the ledger replaces the whole balance on each
    committed trade so earlier references stay valid.
    """

    model_config = ConfigDict(frozen=True)

    quantities: dict[AssetSymbol, Decimal] = Field(default_factory=dict)

    @field_validator("quantities")
    @classmethod
    def _non_negative(cls, value: dict[AssetSymbol, Decimal]) -> dict[AssetSymbol, Decimal]:
        for asset, quantity in value.items():
            if quantity < 0:
                raise ValueError(f"Balance for {asset.value} cannot be negative: {quantity}")
        return value

    def get(self, asset: AssetSymbol) -> Decimal:
        """Held quantity for an asset (zero when never held)."""
        return self.quantities.get(asset, Decimal(0))

    def with_quantity(self, asset: AssetSymbol, quantity: Decimal) -> Balance:
        """Return a copy with one asset's quantity replaced."""
        quantities = dict(self.quantities)
        quantities[asset] = quantity
        return Balance(quantities=quantities)


class TradeIntent(BaseModel):
    """A parsed trade, consumed immediately by the ledger."""

    direction: TradeDirection
    asset: AssetSymbol
    quantity: Decimal


class TradeRequest(BaseModel):
    """A trade as submitted by the UI; the amount is still raw text."""

    direction: TradeDirection
    asset: AssetSymbol
    amount_text: str


class TradeResult(BaseModel):
    """Outcome of a trade submission.

    `balance` is the ledger balance after the call: the new balance when
    accepted, the untouched one when rejected.
    """

    accepted: bool
    balance: Balance
    intent: TradeIntent | None = None
    error_kind: str | None = None
    message: str = ""


class HoldingRecord(BaseModel):
    """One row of the holdings table, derived from balance + snapshot."""

    model_config = ConfigDict(frozen=True)

    asset: AssetSymbol
    name: str
    price: Decimal
    change_percent_24h: Decimal
    quantity: Decimal
    total_value: Decimal
