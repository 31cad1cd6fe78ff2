"""Portfolio ledger -- the only writer of the owned balance.

Trades are pure bookkeeping: no fees, no price impact, no exchange. A trade
that fails validation leaves the committed balance exactly as it was.
"""

from __future__ import annotations

import logging
from decimal import Decimal, Inexact, InvalidOperation, Overflow, localcontext

from core.errors import InsufficientBalance, InvalidAmount, TradeError
from core.models.market import AssetSymbol
from core.models.portfolio import (
    Balance,
    TradeDirection,
    TradeIntent,
    TradeRequest,
    TradeResult,
)

logger = logging.getLogger(__name__)


def parse_amount(text: str) -> Decimal:
    """Parse user-entered amount text into a positive finite Decimal."""
    if text is None:
        raise InvalidAmount("amount is missing")
    cleaned = str(text).strip()
    if not cleaned:
        raise InvalidAmount("amount is empty")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation as exc:
        raise InvalidAmount(f"not a number: {cleaned!r}") from exc
    _check_quantity(amount)
    return amount


def _check_quantity(quantity: Decimal) -> None:
    if not isinstance(quantity, Decimal) or not quantity.is_finite():
        raise InvalidAmount(f"not a finite number: {quantity!r}")
    if quantity <= 0:
        raise InvalidAmount(f"must be greater than zero: {quantity}")


def apply_trade(balance: Balance, intent: TradeIntent) -> Balance:
    """Return the balance after `intent`; `balance` itself is not modified.

    Raises InvalidAmount or InsufficientBalance, checked in that order.
    The new quantity is always exactly `held +/- quantity`: an amount that
    would be rounded or overflow is invalid rather than silently altered.
    """
    _check_quantity(intent.quantity)

    held = balance.get(intent.asset)
    with localcontext() as ctx:
        ctx.traps[Inexact] = True
        ctx.traps[Overflow] = True
        try:
            if intent.direction == TradeDirection.SELL:
                updated = held - intent.quantity
            else:
                updated = held + intent.quantity
        except (Inexact, Overflow) as exc:
            raise InvalidAmount(
                f"{intent.quantity} cannot be applied exactly to {held}"
            ) from exc

    if updated < 0:
        raise InsufficientBalance(
            f"cannot sell {intent.quantity} {intent.asset.value}, holding {held}"
        )
    return balance.with_quantity(intent.asset, updated)


class PortfolioLedger:
    """Holds the committed balance and applies trades to it.

    Usage:
        ledger = PortfolioLedger(Balance(quantities={AssetSymbol.BTC: Decimal("0.5")}))
        result = ledger.submit(TradeRequest(direction="sell", asset="BTC", amount_text="1"))
        result.accepted  # False, result.message == "Insufficient balance."
    """

    def __init__(self, initial: Balance | None = None) -> None:
        self._balance = initial or Balance()

    @classmethod
    def from_quantities(cls, quantities: dict[AssetSymbol, Decimal]) -> PortfolioLedger:
        return cls(Balance(quantities=dict(quantities)))

    @property
    def balance(self) -> Balance:
        return self._balance

    def apply(self, intent: TradeIntent) -> Balance:
        """Validate and commit a parsed trade. Raises TradeError on rejection."""
        updated = apply_trade(self._balance, intent)
        self._balance = updated
        logger.info(
            "Trade applied: %s %s %s (now %s)",
            intent.direction.value.upper(),
            intent.quantity,
            intent.asset.value,
            updated.get(intent.asset),
        )
        return updated

    def submit(self, request: TradeRequest) -> TradeResult:
        """Trade submission entry point.

        Parses the amount text, applies the trade, and reports validation
        errors in the result instead of raising.
        """
        intent: TradeIntent | None = None
        try:
            intent = TradeIntent(
                direction=request.direction,
                asset=request.asset,
                quantity=parse_amount(request.amount_text),
            )
            balance = self.apply(intent)
        except TradeError as exc:
            logger.info(
                "Trade rejected: %s %r %s (%s: %s)",
                request.direction.value.upper(),
                request.amount_text,
                request.asset.value,
                exc.kind,
                exc.detail or exc.message,
            )
            return TradeResult(
                accepted=False,
                balance=self._balance,
                intent=intent,
                error_kind=exc.kind,
                message=exc.message,
            )

        return TradeResult(accepted=True, balance=balance, intent=intent)
