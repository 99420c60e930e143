# services/portfolio_service.py
"""
Point-in-time valuation of an account.

Pure read: holdings come from the ledger, prices from the oracle, and
nothing is cached; every call recomputes from the stored state.

Monetary figures are exact products of stored quantities and quoted prices,
so ``total_value == cash + sum(qty * price)`` holds to the last digit.
Only the derived percentages are rounded to ledger scale.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from models.asset import Asset
from services.ledger_store import get_account, get_holdings
from services.price_service import PriceOracle
from utils.common_helpers import ZERO, is_positive_finite, safe_pct


@dataclass
class HoldingValuation:
    asset: Asset
    quantity: Decimal
    avg_price: Decimal
    current_price: Decimal
    value: Decimal
    pnl: Decimal
    pnl_percent: Decimal
    allocation_percent: Decimal = ZERO
    price_status: str = "live"


@dataclass
class PortfolioSnapshot:
    account_id: int
    cash: Decimal
    initial_balance: Decimal
    total_value: Decimal
    pnl: Decimal
    holdings: List[HoldingValuation] = field(default_factory=list)

    @property
    def market_value(self) -> Decimal:
        return self.total_value - self.cash


def value_holding(asset: Asset, quantity: Decimal, avg_price: Decimal, price: Decimal | None) -> HoldingValuation:
    status = "live"
    if not is_positive_finite(price):
        # no quote: carry the position at cost rather than dropping it
        price = avg_price
        status = "unavailable"

    return HoldingValuation(
        asset=asset,
        quantity=quantity,
        avg_price=avg_price,
        current_price=price,
        value=quantity * price,
        pnl=quantity * (price - avg_price),
        pnl_percent=safe_pct(price - avg_price, avg_price),
        price_status=status,
    )


def valuate(db: Session, account_id: int, oracle: PriceOracle) -> PortfolioSnapshot:
    account = get_account(db, account_id)
    holdings = get_holdings(db, account_id)
    prices = oracle.get_prices(holdings.keys()) if holdings else {}

    items = [
        value_holding(h.asset, h.quantity, h.avg_price, prices.get(symbol))
        for symbol, h in holdings.items()
    ]

    cash = account.balance
    total_value = cash + sum((it.value for it in items), ZERO)
    for it in items:
        it.allocation_percent = safe_pct(it.value, total_value) if total_value > ZERO else ZERO

    return PortfolioSnapshot(
        account_id=account.id,
        cash=cash,
        initial_balance=account.initial_balance,
        total_value=total_value,
        pnl=total_value - account.initial_balance,
        holdings=items,
    )
