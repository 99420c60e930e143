# services/trade_executor.py
"""
Validates a buy/sell request and hands it to the ledger.

The venue is simulated: the client-submitted price is the execution price.
When ``PRICE_TOLERANCE_PCT`` is configured the price is first checked
against the oracle and rejected if it drifts further than the tolerance.
Nothing here retries; a rejected trade is reported straight back.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from config import settings
from config.logging_config import ledger_context
from models.trade import TradeSide
from services.asset_catalog import resolve_asset
from services.ledger_errors import (
    InvalidPrice,
    InvalidQuantity,
    LedgerError,
    PriceOutOfTolerance,
    PriceUnavailable,
)
from services.ledger_store import TradeResult, coerce_side, apply_trade
from services.price_service import PriceOracle
from utils.common_helpers import HUNDRED, is_positive_finite, to_decimal

logger = logging.getLogger(__name__)


def check_price_tolerance(
    symbol: str,
    client_price: Decimal,
    oracle: PriceOracle,
    tolerance_pct: Decimal,
) -> None:
    reference = oracle.get_price(symbol)
    if not is_positive_finite(reference):
        raise PriceUnavailable()
    deviation = abs(client_price - reference) / reference * HUNDRED
    if deviation > tolerance_pct:
        logger.info(
            "price_rejected deviation_pct=%.4f tolerance_pct=%s",
            deviation, tolerance_pct,
            extra=ledger_context(symbol=symbol),
        )
        raise PriceOutOfTolerance()


def execute(
    db: Session,
    account_id: int,
    symbol: str,
    side: TradeSide | str,
    quantity,
    client_price,
    *,
    oracle: Optional[PriceOracle] = None,
    tolerance_pct: Optional[Decimal] = None,
) -> TradeResult:
    side = coerce_side(side)

    qty = to_decimal(quantity)
    if not is_positive_finite(qty):
        raise InvalidQuantity()
    price = to_decimal(client_price)
    if not is_positive_finite(price):
        raise InvalidPrice()

    asset = resolve_asset(db, symbol)

    tolerance = tolerance_pct if tolerance_pct is not None else settings.PRICE_TOLERANCE_PCT
    if tolerance is not None and oracle is not None:
        check_price_tolerance(asset.symbol, price, oracle, tolerance)

    try:
        return apply_trade(db, account_id, asset, side, qty, price)
    except LedgerError as exc:
        logger.info(
            "trade_rejected",
            extra=ledger_context(
                account_id=account_id,
                symbol=asset.symbol,
                side=side.value,
                reason=type(exc).__name__,
            ),
        )
        raise


def buy(db: Session, account_id: int, symbol: str, quantity, price, **kwargs) -> TradeResult:
    return execute(db, account_id, symbol, TradeSide.BUY, quantity, price, **kwargs)


def sell(db: Session, account_id: int, symbol: str, quantity, price, **kwargs) -> TradeResult:
    return execute(db, account_id, symbol, TradeSide.SELL, quantity, price, **kwargs)
