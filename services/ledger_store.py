# services/ledger_store.py
"""
Account balances and holdings: the single source of truth for account state.

``apply_trade`` is the only writer. It moves cash, updates (or removes) the
holding and appends the trade record inside one transaction. Trades against
the same account are serialized three ways:

- an in-process lock per account id (never one lock for all accounts),
- ``SELECT ... FOR UPDATE`` on the account row where the database supports it,
- the account ``version`` column, compared-and-swapped on every UPDATE.

A lost race on the last two rolls the transaction back and is retried up to
``LEDGER_MAX_RETRIES`` times before ``ConcurrencyConflict`` is raised.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from config.logging_config import ledger_context
from models.account import Account
from models.asset import Asset
from models.holding import Holding
from models.trade import TradeRecord, TradeSide
from services.ledger_errors import (
    AccountNotFound,
    AmountTooLarge,
    AmountTooSmall,
    ConcurrencyConflict,
    InsufficientBalance,
    InsufficientHoldings,
    InvalidPrice,
    InvalidQuantity,
    LedgerError,
    StorageFault,
    UnknownAsset,
    ValidationError,
)
from utils.common_helpers import MAX_AMOUNT, ZERO, is_positive_finite, quantize, to_decimal

logger = logging.getLogger(__name__)


@dataclass
class TradeResult:
    account: Account
    holding: Optional[Holding]  # None once the position is closed
    trade: TradeRecord


class _AccountLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def get(self, account_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[account_id] = lock
            return lock


_account_locks = _AccountLocks()


# -----------------------
# Reads
# -----------------------

def get_account(db: Session, account_id: int) -> Account:
    account = db.get(Account, account_id, populate_existing=True)
    if account is None:
        raise AccountNotFound()
    return account


def find_account_by_external_id(db: Session, external_id: str) -> Account | None:
    return db.query(Account).filter(Account.external_id == external_id).first()


def get_holdings(db: Session, account_id: int) -> Dict[str, Holding]:
    rows = (
        db.query(Holding)
        .join(Asset, Holding.asset_id == Asset.id)
        .filter(Holding.account_id == account_id, Holding.quantity > 0)
        .order_by(Asset.symbol.asc())
        .all()
    )
    return {h.asset.symbol: h for h in rows}


# -----------------------
# Account lifecycle
# -----------------------

def open_account(db: Session, external_id: str, email: str | None = None) -> Account:
    """Return the account for ``external_id``, creating it with the starting balance."""
    account = find_account_by_external_id(db, external_id)
    if account:
        return account

    account = Account(
        external_id=external_id,
        email=email,
        balance=settings.STARTING_BALANCE,
        initial_balance=settings.STARTING_BALANCE,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        # another request provisioned the same subject first
        db.rollback()
        existing = find_account_by_external_id(db, external_id)
        if existing is None:
            raise
        return existing

    db.refresh(account)
    logger.info("account_opened", extra=ledger_context(account_id=account.id))
    return account


# -----------------------
# Trades
# -----------------------

def coerce_side(side: TradeSide | str) -> TradeSide:
    if isinstance(side, TradeSide):
        return side
    try:
        return TradeSide(str(side).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown trade side: {side}")


def _bounded(value, error_cls: type[LedgerError], field: str) -> Decimal:
    amount = to_decimal(value)
    if not is_positive_finite(amount):
        raise error_cls()
    if amount >= MAX_AMOUNT:
        raise error_cls(f"{field} must be below {MAX_AMOUNT:,}")
    try:
        amount = quantize(amount)
    except InvalidOperation:
        raise error_cls()
    if amount <= ZERO:
        raise error_cls()
    return amount


def _validated_amounts(quantity, price) -> tuple[Decimal, Decimal, Decimal]:
    """Quantity, price and total, each at ledger scale and inside column range."""
    qty = _bounded(quantity, InvalidQuantity, "Quantity")
    px = _bounded(price, InvalidPrice, "Price")

    raw_total = qty * px
    if raw_total >= MAX_AMOUNT:
        raise AmountTooLarge()
    total = quantize(raw_total)
    if total <= ZERO:
        raise AmountTooSmall()
    return qty, px, total


def _apply_once(
    db: Session,
    account_id: int,
    asset: Asset,
    side: TradeSide,
    quantity: Decimal,
    price: Decimal,
    total: Decimal,
) -> TradeResult:
    account = (
        db.query(Account)
        .filter(Account.id == account_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if account is None:
        raise AccountNotFound()

    holding = (
        db.query(Holding)
        .filter(Holding.account_id == account_id, Holding.asset_id == asset.id)
        .populate_existing()
        .one_or_none()
    )

    if side is TradeSide.BUY:
        if total > account.balance:
            raise InsufficientBalance()
        account.balance = quantize(account.balance - total)

        if holding is None or holding.quantity <= ZERO:
            if holding is None:
                holding = Holding(account_id=account_id, asset_id=asset.id, quantity=ZERO, avg_price=ZERO)
                db.add(holding)
            holding.quantity = quantity
            holding.avg_price = price
        else:
            new_qty = holding.quantity + quantity
            if new_qty >= MAX_AMOUNT:
                raise AmountTooLarge()
            cost = holding.quantity * holding.avg_price + quantity * price
            holding.avg_price = quantize(cost / new_qty)
            holding.quantity = new_qty
    else:
        held = holding.quantity if holding is not None else ZERO
        if quantity > held:
            raise InsufficientHoldings()
        new_balance = account.balance + total
        if new_balance >= MAX_AMOUNT:
            raise AmountTooLarge()
        account.balance = quantize(new_balance)

        remaining = held - quantity
        if remaining == ZERO:
            db.delete(holding)
            holding = None
        else:
            # average cost is untouched by a sale
            holding.quantity = remaining

    trade = TradeRecord(
        account_id=account_id,
        asset_id=asset.id,
        trade_type=side,
        quantity=quantity,
        price=price,
        total_amount=total,
    )
    db.add(trade)
    db.flush()
    return TradeResult(account=account, holding=holding, trade=trade)


def apply_trade(
    db: Session,
    account_id: int,
    asset: Asset | None,
    side: TradeSide | str,
    quantity,
    price,
) -> TradeResult:
    """
    Atomically apply one buy or sell to the account.

    Either the balance change, the holding change and the new trade record
    are all committed, or nothing is. Rejections leave the account untouched.
    """
    if asset is None:
        raise UnknownAsset()
    side = coerce_side(side)
    quantity, price, total = _validated_amounts(quantity, price)

    lock = _account_locks.get(account_id)
    if not lock.acquire(timeout=settings.LEDGER_LOCK_TIMEOUT_SEC):
        logger.warning("ledger_lock_timeout", extra=ledger_context(account_id=account_id))
        raise ConcurrencyConflict()

    try:
        last_conflict: Exception | None = None
        for attempt in range(1, settings.LEDGER_MAX_RETRIES + 1):
            try:
                result = _apply_once(db, account_id, asset, side, quantity, price, total)
                db.commit()
            except (StaleDataError, IntegrityError) as exc:
                db.rollback()
                last_conflict = exc
                logger.warning(
                    "ledger_conflict",
                    extra=ledger_context(
                        account_id=account_id,
                        attempt=f"{attempt}/{settings.LEDGER_MAX_RETRIES}",
                        reason=type(exc).__name__,
                    ),
                )
                continue
            except LedgerError:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("ledger_storage_fault", extra=ledger_context(account_id=account_id))
                raise StorageFault() from exc

            logger.info(
                "trade_applied",
                extra=ledger_context(
                    account_id=account_id,
                    trade_id=result.trade.id,
                    symbol=asset.symbol,
                    side=side.value,
                ),
            )
            return result

        raise ConcurrencyConflict() from last_conflict
    finally:
        lock.release()
