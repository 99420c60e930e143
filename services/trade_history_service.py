# services/trade_history_service.py
from __future__ import annotations

from typing import Iterator, List, Optional

from sqlalchemy.orm import Session

from config import settings
from models.trade import TradeRecord


def _clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.HISTORY_DEFAULT_LIMIT
    return max(1, min(int(limit), settings.HISTORY_MAX_LIMIT))


def list_trades(
    db: Session,
    account_id: int,
    *,
    limit: Optional[int] = None,
    offset: int = 0,
    before_id: Optional[int] = None,
) -> List[TradeRecord]:
    """
    Trades for an account, newest first.

    Ids are assigned in append order, so ordering by id is ordering by
    execution. ``before_id`` is a keyset cursor (exclusive); ``offset`` is
    applied after it.
    """
    query = db.query(TradeRecord).filter(TradeRecord.account_id == account_id)
    if before_id is not None:
        query = query.filter(TradeRecord.id < before_id)
    return (
        query.order_by(TradeRecord.id.desc())
        .offset(max(0, int(offset)))
        .limit(_clamp_limit(limit))
        .all()
    )


def iter_trades(
    db: Session,
    account_id: int,
    *,
    page_size: Optional[int] = None,
    start_before: Optional[int] = None,
) -> Iterator[TradeRecord]:
    """
    Lazily walk the whole history, newest first, one page at a time.

    Restart from any point by passing the last seen trade id as
    ``start_before``.
    """
    cursor = start_before
    size = _clamp_limit(page_size)
    while True:
        page = list_trades(db, account_id, limit=size, before_id=cursor)
        if not page:
            return
        yield from page
        if len(page) < size:
            return
        cursor = page[-1].id


def count_trades(db: Session, account_id: int) -> int:
    return db.query(TradeRecord).filter(TradeRecord.account_id == account_id).count()
