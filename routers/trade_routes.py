# routers/trade_routes.py
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session, sessionmaker

from config import settings
from database import get_db, get_session_factory
from middleware.rate_limit import limiter
from models.account import Account
from models.trade import TradeSide
from schemas.general import ErrorOut
from schemas.trade import (
    SettlementUpdate,
    TradeExecutionOut,
    TradeOut,
    TradeRequest,
    trade_to_dto,
)
from services.auth import get_current_account
from services.price_service import PriceOracle, get_price_oracle
from services.settlement_service import (
    NullSettlementRecorder,
    SettlementRecorder,
    attach_settlement_reference,
    get_settlement_recorder,
    record_settlement,
)
from services.trade_executor import execute
from services.trade_history_service import list_trades

logger = logging.getLogger(__name__)

router = APIRouter()

_ERRORS = {code: {"model": ErrorOut} for code in (400, 401, 404, 409, 429, 500)}


def _execute_trade(
    side: TradeSide,
    payload: TradeRequest,
    background_tasks: BackgroundTasks,
    db: Session,
    account: Account,
    oracle: PriceOracle,
    recorder: SettlementRecorder,
    session_factory: sessionmaker,
) -> TradeExecutionOut:
    result = execute(
        db,
        account.id,
        payload.asset_symbol,
        side,
        payload.quantity,
        payload.price,
        oracle=oracle,
    )

    if not isinstance(recorder, NullSettlementRecorder):
        background_tasks.add_task(record_settlement, session_factory, result.trade.id, recorder)

    dto = trade_to_dto(result.trade)
    return TradeExecutionOut(
        **dto.model_dump(),
        remaining_balance=float(result.account.balance),
    )


@router.post("/trade/buy", response_model=TradeExecutionOut, responses=_ERRORS)
@limiter.limit(settings.RATE_LIMIT_TRADE)
def buy_asset(
    request: Request,
    payload: TradeRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
    oracle: PriceOracle = Depends(get_price_oracle),
    recorder: SettlementRecorder = Depends(get_settlement_recorder),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    return _execute_trade(
        TradeSide.BUY, payload, background_tasks, db, account, oracle, recorder, session_factory
    )


@router.post("/trade/sell", response_model=TradeExecutionOut, responses=_ERRORS)
@limiter.limit(settings.RATE_LIMIT_TRADE)
def sell_asset(
    request: Request,
    payload: TradeRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
    oracle: PriceOracle = Depends(get_price_oracle),
    recorder: SettlementRecorder = Depends(get_settlement_recorder),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    return _execute_trade(
        TradeSide.SELL, payload, background_tasks, db, account, oracle, recorder, session_factory
    )


@router.get("/trades/history", response_model=List[TradeOut])
def trade_history(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    before_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
):
    trades = list_trades(db, account.id, limit=limit, offset=offset, before_id=before_id)
    return [trade_to_dto(t) for t in trades]


@router.patch("/trades/{trade_id}/settlement", response_model=TradeOut, responses=_ERRORS)
def attach_trade_settlement(
    trade_id: int,
    payload: SettlementUpdate,
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
):
    trade = attach_settlement_reference(db, trade_id, payload.reference, account_id=account.id)
    return trade_to_dto(trade)
