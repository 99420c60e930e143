from __future__ import annotations

from typing import List

from pydantic import BaseModel

from models.holding import Holding
from schemas.trade import AssetOut
from services.portfolio_service import HoldingValuation, PortfolioSnapshot


class HoldingValuationOut(BaseModel):
    asset: AssetOut
    quantity: float
    avg_price: float
    current_price: float
    value: float
    pnl: float
    pnl_percent: float
    allocation_percent: float
    price_status: str


class PortfolioOut(BaseModel):
    total_value: float
    cash: float
    pnl: float
    holdings: List[HoldingValuationOut]


class HoldingOut(BaseModel):
    asset: AssetOut
    quantity: float
    avg_price: float


def _valuation_to_dto(h: HoldingValuation) -> HoldingValuationOut:
    return HoldingValuationOut(
        asset=AssetOut.model_validate(h.asset),
        quantity=float(h.quantity),
        avg_price=float(h.avg_price),
        current_price=float(h.current_price),
        value=float(h.value),
        pnl=float(h.pnl),
        pnl_percent=float(h.pnl_percent),
        allocation_percent=float(h.allocation_percent),
        price_status=h.price_status,
    )


def snapshot_to_dto(snapshot: PortfolioSnapshot) -> PortfolioOut:
    return PortfolioOut(
        total_value=float(snapshot.total_value),
        cash=float(snapshot.cash),
        pnl=float(snapshot.pnl),
        holdings=[_valuation_to_dto(h) for h in snapshot.holdings],
    )


def holding_to_dto(h: Holding) -> HoldingOut:
    return HoldingOut(
        asset=AssetOut.model_validate(h.asset),
        quantity=float(h.quantity),
        avg_price=float(h.avg_price),
    )
