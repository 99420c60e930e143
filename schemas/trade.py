from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.trade import TradeRecord


class AssetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: str


class TradeRequest(BaseModel):
    asset_symbol: str
    # range checks happen in the executor so every rejection shares one error shape
    quantity: float
    price: float

    @field_validator("asset_symbol")
    @classmethod
    def validate_symbol(cls, value: str) -> str:
        symbol = (value or "").strip().upper()
        if not symbol or len(symbol) > 32:
            raise ValueError("asset_symbol must be 1-32 characters")
        return symbol


class TradeOut(BaseModel):
    id: int
    created_at: datetime
    trade_type: str
    asset: AssetOut
    quantity: float
    price: float
    total_amount: float
    solana_signature: Optional[str] = None


class TradeExecutionOut(TradeOut):
    message: str = "Trade executed successfully"
    remaining_balance: float


class SettlementUpdate(BaseModel):
    reference: str = Field(min_length=1, max_length=255)


def trade_to_dto(trade: TradeRecord) -> TradeOut:
    return TradeOut(
        id=trade.id,
        created_at=trade.created_at,
        trade_type=trade.trade_type.value,
        asset=AssetOut.model_validate(trade.asset),
        quantity=float(trade.quantity),
        price=float(trade.price),
        total_amount=float(trade.total_amount),
        solana_signature=trade.settlement_reference,
    )
