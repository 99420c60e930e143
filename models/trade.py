# models/trade.py
from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class TradeSide(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TradeRecord(Base):
    """Append-only record of one executed trade."""

    __tablename__ = "trades"
    __table_args__ = (
        Index("ix_trades_account_id_id", "account_id", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    asset_id: Mapped[int] = mapped_column(ForeignKey("assets.id"), nullable=False)

    trade_type: Mapped[TradeSide] = mapped_column(
        Enum(TradeSide, name="trade_side", native_enum=False, length=8),
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 8, asdecimal=True), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(20, 8, asdecimal=True), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(20, 8, asdecimal=True), nullable=False)

    # opaque external settlement id (e.g. a chain signature), filled in later
    settlement_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    asset = relationship("Asset", lazy="joined")
