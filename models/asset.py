# models/asset.py
from __future__ import annotations

import enum

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class AssetKind(str, enum.Enum):
    SPOT = "SPOT"
    DERIVATIVE = "DERIVATIVE"


class Asset(Base):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # e.g. "BTC", "SOL-PERP"
    symbol: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    kind: Mapped[AssetKind] = mapped_column(
        Enum(AssetKind, name="asset_kind", native_enum=False, length=16),
        nullable=False,
        default=AssetKind.SPOT,
    )
