from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models.asset import AssetKind


class AccountOut(BaseModel):
    id: int
    email: Optional[str] = None
    balance: float
    initial_balance: float
    created_at: datetime


class AssetCatalogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: str
    kind: AssetKind


class ErrorOut(BaseModel):
    error: str
