# routers/portfolio_routes.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.account import Account
from schemas.portfolio import HoldingOut, PortfolioOut, holding_to_dto, snapshot_to_dto
from services.auth import get_current_account
from services.ledger_store import get_holdings
from services.portfolio_service import valuate
from services.price_service import PriceOracle, get_price_oracle

router = APIRouter()


@router.get("/portfolio", response_model=PortfolioOut)
def portfolio(
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
    oracle: PriceOracle = Depends(get_price_oracle),
):
    return snapshot_to_dto(valuate(db, account.id, oracle))


@router.get("/portfolio/holdings", response_model=List[HoldingOut])
def holdings(
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
):
    return [holding_to_dto(h) for h in get_holdings(db, account.id).values()]
