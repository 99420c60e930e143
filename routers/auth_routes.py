from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.account import Account
from schemas.general import AccountOut, AssetCatalogOut
from services.asset_catalog import list_assets
from services.auth import get_current_account

router = APIRouter()


@router.get("/user/profile", response_model=AccountOut)
def profile(current_account: Account = Depends(get_current_account)):
    return AccountOut(
        id=current_account.id,
        email=current_account.email,
        balance=float(current_account.balance),
        initial_balance=float(current_account.initial_balance),
        created_at=current_account.created_at,
    )


@router.get("/assets", response_model=List[AssetCatalogOut])
def assets(
    db: Session = Depends(get_db),
    _: Account = Depends(get_current_account),
):
    return list_assets(db)
