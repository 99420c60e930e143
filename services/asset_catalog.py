# services/asset_catalog.py
from __future__ import annotations

import logging
from typing import List, Tuple

from sqlalchemy.orm import Session

from models.asset import Asset, AssetKind
from services.ledger_errors import UnknownAsset
from utils.common_helpers import normalize_symbol

logger = logging.getLogger(__name__)

DEFAULT_ASSETS: List[Tuple[str, str, AssetKind]] = [
    ("USDC", "USD Coin", AssetKind.SPOT),
    ("USDT", "Tether USD", AssetKind.SPOT),
    ("BTC", "Bitcoin", AssetKind.SPOT),
    ("ETH", "Ethereum", AssetKind.SPOT),
    ("SOL", "Solana", AssetKind.SPOT),
    ("BTC-PERP", "Bitcoin Perpetual Futures", AssetKind.DERIVATIVE),
    ("ETH-PERP", "Ethereum Perpetual Futures", AssetKind.DERIVATIVE),
    ("SOL-PERP", "Solana Perpetual Futures", AssetKind.DERIVATIVE),
]


def seed_assets(db: Session, assets: List[Tuple[str, str, AssetKind]] = DEFAULT_ASSETS) -> int:
    """Insert any catalog entry that is missing. Returns how many were created."""
    existing = {symbol for (symbol,) in db.query(Asset.symbol).all()}
    created = 0
    for symbol, name, kind in assets:
        if symbol in existing:
            continue
        db.add(Asset(symbol=symbol, name=name, kind=kind))
        created += 1
        logger.info("Created asset: %s", symbol)
    if created:
        db.commit()
    return created


def list_assets(db: Session) -> List[Asset]:
    return db.query(Asset).order_by(Asset.id.asc()).all()


def find_asset(db: Session, symbol: str) -> Asset | None:
    return db.query(Asset).filter(Asset.symbol == normalize_symbol(symbol)).first()


def resolve_asset(db: Session, symbol: str) -> Asset:
    asset = find_asset(db, symbol)
    if asset is None:
        raise UnknownAsset(f"Asset not found: {normalize_symbol(symbol) or '<empty>'}")
    return asset
