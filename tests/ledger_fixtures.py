"""Shared setup for ledger tests: a fresh, seeded database per test case."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import unittest
from decimal import Decimal

from sqlalchemy.orm import sessionmaker

import models  # noqa: F401
from database import Base, build_engine
from models.account import Account
from models.trade import TradeRecord
from services.asset_catalog import seed_assets
from services.ledger_store import get_holdings, open_account


def make_session_factory(url: str = "sqlite://"):
    engine = build_engine(url)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = factory()
    try:
        seed_assets(db)
    finally:
        db.close()
    return engine, factory


def set_balance(db, account_id: int, amount) -> Account:
    account = db.get(Account, account_id)
    account.balance = Decimal(str(amount))
    account.initial_balance = Decimal(str(amount))
    db.commit()
    return account


def ledger_state(db, account_id: int):
    """(cash, {symbol: (qty, avg)}, trade count) read fresh from the database."""
    db.expire_all()
    account = db.get(Account, account_id)
    holdings = {
        symbol: (h.quantity, h.avg_price)
        for symbol, h in get_holdings(db, account_id).items()
    }
    trades = db.query(TradeRecord).filter(TradeRecord.account_id == account_id).count()
    return account.balance, holdings, trades


class LedgerTestCase(unittest.TestCase):
    db_url = "sqlite://"

    def setUp(self):
        self.engine, self.Session = make_session_factory(self.db_url)
        self.db = self.Session()
        self.account = open_account(self.db, "user-1", email="trader@example.com")
        self.account_id = self.account.id

    def tearDown(self):
        self.db.close()
        self.engine.dispose()
