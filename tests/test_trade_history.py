import unittest
from unittest.mock import patch

from ledger_fixtures import LedgerTestCase

from services.asset_catalog import resolve_asset
from services.ledger_store import apply_trade, open_account
from services.trade_history_service import count_trades, iter_trades, list_trades


class TradeHistoryTests(LedgerTestCase):
    def setUp(self):
        super().setUp()
        usdc = resolve_asset(self.db, "USDC")
        self.trade_ids = [
            apply_trade(self.db, self.account_id, usdc, "BUY", str(n), "1").trade.id
            for n in range(1, 8)
        ]

        other = open_account(self.db, "user-2")
        apply_trade(self.db, other.id, usdc, "BUY", "5", "1")

    def test_newest_first(self):
        trades = list_trades(self.db, self.account_id)
        self.assertEqual([t.id for t in trades], list(reversed(self.trade_ids)))

    def test_other_accounts_are_excluded(self):
        self.assertEqual(count_trades(self.db, self.account_id), 7)
        self.assertTrue(all(t.account_id == self.account_id for t in list_trades(self.db, self.account_id)))

    def test_offset_pagination(self):
        page1 = list_trades(self.db, self.account_id, limit=3)
        page2 = list_trades(self.db, self.account_id, limit=3, offset=3)
        page3 = list_trades(self.db, self.account_id, limit=3, offset=6)
        ids = [t.id for t in page1 + page2 + page3]
        self.assertEqual(ids, list(reversed(self.trade_ids)))
        self.assertEqual(len(page3), 1)

    def test_keyset_cursor(self):
        cursor = self.trade_ids[4]
        trades = list_trades(self.db, self.account_id, before_id=cursor)
        self.assertEqual([t.id for t in trades], list(reversed(self.trade_ids[:4])))

    def test_limit_is_clamped(self):
        with patch("services.trade_history_service.settings.HISTORY_MAX_LIMIT", 2):
            self.assertEqual(len(list_trades(self.db, self.account_id, limit=50)), 2)
        self.assertEqual(len(list_trades(self.db, self.account_id, limit=0)), 1)

    def test_iter_trades_walks_all_pages(self):
        ids = [t.id for t in iter_trades(self.db, self.account_id, page_size=2)]
        self.assertEqual(ids, list(reversed(self.trade_ids)))

    def test_iter_trades_is_lazy_and_restartable(self):
        it = iter_trades(self.db, self.account_id, page_size=2)
        first_three = [next(it).id for _ in range(3)]
        self.assertEqual(first_three, list(reversed(self.trade_ids))[:3])

        resumed = [t.id for t in iter_trades(self.db, self.account_id, page_size=2, start_before=first_three[-1])]
        self.assertEqual(first_three + resumed, list(reversed(self.trade_ids)))

    def test_empty_history(self):
        fresh = open_account(self.db, "user-3")
        self.assertEqual(list_trades(self.db, fresh.id), [])
        self.assertEqual(list(iter_trades(self.db, fresh.id)), [])


if __name__ == "__main__":
    unittest.main()
