import unittest
from decimal import Decimal

from ledger_fixtures import LedgerTestCase, ledger_state

from services.ledger_errors import (
    AmountTooSmall,
    InsufficientBalance,
    InsufficientHoldings,
    InvalidPrice,
    InvalidQuantity,
    PriceOutOfTolerance,
    PriceUnavailable,
    UnknownAsset,
)
from services.portfolio_service import valuate
from services.price_service import StaticPriceOracle
from services.trade_executor import buy, execute, sell


class BtcScenarioTests(LedgerTestCase):
    def test_buy_buy_sell_round_trip(self):
        buy(self.db, self.account_id, "BTC", 0.1, 45000)
        cash, holdings, _ = ledger_state(self.db, self.account_id)
        self.assertEqual(cash, Decimal("5500"))
        self.assertEqual(holdings["BTC"], (Decimal("0.1"), Decimal("45000")))

        buy(self.db, self.account_id, "BTC", 0.1, 50000)
        cash, holdings, _ = ledger_state(self.db, self.account_id)
        self.assertEqual(cash, Decimal("500"))
        self.assertEqual(holdings["BTC"], (Decimal("0.2"), Decimal("47500")))

        snapshot = valuate(self.db, self.account_id, StaticPriceOracle({"BTC": 50000}))
        self.assertEqual(snapshot.holdings[0].pnl, Decimal("500"))

        result = sell(self.db, self.account_id, "BTC", 0.2, 50000)
        self.assertIsNone(result.holding)
        cash, holdings, trades = ledger_state(self.db, self.account_id)
        self.assertEqual(cash, Decimal("10500"))
        self.assertEqual(holdings, {})
        self.assertEqual(trades, 3)

    def test_symbol_is_case_insensitive(self):
        result = buy(self.db, self.account_id, " sol ", 1, 100)
        self.assertEqual(result.trade.asset.symbol, "SOL")


class ExecutorRejectionTests(LedgerTestCase):
    def setUp(self):
        super().setUp()
        self.before = ledger_state(self.db, self.account_id)

    def tearDown(self):
        self.assertEqual(ledger_state(self.db, self.account_id), self.before)
        super().tearDown()

    def test_unknown_symbol(self):
        with self.assertRaises(UnknownAsset) as ctx:
            buy(self.db, self.account_id, "DOGE", 1, 1)
        self.assertIn("DOGE", ctx.exception.message)

    def test_sell_never_bought(self):
        with self.assertRaises(InsufficientHoldings):
            sell(self.db, self.account_id, "ETH", 1, 2500)

    def test_buy_exceeding_cash(self):
        with self.assertRaises(InsufficientBalance):
            buy(self.db, self.account_id, "BTC", 1, 45000)

    def test_non_finite_input(self):
        with self.assertRaises(InvalidQuantity):
            buy(self.db, self.account_id, "BTC", float("nan"), 45000)
        with self.assertRaises(InvalidPrice):
            buy(self.db, self.account_id, "BTC", 0.1, float("inf"))

    def test_oversized_quantity_is_a_validation_error(self):
        with self.assertRaises(InvalidQuantity) as ctx:
            buy(self.db, self.account_id, "BTC", 1e25, 1)
        self.assertIn("must be below", ctx.exception.message)
        with self.assertRaises(InvalidQuantity):
            sell(self.db, self.account_id, "BTC", 1e25, 1)

    def test_dust_trade_rejected(self):
        with self.assertRaises(AmountTooSmall):
            buy(self.db, self.account_id, "SOL", "0.00000001", "0.1")

    def test_validation_runs_before_asset_lookup(self):
        with self.assertRaises(InvalidQuantity):
            execute(self.db, self.account_id, "DOGE", "BUY", 0, 1)


class PriceToleranceTests(LedgerTestCase):
    def setUp(self):
        super().setUp()
        self.oracle = StaticPriceOracle({"BTC": 45000})

    def test_price_within_band_executes(self):
        result = buy(
            self.db, self.account_id, "BTC", 0.1, 45400,
            oracle=self.oracle, tolerance_pct=Decimal("1"),
        )
        self.assertEqual(result.trade.price, Decimal("45400"))

    def test_price_outside_band_rejected(self):
        before = ledger_state(self.db, self.account_id)
        with self.assertRaises(PriceOutOfTolerance):
            buy(
                self.db, self.account_id, "BTC", 0.1, 40000,
                oracle=self.oracle, tolerance_pct=Decimal("1"),
            )
        self.assertEqual(ledger_state(self.db, self.account_id), before)

    def test_missing_quote_rejected_when_checking(self):
        with self.assertRaises(PriceUnavailable):
            buy(
                self.db, self.account_id, "SOL", 1, 100,
                oracle=self.oracle, tolerance_pct=Decimal("1"),
            )

    def test_no_tolerance_uses_client_price_verbatim(self):
        result = buy(self.db, self.account_id, "BTC", 0.1, 1000, oracle=self.oracle)
        self.assertEqual(result.trade.price, Decimal("1000"))


if __name__ == "__main__":
    unittest.main()
