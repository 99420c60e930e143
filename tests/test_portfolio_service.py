import unittest
from decimal import Decimal

from ledger_fixtures import LedgerTestCase, set_balance

from services.asset_catalog import resolve_asset
from services.ledger_store import apply_trade
from services.portfolio_service import valuate, value_holding
from services.price_service import StaticPriceOracle
from utils.common_helpers import safe_pct


class ValuationTests(LedgerTestCase):
    def test_empty_portfolio_is_all_cash(self):
        snapshot = valuate(self.db, self.account_id, StaticPriceOracle({}))
        self.assertEqual(snapshot.total_value, Decimal("10000"))
        self.assertEqual(snapshot.cash, Decimal("10000"))
        self.assertEqual(snapshot.pnl, Decimal("0"))
        self.assertEqual(snapshot.holdings, [])

    def test_total_value_is_cash_plus_positions(self):
        apply_trade(self.db, self.account_id, resolve_asset(self.db, "BTC"), "BUY", "0.05", "44000")
        apply_trade(self.db, self.account_id, resolve_asset(self.db, "ETH"), "BUY", "1.5", "2400")
        apply_trade(self.db, self.account_id, resolve_asset(self.db, "SOL"), "BUY", "12.345", "98.76")

        prices = {"BTC": Decimal("46123.45"), "ETH": Decimal("2555.5"), "SOL": Decimal("101.01")}
        snapshot = valuate(self.db, self.account_id, StaticPriceOracle(prices))

        expected = snapshot.cash + sum(h.quantity * prices[h.asset.symbol] for h in snapshot.holdings)
        self.assertEqual(snapshot.total_value, expected)
        self.assertEqual(snapshot.pnl, snapshot.total_value - Decimal("10000"))
        self.assertEqual([h.asset.symbol for h in snapshot.holdings], ["BTC", "ETH", "SOL"])

    def test_total_value_is_exact_for_long_fractions(self):
        apply_trade(self.db, self.account_id, resolve_asset(self.db, "SOL"), "BUY", "0.12345678", "100")
        qty, price = Decimal("0.12345678"), Decimal("1.23456789")
        snapshot = valuate(self.db, self.account_id, StaticPriceOracle({"SOL": price}))

        self.assertEqual(snapshot.cash, Decimal("9987.654322"))
        self.assertEqual(snapshot.holdings[0].value, qty * price)
        self.assertEqual(snapshot.total_value, snapshot.cash + qty * price)
        self.assertEqual(snapshot.total_value, Decimal("9987.8067377763907942"))
        self.assertEqual(snapshot.pnl, snapshot.total_value - Decimal("10000"))
        self.assertEqual(snapshot.holdings[0].pnl, qty * (price - Decimal("100")))

    def test_per_holding_figures(self):
        apply_trade(self.db, self.account_id, resolve_asset(self.db, "ETH"), "BUY", "2", "2000")
        snapshot = valuate(self.db, self.account_id, StaticPriceOracle({"ETH": 2500}))

        eth = snapshot.holdings[0]
        self.assertEqual(eth.current_price, Decimal("2500"))
        self.assertEqual(eth.value, Decimal("5000"))
        self.assertEqual(eth.pnl, Decimal("1000"))
        self.assertEqual(eth.pnl_percent, Decimal("25"))
        # 5000 of 11000 total
        self.assertEqual(eth.allocation_percent, Decimal("45.45454545"))
        self.assertEqual(eth.price_status, "live")

    def test_missing_quote_values_at_cost(self):
        apply_trade(self.db, self.account_id, resolve_asset(self.db, "SOL"), "BUY", "10", "100")
        snapshot = valuate(self.db, self.account_id, StaticPriceOracle({}))

        sol = snapshot.holdings[0]
        self.assertEqual(sol.price_status, "unavailable")
        self.assertEqual(sol.current_price, Decimal("100"))
        self.assertEqual(sol.pnl, Decimal("0"))
        self.assertEqual(snapshot.total_value, Decimal("10000"))

    def test_zero_value_account(self):
        set_balance(self.db, self.account_id, "0")
        snapshot = valuate(self.db, self.account_id, StaticPriceOracle({}))
        self.assertEqual(snapshot.total_value, Decimal("0"))
        self.assertEqual(snapshot.pnl, Decimal("0"))

    def test_percentages_guard_zero_denominator(self):
        self.assertEqual(safe_pct(Decimal("5"), Decimal("0")), Decimal("0"))
        h = value_holding(resolve_asset(self.db, "BTC"), Decimal("1"), Decimal("0"), Decimal("10"))
        self.assertEqual(h.pnl_percent, Decimal("0"))

    def test_valuation_is_recomputed_each_call(self):
        apply_trade(self.db, self.account_id, resolve_asset(self.db, "BTC"), "BUY", "0.1", "45000")
        oracle = StaticPriceOracle({"BTC": 45000})
        first = valuate(self.db, self.account_id, oracle)
        oracle.set_price("BTC", 46000)
        second = valuate(self.db, self.account_id, oracle)
        self.assertEqual(second.total_value - first.total_value, Decimal("100"))


if __name__ == "__main__":
    unittest.main()
