import json
import logging
import unittest

from ledger_fixtures import LedgerTestCase

from config.logging_config import ContextTextFormatter, JsonFormatter, ledger_context
from services.asset_catalog import resolve_asset
from services.ledger_store import apply_trade


def _record(msg, **extra):
    record = logging.makeLogRecord({"name": "ledger", "levelname": "INFO", "msg": msg})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class LedgerContextTests(unittest.TestCase):
    def test_drops_missing_values(self):
        self.assertEqual(ledger_context(account_id=3, trade_id=None), {"account_id": 3})

    def test_rejects_unknown_fields(self):
        with self.assertRaises(ValueError):
            ledger_context(email="someone@example.com")


class FormatterTests(unittest.TestCase):
    def test_json_lines_carry_trade_context(self):
        line = JsonFormatter().format(
            _record("trade_applied", **ledger_context(account_id=7, trade_id=42, symbol="BTC", side="BUY"))
        )
        payload = json.loads(line)
        self.assertEqual(payload["event"], "trade_applied")
        self.assertEqual(payload["account_id"], 7)
        self.assertEqual(payload["trade_id"], 42)
        self.assertEqual(payload["side"], "BUY")

    def test_text_lines_append_pairs_in_fixed_order(self):
        formatter = ContextTextFormatter("%(message)s")
        line = formatter.format(_record("trade_rejected", reason="InsufficientBalance", account_id=7))
        self.assertEqual(line, "trade_rejected account_id=7 reason=InsufficientBalance")

    def test_text_without_context_is_untouched(self):
        self.assertEqual(ContextTextFormatter("%(message)s").format(_record("ready")), "ready")


class LedgerLogTests(LedgerTestCase):
    def test_applied_trade_is_logged_with_ids(self):
        sol = resolve_asset(self.db, "SOL")
        with self.assertLogs("services.ledger_store", level="INFO") as logs:
            result = apply_trade(self.db, self.account_id, sol, "BUY", "1", "100")

        applied = [r for r in logs.records if r.getMessage() == "trade_applied"]
        self.assertEqual(len(applied), 1)
        self.assertEqual(applied[0].account_id, self.account_id)
        self.assertEqual(applied[0].trade_id, result.trade.id)
        self.assertEqual(applied[0].symbol, "SOL")


if __name__ == "__main__":
    unittest.main()
