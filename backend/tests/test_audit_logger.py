"""
Tests for the trade audit logger
"""

import json
import os
import tempfile
import unittest
from unittest.mock import patch

from coinvest.models.transaction import TransactionType
from coinvest.monitoring.logger import LoggerFactory, TradeAuditLogger
from coinvest.schemas.investment import TradeResult


class TestTradeAuditLogger(unittest.TestCase):
    """Test case for JSON trade records"""

    def setUp(self):
        """Set up test environment before each test"""
        self.audit = TradeAuditLogger(name="trades_test")

    def _result(self, side, profit_loss=None):
        return TradeResult(
            side=side,
            symbol="TEST",
            quantity=9850,
            price=10000,
            subtotal=985,
            fee_amount=15,
            total_amount=1000,
            profit_loss=profit_loss,
            transaction_id=1,
            message="Bought 9.850 TEST",
        )

    def test_factory_is_singleton(self):
        self.assertIs(LoggerFactory.get_instance(), LoggerFactory.get_instance())

    def test_log_trade_writes_json_line(self):
        with self.assertLogs("trades_test", level="INFO") as captured:
            record = self.audit.log_trade(7, self._result(TransactionType.BUY))

        logged = json.loads(captured.records[0].getMessage())
        self.assertEqual(logged, record)
        self.assertEqual(logged["user_id"], 7)
        self.assertEqual(logged["side"], "buy")
        self.assertEqual(logged["total_amount"], 1000)
        self.assertFalse(logged["position_open"])
        self.assertNotIn("message", logged)

    def test_sell_record_keeps_profit_loss(self):
        result = self._result(TransactionType.SELL, profit_loss=-20)

        with self.assertLogs("trades_test", level="INFO") as captured:
            self.audit.log_trade(3, result)

        logged = json.loads(captured.records[0].getMessage())
        self.assertEqual(logged["side"], "sell")
        self.assertEqual(logged["profit_loss"], -20)
        self.assertEqual(logged["user_id"], 3)
        self.assertIn("timestamp", logged)

    def test_file_records_are_bare_json(self):
        factory = LoggerFactory.get_instance()

        with tempfile.TemporaryDirectory() as log_dir:
            with patch.object(factory, "log_dir", log_dir):
                audit_logger = factory.get_logger("trades_file_test", log_to_file=True, fmt="%(message)s")
            audit_logger.info(json.dumps({"side": "buy"}))
            for handler in audit_logger.handlers[:]:
                handler.close()
                audit_logger.removeHandler(handler)

            with open(os.path.join(log_dir, "trades_file_test.log")) as log_file:
                self.assertEqual(log_file.read().strip(), '{"side": "buy"}')


if __name__ == "__main__":
    unittest.main()
