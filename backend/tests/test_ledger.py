"""
Tests for the portfolio ledger

This module tests buying and selling against an in-memory database, including
the fixed-point worked examples and the all-or-nothing trade semantics.
"""

import random
import unittest
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from coinvest.models.position import Position
from coinvest.models.transaction import LedgerTransaction, TransactionType
from coinvest.services.exceptions import (
    AssetInactive,
    AssetNotFound,
    BelowMinimum,
    InsufficientFunds,
    InvalidSellAmount,
    InvalidTradeRequest,
    NoPosition,
    NoPriceData,
    TradeConflict,
    UserNotFound,
)
from coinvest.services.ledger import (
    PortfolioLedger,
    average_cost_for,
    quote_buy,
    quote_sell,
    resolve_sell_quantity,
    units_to_quantity,
    value_of,
)
from tests.utils.factories import balance_of, create_asset, create_user, make_session, set_price


class TestLedgerArithmetic(unittest.TestCase):
    """Pure fixed-point calculations"""

    def test_quote_buy_fee_and_quantity(self):
        quote = quote_buy(1000, 10000)
        self.assertEqual(quote.fee, 15)
        self.assertEqual(quote.quantity, 9850)
        self.assertEqual(quote.subtotal, 985)
        self.assertEqual(quote.total_amount, 1000)

    def test_quote_buy_never_exceeds_amount(self):
        for amount, price in [(101, 333), (999, 7), (12345, 98765), (100, 10001), (5000, 1)]:
            quote = quote_buy(amount, price)
            self.assertLessEqual(quote.total_amount, amount)
            self.assertGreaterEqual(quote.total_amount, quote.fee)

    def test_quote_sell_floors_every_step(self):
        quote = quote_sell(17237, 12000, 8571)
        self.assertEqual(quote.subtotal, 2068)
        self.assertEqual(quote.fee, 31)
        self.assertEqual(quote.total_amount, 2037)
        self.assertEqual(quote.cost_basis, 1477)
        self.assertEqual(quote.profit_loss, 560)
        self.assertLessEqual(quote.total_amount, quote.subtotal)

    def test_quote_sell_can_realize_a_loss(self):
        quote = quote_sell(10000, 5000, 10000)
        self.assertEqual(quote.subtotal, 500)
        self.assertEqual(quote.cost_basis, 1000)
        self.assertEqual(quote.profit_loss, 493 - 1000)

    def test_average_cost_and_value(self):
        self.assertEqual(average_cost_for(2955, 34475), 8571)
        self.assertEqual(value_of(17238, 8571), 1477)

    def test_units_are_floored_to_thousandths(self):
        self.assertEqual(units_to_quantity(Decimal("1.5")), 1500)
        self.assertEqual(units_to_quantity("0.0019"), 1)
        self.assertEqual(units_to_quantity(2), 2000)

    def test_units_must_be_numeric(self):
        with self.assertRaises(InvalidTradeRequest):
            units_to_quantity("abc")
        with self.assertRaises(InvalidTradeRequest):
            units_to_quantity("NaN")

    def test_resolve_sell_quantity_modes(self):
        self.assertEqual(resolve_sell_quantity(34475, "percentage", percentage=50), 17237)
        self.assertEqual(resolve_sell_quantity(34475, "all"), 34475)
        self.assertEqual(resolve_sell_quantity(34475, "quantity", quantity=Decimal("1.25")), 1250)


class TestPortfolioLedger(unittest.TestCase):
    """Buy and sell against the database"""

    def setUp(self):
        """Set up test environment before each test"""
        self.engine, self.db = make_session()
        self.user = create_user(self.db, coins=10000)
        self.asset = create_asset(self.db, "TEST")
        self.ledger = PortfolioLedger(self.db, fee_bps=150)

    def tearDown(self):
        """Clean up after each test"""
        self.db.close()
        self.engine.dispose()

    def _position(self):
        return self.db.query(Position).filter(
            Position.user_id == self.user.id,
            Position.asset_id == self.asset.id
        ).first()

    def _build_scenario_position(self):
        set_price(self.db, self.asset, 10000)
        self.ledger.buy(self.user.id, "TEST", 1000)
        set_price(self.db, self.asset, 8000)
        return self.ledger.buy(self.user.id, "TEST", 2000)

    def test_first_buy_opens_position(self):
        set_price(self.db, self.asset, 10000)

        result = self.ledger.buy(self.user.id, "test", 1000)

        self.assertEqual(result.side, TransactionType.BUY)
        self.assertEqual(result.symbol, "TEST")
        self.assertEqual(result.fee_amount, 15)
        self.assertEqual(result.quantity, 9850)
        self.assertEqual(result.subtotal, 985)
        self.assertEqual(result.total_amount, 1000)
        self.assertIsNone(result.profit_loss)
        self.assertEqual(result.position.quantity, 9850)
        self.assertEqual(result.position.total_invested, 985)
        self.assertEqual(result.position.average_cost, 10000)
        self.assertEqual(result.position.realized_gain, 0)
        self.assertEqual(balance_of(self.db, self.user), 9000)

    def test_second_buy_averages_cost(self):
        result = self._build_scenario_position()

        self.assertEqual(result.fee_amount, 30)
        self.assertEqual(result.quantity, 24625)
        self.assertEqual(result.subtotal, 1970)

        position = self._position()
        self.assertEqual(position.quantity, 34475)
        self.assertEqual(position.total_invested, 2955)
        self.assertEqual(position.average_cost, 8571)
        self.assertEqual(position.average_cost, position.total_invested * 100000 // position.quantity)
        self.assertEqual(balance_of(self.db, self.user), 7000)

    def test_partial_sell_reduces_cost_basis_proportionally(self):
        self._build_scenario_position()
        set_price(self.db, self.asset, 12000)

        result = self.ledger.sell(self.user.id, "TEST", "percentage", percentage=50)

        self.assertEqual(result.side, TransactionType.SELL)
        self.assertEqual(result.quantity, 17237)
        self.assertEqual(result.subtotal, 2068)
        self.assertEqual(result.fee_amount, 31)
        self.assertEqual(result.total_amount, 2037)
        self.assertEqual(result.cost_basis, 1477)
        self.assertEqual(result.profit_loss, 560)

        position = self._position()
        self.assertEqual(position.quantity, 17238)
        self.assertEqual(position.total_invested, 1477)
        self.assertEqual(position.average_cost, 8571)
        self.assertEqual(position.realized_gain, 560)
        self.assertEqual(position.total_invested, position.quantity * position.average_cost // 100000)
        self.assertEqual(balance_of(self.db, self.user), 9037)

    def test_sell_all_deletes_position(self):
        self._build_scenario_position()
        set_price(self.db, self.asset, 12000)

        result = self.ledger.sell(self.user.id, "TEST", "all")

        self.assertIsNone(result.position)
        self.assertEqual(result.quantity, 34475)
        self.assertIsNone(self._position())

    def test_sell_by_quantity(self):
        set_price(self.db, self.asset, 10000)
        self.ledger.buy(self.user.id, "TEST", 1000)

        result = self.ledger.sell(self.user.id, "TEST", "quantity", quantity=Decimal("2.5"))

        self.assertEqual(result.quantity, 2500)
        self.assertEqual(self._position().quantity, 7350)

    def test_sell_more_than_held_is_rejected(self):
        set_price(self.db, self.asset, 10000)
        self.ledger.buy(self.user.id, "TEST", 1000)

        with self.assertRaises(InvalidSellAmount):
            self.ledger.sell(self.user.id, "TEST", "quantity", quantity=Decimal("9.851"))

        self.assertEqual(self._position().quantity, 9850)

    def test_sell_rounding_to_zero_is_rejected(self):
        set_price(self.db, self.asset, 10000)
        self.ledger.buy(self.user.id, "TEST", 1000)

        with self.assertRaises(InvalidSellAmount):
            self.ledger.sell(self.user.id, "TEST", "quantity", quantity=Decimal("0.0004"))

        self.assertEqual(self._position().quantity, 9850)

    def test_sell_without_position(self):
        set_price(self.db, self.asset, 10000)

        with self.assertRaises(NoPosition):
            self.ledger.sell(self.user.id, "TEST", "all")

    def test_sell_request_validation(self):
        with self.assertRaises(InvalidTradeRequest):
            self.ledger.sell(self.user.id, "TEST", "everything")
        with self.assertRaises(InvalidTradeRequest):
            self.ledger.sell(self.user.id, "TEST", "percentage", percentage=0)
        with self.assertRaises(InvalidTradeRequest):
            self.ledger.sell(self.user.id, "TEST", "percentage", percentage=101)
        with self.assertRaises(InvalidTradeRequest):
            self.ledger.sell(self.user.id, "TEST", "quantity")
        with self.assertRaises(InvalidTradeRequest):
            self.ledger.sell(self.user.id, "TEST", "quantity", quantity=Decimal("-1"))

    def test_buy_amount_must_be_positive(self):
        set_price(self.db, self.asset, 10000)

        for amount in (0, -5, 10.5, True):
            with self.assertRaises(InvalidTradeRequest):
                self.ledger.buy(self.user.id, "TEST", amount)

        self.assertEqual(balance_of(self.db, self.user), 10000)

    def test_buy_checks_run_in_order(self):
        with self.assertRaises(UserNotFound):
            self.ledger.buy(9999, "NOPE", 1000)

        with self.assertRaises(AssetNotFound):
            self.ledger.buy(self.user.id, "NOPE", 1000)

        create_asset(self.db, "OFF", is_active=False)
        with self.assertRaises(AssetInactive):
            self.ledger.buy(self.user.id, "OFF", 1000)

        with self.assertRaises(BelowMinimum):
            self.ledger.buy(self.user.id, "TEST", 99)

        with self.assertRaises(NoPriceData):
            self.ledger.buy(self.user.id, "TEST", 1000)

        set_price(self.db, self.asset, 10000)
        with self.assertRaises(InsufficientFunds) as ctx:
            self.ledger.buy(self.user.id, "TEST", 10001)

        self.assertEqual(ctx.exception.data, {"required": 10001, "available": 10000})

    def test_buy_too_small_for_any_quantity(self):
        set_price(self.db, self.asset, 100000000000)

        with self.assertRaises(InvalidTradeRequest):
            self.ledger.buy(self.user.id, "TEST", 100)

        self.assertIsNone(self._position())
        self.assertEqual(balance_of(self.db, self.user), 10000)

    def test_failed_buy_leaves_state_unchanged(self):
        set_price(self.db, self.asset, 10000)
        self.ledger.buy(self.user.id, "TEST", 1000)

        with self.assertRaises(InsufficientFunds):
            self.ledger.buy(self.user.id, "TEST", 9001)

        position = self._position()
        self.assertEqual(position.quantity, 9850)
        self.assertEqual(position.total_invested, 985)
        self.assertEqual(balance_of(self.db, self.user), 9000)
        self.assertEqual(self.db.query(LedgerTransaction).count(), 1)

    def test_balance_change_between_check_and_debit(self):
        set_price(self.db, self.asset, 10000)

        # The balance read reports enough coins but the row no longer has them
        with patch.object(self.ledger.users, "get_balance", return_value=50000):
            with self.assertRaises(InsufficientFunds):
                self.ledger.buy(self.user.id, "TEST", 20000)

        self.assertIsNone(self._position())
        self.assertEqual(balance_of(self.db, self.user), 10000)

    def test_database_error_becomes_trade_conflict(self):
        set_price(self.db, self.asset, 10000)
        self.ledger.buy(self.user.id, "TEST", 1000)

        error = OperationalError("INSERT", {}, Exception("database is locked"))
        with patch.object(self.ledger.transactions, "create", side_effect=error):
            with self.assertRaises(TradeConflict):
                self.ledger.buy(self.user.id, "TEST", 1000)

        position = self._position()
        self.assertEqual(position.quantity, 9850)
        self.assertEqual(balance_of(self.db, self.user), 9000)

    def test_trades_are_journaled(self):
        self._build_scenario_position()
        set_price(self.db, self.asset, 12000)
        sell = self.ledger.sell(self.user.id, "TEST", "percentage", percentage=50)

        rows = self.db.query(LedgerTransaction).order_by(LedgerTransaction.id).all()
        self.assertEqual([r.transaction_type for r in rows],
                         [TransactionType.BUY, TransactionType.BUY, TransactionType.SELL])
        self.assertEqual(rows[-1].id, sell.transaction_id)
        self.assertEqual(rows[-1].cost_basis, 1477)
        self.assertEqual(rows[-1].realized_gain, 560)
        self.assertEqual(rows[-1].fee_bps, 150)
        self.assertIsNone(rows[0].cost_basis)
        self.assertEqual(rows[0].notes, "Bought 9.850 units at $100.00")

    def test_sell_of_inactive_asset_is_allowed(self):
        set_price(self.db, self.asset, 10000)
        self.ledger.buy(self.user.id, "TEST", 1000)
        self.asset.is_active = False
        self.db.commit()

        result = self.ledger.sell(self.user.id, "TEST", "all")

        self.assertEqual(result.quantity, 9850)

    def test_random_trade_sequence_keeps_invariants(self):
        rng = random.Random(20240611)
        trader = create_user(self.db, "trader", coins=1000000)
        assets = [create_asset(self.db, symbol) for symbol in ("AAA", "BBB", "CCC")]

        def position_of(asset):
            position = self.db.query(Position).filter(
                Position.user_id == trader.id,
                Position.asset_id == asset.id
            ).first()
            if position is None:
                return None
            return position.quantity, position.total_invested, position.average_cost

        for step in range(400):
            asset = rng.choice(assets)
            price = rng.randint(500, 5000000)
            set_price(self.db, asset, price)

            before = position_of(asset)
            balance = balance_of(self.db, trader)

            if before is None or rng.random() < 0.5:
                if balance < 100:
                    continue
                amount = rng.randint(100, min(balance, 5000))
                result = self.ledger.buy(trader.id, asset.symbol, amount)
                after = position_of(asset)

                self.assertEqual(result.fee_amount, amount * 150 // 10000, step)
                self.assertLessEqual(result.total_amount, amount, step)
                self.assertEqual(result.total_amount, result.subtotal + result.fee_amount, step)
                self.assertEqual(balance - balance_of(self.db, trader), result.total_amount, step)
                if before is None:
                    self.assertEqual(after, (result.quantity, result.subtotal, price), step)
                else:
                    quantity, total_invested, average_cost = after
                    self.assertEqual(quantity, before[0] + result.quantity, step)
                    self.assertEqual(total_invested, before[1] + result.subtotal, step)
                    self.assertEqual(average_cost, total_invested * 100000 // quantity, step)
            else:
                held = before[0]
                mode = rng.choice(["percentage", "quantity", "all"])
                if mode == "percentage" and held >= 100:
                    result = self.ledger.sell(trader.id, asset.symbol, mode, percentage=rng.randint(1, 100))
                elif mode == "quantity":
                    units = Decimal(rng.randint(1, held)) / 1000
                    result = self.ledger.sell(trader.id, asset.symbol, mode, quantity=units)
                else:
                    result = self.ledger.sell(trader.id, asset.symbol, "all")
                after = position_of(asset)

                self.assertEqual(result.subtotal, result.quantity * price // 100000, step)
                self.assertEqual(result.fee_amount, result.subtotal * 150 // 10000, step)
                self.assertEqual(result.total_amount, result.subtotal - result.fee_amount, step)
                self.assertEqual(result.cost_basis, result.quantity * before[2] // 100000, step)
                self.assertEqual(balance_of(self.db, trader) - balance, result.total_amount, step)
                remaining = held - result.quantity
                if remaining == 0:
                    self.assertIsNone(after, step)
                else:
                    self.assertEqual(after, (remaining, remaining * before[2] // 100000, before[2]), step)


if __name__ == "__main__":
    unittest.main()
