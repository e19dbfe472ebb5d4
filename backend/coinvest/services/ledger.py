"""
Portfolio Ledger for CoinVest

This module implements buying and selling fractional asset positions with the
internal coin balance.

All arithmetic is on non-negative integers with floor division:

* prices and average costs are in hundredths (PRICE_SCALE = 100)
* quantities are in thousandths of a unit (QUANTITY_SCALE = 1000)
* coin amounts, total invested and realized gains are whole coins

so the coin value of ``quantity`` units at ``price`` is
``quantity * price // VALUE_DIVISOR``. Rounding therefore always favours the
user on buys (they are never debited more than they asked to spend) and the
house on sells.

A buy or sell runs as one transaction on the session: the position row is
locked with SELECT ... FOR UPDATE, the balance moves through a single
conditional UPDATE, and everything is committed or rolled back together.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coinvest.core.config import settings
from coinvest.db.base import utcnow
from coinvest.models.transaction import TransactionType
from coinvest.repositories.investment import PositionRepository, TransactionRepository
from coinvest.repositories.user import UserRepository
from coinvest.schemas.investment import SellTypeEnum, TradeResult
from coinvest.services.exceptions import (
    BelowMinimum,
    InsufficientFunds,
    InvalidSellAmount,
    InvalidTradeRequest,
    LedgerError,
    NoPosition,
    TradeConflict,
    UserNotFound,
)
from coinvest.services.price_oracle import PriceOracle
from coinvest.services.registry import AssetRegistry

logger = logging.getLogger(__name__)

PRICE_SCALE = 100
QUANTITY_SCALE = 1000
VALUE_DIVISOR = PRICE_SCALE * QUANTITY_SCALE
BPS_DENOMINATOR = 10000
FEE_BPS = 150


@dataclass(frozen=True)
class BuyQuote:
    """Amounts of a buy at a given price"""
    price: int
    fee: int
    net_spend: int
    quantity: int
    subtotal: int
    total_amount: int


@dataclass(frozen=True)
class SellQuote:
    """Amounts of a sell at a given price"""
    price: int
    quantity: int
    subtotal: int
    fee: int
    total_amount: int
    cost_basis: int
    profit_loss: int


def calculate_fee(amount: int, fee_bps: int = FEE_BPS) -> int:
    """Fee on a coin amount, floored"""
    return amount * fee_bps // BPS_DENOMINATOR


def value_of(quantity: int, price: int) -> int:
    """Coin value of a quantity at a price (or average cost), floored"""
    return quantity * price // VALUE_DIVISOR


def quote_buy(amount_in_coins: int, price: int, fee_bps: int = FEE_BPS) -> BuyQuote:
    """
    Work out what spending ``amount_in_coins`` buys at ``price``

    The fee comes off the top, the rest is converted to quantity, and the
    subtotal is re-derived from the floored quantity, so
    ``total_amount <= amount_in_coins`` always holds.
    """
    fee = calculate_fee(amount_in_coins, fee_bps)
    net_spend = amount_in_coins - fee
    quantity = net_spend * QUANTITY_SCALE * PRICE_SCALE // price
    subtotal = value_of(quantity, price)
    return BuyQuote(
        price=price,
        fee=fee,
        net_spend=net_spend,
        quantity=quantity,
        subtotal=subtotal,
        total_amount=subtotal + fee,
    )


def quote_sell(quantity: int, price: int, average_cost: int, fee_bps: int = FEE_BPS) -> SellQuote:
    """Work out proceeds and realized gain of selling ``quantity`` at ``price``"""
    subtotal = value_of(quantity, price)
    fee = calculate_fee(subtotal, fee_bps)
    total_amount = subtotal - fee
    cost_basis = value_of(quantity, average_cost)
    return SellQuote(
        price=price,
        quantity=quantity,
        subtotal=subtotal,
        fee=fee,
        total_amount=total_amount,
        cost_basis=cost_basis,
        profit_loss=total_amount - cost_basis,
    )


def average_cost_for(total_invested: int, quantity: int) -> int:
    """Weighted average cost of a position from its running totals"""
    return total_invested * VALUE_DIVISOR // quantity


def parse_units(units: Union[int, str, Decimal]) -> Decimal:
    """Parse a unit amount, rejecting anything that is not a finite number"""
    try:
        value = units if isinstance(units, Decimal) else Decimal(str(units))
    except InvalidOperation:
        raise InvalidTradeRequest(data={"quantity": str(units)})
    if not value.is_finite():
        raise InvalidTradeRequest(data={"quantity": str(units)})
    return value


def units_to_quantity(units: Union[int, str, Decimal]) -> int:
    """
    Convert whole or fractional units to the thousandths scale

    Digits beyond the third decimal are floored away.
    """
    value = parse_units(units)
    return int((value * QUANTITY_SCALE).to_integral_value(rounding=ROUND_FLOOR))


def resolve_sell_quantity(
    held: int,
    sell_type: Union[SellTypeEnum, str],
    quantity: Optional[Union[int, str, Decimal]] = None,
    percentage: Optional[int] = None
) -> int:
    """
    Quantity (thousandths) a sell request refers to

    Args:
        held: Current position quantity
        sell_type: 'percentage', 'quantity' or 'all'
        quantity: Units to sell for 'quantity'
        percentage: 1-100 for 'percentage'

    Returns:
        int: Quantity to sell, not yet checked against holdings
    """
    sell_type = SellTypeEnum(sell_type)

    if sell_type == SellTypeEnum.ALL:
        return held

    if sell_type == SellTypeEnum.QUANTITY:
        return units_to_quantity(quantity)

    return held * percentage // 100


def format_quantity(quantity: int) -> str:
    return f"{quantity // QUANTITY_SCALE}.{quantity % QUANTITY_SCALE:03d}"


def format_price(price: int) -> str:
    return f"${price // PRICE_SCALE}.{price % PRICE_SCALE:02d}"


class PortfolioLedger:
    """Buy/sell engine over positions and coin balances"""

    def __init__(self, db: Session, fee_bps: Optional[int] = None):
        """
        Initialize the ledger

        Args:
            db: Database session; each trade commits or rolls it back
            fee_bps: Fee in basis points, defaults to the configured fee
        """
        self.db = db
        self.fee_bps = settings.trade_fee_bps if fee_bps is None else fee_bps
        self.users = UserRepository(db)
        self.positions = PositionRepository(db)
        self.transactions = TransactionRepository(db)
        self.registry = AssetRegistry(db)
        self.oracle = PriceOracle(db)

    def buy(self, user_id: int, symbol: str, amount_in_coins: int) -> TradeResult:
        """
        Spend coins on an asset

        Args:
            user_id: Buying user
            symbol: Asset symbol
            amount_in_coins: Coins to spend including the fee

        Returns:
            TradeResult: Executed amounts and the resulting position

        Raises:
            InvalidTradeRequest, UserNotFound, AssetNotFound, AssetInactive,
            BelowMinimum, NoPriceData, InsufficientFunds, TradeConflict
        """
        if isinstance(amount_in_coins, bool) or not isinstance(amount_in_coins, int) or amount_in_coins <= 0:
            raise InvalidTradeRequest("amount_in_coins must be a positive integer",
                                      data={"amount_in_coins": amount_in_coins})

        result = self._run(self._buy, user_id, symbol, amount_in_coins)
        logger.info(f"User {user_id} {result.message}")
        return result

    def sell(
        self,
        user_id: int,
        symbol: str,
        sell_type: Union[SellTypeEnum, str],
        quantity: Optional[Union[int, str, Decimal]] = None,
        percentage: Optional[int] = None
    ) -> TradeResult:
        """
        Sell part or all of a position

        Args:
            user_id: Selling user
            symbol: Asset symbol
            sell_type: 'percentage', 'quantity' or 'all'
            quantity: Whole or fractional units for 'quantity'
            percentage: 1-100 for 'percentage'

        Returns:
            TradeResult: Executed amounts, realized profit/loss and the
            remaining position (None once fully sold)

        Raises:
            InvalidTradeRequest, UserNotFound, AssetNotFound, NoPosition,
            InvalidSellAmount, NoPriceData, TradeConflict
        """
        self._validate_sell_request(sell_type, quantity, percentage)

        result = self._run(self._sell, user_id, symbol, SellTypeEnum(sell_type), quantity, percentage)
        logger.info(f"User {user_id} {result.message}")
        return result

    def _run(self, operation, *args) -> TradeResult:
        try:
            result = operation(*args)
            self.db.commit()
        except LedgerError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Trade rolled back: {e}")
            raise TradeConflict() from e
        return result

    @staticmethod
    def _validate_sell_request(sell_type, quantity, percentage) -> None:
        try:
            sell_type = SellTypeEnum(sell_type)
        except ValueError:
            raise InvalidTradeRequest(data={"sell_type": str(sell_type)})

        if sell_type == SellTypeEnum.QUANTITY:
            if quantity is None or parse_units(quantity) <= 0:
                raise InvalidTradeRequest("quantity is required and must be positive",
                                          data={"quantity": str(quantity)})
        elif sell_type == SellTypeEnum.PERCENTAGE:
            if isinstance(percentage, bool) or not isinstance(percentage, int) or not 1 <= percentage <= 100:
                raise InvalidTradeRequest("percentage must be an integer between 1 and 100",
                                          data={"percentage": percentage})

    def _require_user(self, user_id: int) -> None:
        if not self.users.exists(user_id):
            raise UserNotFound(data={"user_id": user_id})

    def _buy(self, user_id: int, symbol: str, amount_in_coins: int) -> TradeResult:
        self._require_user(user_id)

        asset = self.registry.get_tradable(symbol)
        if amount_in_coins < asset.min_investment:
            raise BelowMinimum(data={"minimum": asset.min_investment})

        price = self.oracle.current_price(asset.id)

        available = self.users.get_balance(user_id)
        if amount_in_coins > available:
            raise InsufficientFunds(data={"required": amount_in_coins, "available": available})

        quote = quote_buy(amount_in_coins, price, self.fee_bps)
        if quote.quantity == 0:
            raise InvalidTradeRequest("Amount is too small to buy any quantity at the current price",
                                      data={"amount_in_coins": amount_in_coins, "price": price})

        now = utcnow()
        position = self.positions.get_for_update(user_id, asset.id)

        if position is None:
            position = self.positions.create(obj_in={
                "user_id": user_id,
                "asset_id": asset.id,
                "quantity": quote.quantity,
                "average_cost": price,
                "total_invested": quote.subtotal,
                "realized_gain": 0,
                "first_purchase_at": now,
                "last_transaction_at": now,
            })
        else:
            new_quantity = position.quantity + quote.quantity
            new_total_invested = position.total_invested + quote.subtotal
            self.positions.update(db_obj=position, obj_in={
                "quantity": new_quantity,
                "total_invested": new_total_invested,
                "average_cost": average_cost_for(new_total_invested, new_quantity),
                "last_transaction_at": now,
            })

        if not self.users.debit(user_id, quote.total_amount, required=amount_in_coins):
            # Balance moved between the check and the write
            raise InsufficientFunds(data={"required": amount_in_coins,
                                          "available": self.users.get_balance(user_id)})

        transaction = self.transactions.create(obj_in={
            "user_id": user_id,
            "asset_id": asset.id,
            "transaction_type": TransactionType.BUY,
            "quantity": quote.quantity,
            "price_per_unit": price,
            "subtotal": quote.subtotal,
            "fee_bps": self.fee_bps,
            "fee_amount": quote.fee,
            "total_amount": quote.total_amount,
            "notes": f"Bought {format_quantity(quote.quantity)} units at {format_price(price)}",
        })

        return TradeResult(
            side=TransactionType.BUY,
            symbol=asset.symbol,
            quantity=quote.quantity,
            price=price,
            subtotal=quote.subtotal,
            fee_amount=quote.fee,
            total_amount=quote.total_amount,
            position=position,
            transaction_id=transaction.id,
            message=(f"Bought {format_quantity(quote.quantity)} {asset.symbol} for {quote.total_amount} coins "
                     f"(including {quote.fee} coins fee)"),
        )

    def _sell(
        self,
        user_id: int,
        symbol: str,
        sell_type: SellTypeEnum,
        quantity: Optional[Union[int, str, Decimal]],
        percentage: Optional[int]
    ) -> TradeResult:
        self._require_user(user_id)

        asset = self.registry.get(symbol)
        position = self.positions.get_for_update(user_id, asset.id)
        if position is None:
            raise NoPosition(data={"symbol": asset.symbol})

        quantity_to_sell = resolve_sell_quantity(position.quantity, sell_type, quantity, percentage)
        if quantity_to_sell <= 0 or quantity_to_sell > position.quantity:
            raise InvalidSellAmount(data={
                "available": format_quantity(position.quantity),
                "requested": format_quantity(max(quantity_to_sell, 0)),
            })

        price = self.oracle.current_price(asset.id)
        quote = quote_sell(quantity_to_sell, price, position.average_cost, self.fee_bps)
        remaining = position.quantity - quantity_to_sell

        if remaining == 0:
            self.positions.remove(db_obj=position)
            position = None
        else:
            self.positions.update(db_obj=position, obj_in={
                "quantity": remaining,
                "total_invested": value_of(remaining, position.average_cost),
                "realized_gain": position.realized_gain + quote.profit_loss,
                "last_transaction_at": utcnow(),
            })

        self.users.credit(user_id, quote.total_amount)

        transaction = self.transactions.create(obj_in={
            "user_id": user_id,
            "asset_id": asset.id,
            "transaction_type": TransactionType.SELL,
            "quantity": quantity_to_sell,
            "price_per_unit": price,
            "subtotal": quote.subtotal,
            "fee_bps": self.fee_bps,
            "fee_amount": quote.fee,
            "total_amount": quote.total_amount,
            "cost_basis": quote.cost_basis,
            "realized_gain": quote.profit_loss,
            "notes": f"Sold {format_quantity(quantity_to_sell)} units at {format_price(price)}",
        })

        if quote.profit_loss >= 0:
            outcome = f"profit of {quote.profit_loss}"
        else:
            outcome = f"loss of {-quote.profit_loss}"

        return TradeResult(
            side=TransactionType.SELL,
            symbol=asset.symbol,
            quantity=quantity_to_sell,
            price=price,
            subtotal=quote.subtotal,
            fee_amount=quote.fee,
            total_amount=quote.total_amount,
            cost_basis=quote.cost_basis,
            profit_loss=quote.profit_loss,
            position=position,
            transaction_id=transaction.id,
            message=(f"Sold {format_quantity(quantity_to_sell)} {asset.symbol} for {quote.total_amount} coins "
                     f"({outcome}, {quote.fee} coins fee)"),
        )
