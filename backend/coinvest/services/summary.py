"""
Summary Aggregator for CoinVest

Read-only figures over a user's open positions, valued at the latest price.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from sqlalchemy.orm import Session

from coinvest.models.position import Position
from coinvest.models.price import PriceObservation
from coinvest.repositories.investment import PositionRepository
from coinvest.repositories.user import UserRepository
from coinvest.schemas.investment import InvestmentSummary, Portfolio, PortfolioHolding, Wealth
from coinvest.services.exceptions import UserNotFound
from coinvest.services.ledger import value_of
from coinvest.services.price_oracle import PriceOracle

logger = logging.getLogger(__name__)


def percent_of(gain: int, base: int) -> float:
    """Gain as a percentage of base; 0 when base is 0"""
    if base == 0:
        return 0.0
    return gain / base * 100


def mark_price(position: Position, prices: Dict[int, int]) -> int:
    """
    Price a position is valued at

    Unpriced assets fall back to the position's average cost, which values
    the holding at exactly what was paid for it.
    """
    price = prices.get(position.asset_id)
    if price is None:
        logger.warning(f"No price for asset {position.asset_id}, valuing position {position.id} at average cost")
        return position.average_cost
    return price


def summarize_positions(positions: Iterable[Position], prices: Dict[int, int]) -> InvestmentSummary:
    """
    Aggregate positions into a summary

    Args:
        positions: Open positions of one user
        prices: Latest price per asset ID

    Returns:
        InvestmentSummary: Totals; all zero for no positions
    """
    total_invested = 0
    current_value = 0
    realized_gains = 0
    holdings_count = 0

    for position in positions:
        total_invested += position.total_invested
        current_value += value_of(position.quantity, mark_price(position, prices))
        realized_gains += position.realized_gain
        holdings_count += 1

    unrealized_gains = current_value - total_invested
    total_profit = realized_gains + unrealized_gains

    return InvestmentSummary(
        total_invested=total_invested,
        current_value=current_value,
        realized_gains=realized_gains,
        unrealized_gains=unrealized_gains,
        total_profit=total_profit,
        profit_percent=percent_of(total_profit, total_invested),
        holdings_count=holdings_count,
    )


class SummaryAggregator:
    """Net-worth views of a user's investments"""

    def __init__(self, db: Session):
        self.db = db
        self.positions = PositionRepository(db)
        self.users = UserRepository(db)
        self.oracle = PriceOracle(db)

    def _prices_for(self, positions: List[Position]) -> Tuple[Dict[int, PriceObservation], Dict[int, int]]:
        latest = self.oracle.latest_prices(p.asset_id for p in positions)
        return latest, {asset_id: observation.price for asset_id, observation in latest.items()}

    def summarize(self, user_id: int) -> InvestmentSummary:
        """
        Summarize a user's open positions

        Args:
            user_id: User ID

        Returns:
            InvestmentSummary: Totals over all open positions
        """
        positions = self.positions.get_user_positions(user_id)
        _, prices = self._prices_for(positions)
        return summarize_positions(positions, prices)

    def portfolio(self, user_id: int) -> Portfolio:
        """
        Per-holding view of a user's positions plus the summary

        Args:
            user_id: User ID

        Returns:
            Portfolio: Holdings in position order and their summary
        """
        positions = self.positions.get_user_positions(user_id)
        latest, prices = self._prices_for(positions)

        holdings = []
        for position in positions:
            price = mark_price(position, prices)
            current_value = value_of(position.quantity, price)
            unrealized_gain = current_value - position.total_invested
            observation = latest.get(position.asset_id)
            holdings.append(PortfolioHolding(
                asset=position.asset,
                position=position,
                current_price=price,
                current_value=current_value,
                unrealized_gain=unrealized_gain,
                unrealized_gain_percent=percent_of(unrealized_gain, position.total_invested),
                price_observed_at=observation.observed_at if observation else None,
            ))

        return Portfolio(holdings=holdings, summary=summarize_positions(positions, prices))

    def wealth(self, user_id: int) -> Wealth:
        """
        Coin balance plus the current value of all investments

        Raises:
            UserNotFound: If the user does not exist
        """
        coins = self.users.get_balance(user_id)
        if coins is None:
            raise UserNotFound(data={"user_id": user_id})

        investments = self.summarize(user_id)
        return Wealth(
            user_id=user_id,
            coins=coins,
            investments=investments,
            total_wealth=coins + investments.current_value,
        )
