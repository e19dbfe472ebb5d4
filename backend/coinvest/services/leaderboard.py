"""
Leaderboard Ranker for CoinVest

Ranks every user holding at least one position by an aggregate metric.
"""

import logging
from itertools import groupby
from operator import itemgetter
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from coinvest.core.config import settings
from coinvest.repositories.investment import PositionRepository
from coinvest.schemas.investment import InvestmentSummary, LeaderboardEntry, LeaderboardMetricEnum
from coinvest.services.exceptions import InvalidTradeRequest
from coinvest.services.price_oracle import PriceOracle
from coinvest.services.summary import summarize_positions

logger = logging.getLogger(__name__)

METRIC_FIELDS = {
    LeaderboardMetricEnum.TOTAL_PROFIT: "total_profit",
    LeaderboardMetricEnum.TOTAL_VALUE: "current_value",
    LeaderboardMetricEnum.PROFIT_PERCENT: "profit_percent",
}


def metric_value(summary: InvestmentSummary, metric: LeaderboardMetricEnum) -> float:
    return getattr(summary, METRIC_FIELDS[metric])


class LeaderboardRanker:
    """Rank users by their investment summary"""

    def __init__(self, db: Session, max_limit: Optional[int] = None):
        self.db = db
        self.max_limit = settings.leaderboard_max_limit if max_limit is None else max_limit
        self.positions = PositionRepository(db)
        self.oracle = PriceOracle(db)

    def rank(
        self,
        metric: Union[LeaderboardMetricEnum, str] = LeaderboardMetricEnum.TOTAL_PROFIT,
        limit: int = 10
    ) -> List[LeaderboardEntry]:
        """
        Build the leaderboard

        Users are read in ascending ID order and sorted stably, so ties keep
        that order.

        Args:
            metric: totalProfit, totalValue or profitPercent
            limit: Number of entries, 1 to the configured maximum

        Returns:
            List[LeaderboardEntry]: Entries ranked 1..N, best first
        """
        try:
            metric = LeaderboardMetricEnum(metric)
        except ValueError:
            raise InvalidTradeRequest(data={"metric": str(metric)})

        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= self.max_limit:
            raise InvalidTradeRequest(data={"limit": limit})

        rows = self.positions.get_all_with_users()
        latest = self.oracle.latest_prices(position.asset_id for position, _ in rows)
        prices = {asset_id: observation.price for asset_id, observation in latest.items()}

        candidates = []
        for (user_id, username), group in groupby(rows, key=lambda row: (row[1].id, row[1].username)):
            summary = summarize_positions((position for position, _ in group), prices)
            candidates.append((user_id, username, summary, metric_value(summary, metric)))

        candidates.sort(key=itemgetter(3), reverse=True)

        entries = []
        for rank, (user_id, username, summary, value) in enumerate(candidates[:limit], start=1):
            entries.append(LeaderboardEntry(
                rank=rank,
                user_id=user_id,
                username=username,
                metric_value=value,
                total_profit=summary.total_profit,
                current_value=summary.current_value,
                profit_percent=summary.profit_percent,
                total_invested=summary.total_invested,
                holdings_count=summary.holdings_count,
            ))

        logger.debug(f"Ranked {len(candidates)} users by {metric.value}")
        return entries
