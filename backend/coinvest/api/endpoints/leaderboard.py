"""
Leaderboard API endpoints for CoinVest
"""

from typing import Any, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coinvest.api.deps import get_db, ledger_http_error
from coinvest.core.config import settings
from coinvest.schemas.investment import LeaderboardEntry, LeaderboardMetricEnum
from coinvest.services.exceptions import LedgerError
from coinvest.services.leaderboard import LeaderboardRanker

router = APIRouter()


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
def get_leaderboard(
    db: Session = Depends(get_db),
    metric: LeaderboardMetricEnum = LeaderboardMetricEnum.TOTAL_PROFIT,
    limit: int = Query(10, ge=1, le=settings.leaderboard_max_limit)
) -> Any:
    """
    Rank investors by a metric.
    """
    try:
        return LeaderboardRanker(db).rank(metric, limit)
    except LedgerError as e:
        raise ledger_http_error(e)
