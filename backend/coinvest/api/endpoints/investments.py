"""
Investment API endpoints for CoinVest

This module provides API endpoints for buying, selling and viewing a user's
investments.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coinvest.api.deps import get_audit_logger, get_db, ledger_http_error
from coinvest.monitoring.logger import TradeAuditLogger
from coinvest.schemas.investment import (
    BuyRequest,
    InvestmentSummary,
    Portfolio,
    SellRequest,
    TradeResult,
    TransactionHistory,
    TransactionTypeFilterEnum,
    Wealth,
)
from coinvest.services.exceptions import LedgerError
from coinvest.services.journal import TransactionJournal
from coinvest.services.ledger import PortfolioLedger
from coinvest.services.summary import SummaryAggregator

router = APIRouter()


@router.post("/buy", response_model=TradeResult)
def buy_asset(
    *,
    user_id: int,
    db: Session = Depends(get_db),
    buy_in: BuyRequest,
    audit: TradeAuditLogger = Depends(get_audit_logger)
) -> Any:
    """
    Buy an asset with coins.
    """
    try:
        result = PortfolioLedger(db).buy(user_id, buy_in.symbol, buy_in.amount_in_coins)
    except LedgerError as e:
        raise ledger_http_error(e)

    audit.log_trade(user_id, result)
    return result


@router.post("/sell", response_model=TradeResult)
def sell_asset(
    *,
    user_id: int,
    db: Session = Depends(get_db),
    sell_in: SellRequest,
    audit: TradeAuditLogger = Depends(get_audit_logger)
) -> Any:
    """
    Sell part or all of a position.
    """
    try:
        result = PortfolioLedger(db).sell(
            user_id,
            sell_in.symbol,
            sell_in.sell_type,
            quantity=sell_in.quantity,
            percentage=sell_in.percentage,
        )
    except LedgerError as e:
        raise ledger_http_error(e)

    audit.log_trade(user_id, result)
    return result


@router.get("/summary", response_model=InvestmentSummary)
def get_summary(user_id: int, db: Session = Depends(get_db)) -> Any:
    """
    Get investment summary.
    """
    return SummaryAggregator(db).summarize(user_id)


@router.get("/portfolio", response_model=Portfolio)
def get_portfolio(user_id: int, db: Session = Depends(get_db)) -> Any:
    """
    Get holdings valued at current prices.
    """
    return SummaryAggregator(db).portfolio(user_id)


@router.get("/wealth", response_model=Wealth)
def get_wealth(user_id: int, db: Session = Depends(get_db)) -> Any:
    """
    Get coins plus investment value.
    """
    try:
        return SummaryAggregator(db).wealth(user_id)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.get("/transactions", response_model=TransactionHistory)
def get_transactions(
    user_id: int,
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    transaction_type: TransactionTypeFilterEnum = TransactionTypeFilterEnum.ALL
) -> Any:
    """
    Get transaction history, newest first.
    """
    try:
        return TransactionJournal(db).history(user_id, limit=limit, offset=offset,
                                              transaction_type=transaction_type.value)
    except LedgerError as e:
        raise ledger_http_error(e)
