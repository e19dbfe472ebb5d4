"""
Transaction Journal for CoinVest

Paged read access to the executed-trade journal the ledger appends to.
"""

from typing import Optional

from sqlalchemy.orm import Session

from coinvest.models.transaction import TransactionType
from coinvest.repositories.investment import TransactionRepository
from coinvest.schemas.investment import TransactionHistory, TransactionHistoryItem
from coinvest.services.exceptions import InvalidTradeRequest

MAX_PAGE_SIZE = 100


class TransactionJournal:
    """History of a user's buys and sells"""

    def __init__(self, db: Session):
        self.db = db
        self.transactions = TransactionRepository(db)

    def history(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        transaction_type: Optional[str] = None
    ) -> TransactionHistory:
        """
        Get a page of a user's journal, newest first

        Args:
            user_id: User ID
            limit: Page size, 1 to 100
            offset: Number of rows to skip
            transaction_type: 'buy', 'sell', or None / 'all'

        Returns:
            TransactionHistory: Rows with their assets plus the total count
        """
        if not 1 <= limit <= MAX_PAGE_SIZE or offset < 0:
            raise InvalidTradeRequest(data={"limit": limit, "offset": offset})

        if transaction_type in (None, "all"):
            type_filter = None
        else:
            try:
                type_filter = TransactionType(transaction_type)
            except ValueError:
                raise InvalidTradeRequest(data={"transaction_type": str(transaction_type)})

        rows = self.transactions.get_user_transactions(user_id, type_filter, skip=offset, limit=limit)

        return TransactionHistory(
            transactions=[TransactionHistoryItem(transaction=row, asset=row.asset) for row in rows],
            total=self.transactions.count_user_transactions(user_id, type_filter),
        )
