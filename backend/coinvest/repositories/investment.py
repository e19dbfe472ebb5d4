"""
Investment repositories for CoinVest

This module provides repositories for assets, price observations, positions
and the transaction journal.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

import sqlalchemy as sa
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from coinvest.models.asset import Asset
from coinvest.models.position import Position
from coinvest.models.price import PriceObservation
from coinvest.models.transaction import LedgerTransaction
from coinvest.models.user import User
from coinvest.schemas.investment import AssetCreate, AssetUpdate, PriceObservationCreate

from coinvest.repositories.base import BaseRepository


class AssetRepository(BaseRepository[Asset, AssetCreate, AssetUpdate]):
    """Repository for asset reference data"""

    def __init__(self, db: Session):
        """
        Initialize the repository

        Args:
            db: Database session
        """
        super().__init__(Asset, db)

    def get_by_symbol(self, symbol: str) -> Optional[Asset]:
        """
        Get an asset by symbol

        Args:
            symbol: Symbol string, matched case-insensitively

        Returns:
            Optional[Asset]: Asset or None if not found
        """
        return self.db.query(Asset).filter(Asset.symbol == symbol.strip().upper()).first()

    def _active_query(self, asset_type: Optional[str] = None):
        query = self.db.query(Asset).filter(Asset.is_active.is_(True))
        if asset_type:
            query = query.filter(Asset.asset_type == asset_type)
        return query

    def get_active(self, asset_type: Optional[str] = None, skip: int = 0, limit: int = 50) -> List[Asset]:
        """
        Get active assets ordered by symbol

        Args:
            asset_type: Optional asset type filter
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List[Asset]: Page of active assets
        """
        return self._active_query(asset_type).order_by(Asset.symbol).offset(skip).limit(limit).all()

    def count_active(self, asset_type: Optional[str] = None) -> int:
        """Count active assets"""
        return self._active_query(asset_type).count()


class PriceObservationRepository(BaseRepository[PriceObservation, PriceObservationCreate, Dict[str, Any]]):
    """Repository for price observations"""

    def __init__(self, db: Session):
        """
        Initialize the repository

        Args:
            db: Database session
        """
        super().__init__(PriceObservation, db)

    def get_latest(self, asset_id: int) -> Optional[PriceObservation]:
        """
        Get the most recent observation for an asset

        Observations sharing a timestamp are ordered by insertion sequence.

        Args:
            asset_id: Asset ID

        Returns:
            Optional[PriceObservation]: Latest observation or None
        """
        return self.db.query(PriceObservation).filter(
            PriceObservation.asset_id == asset_id
        ).order_by(desc(PriceObservation.observed_at), desc(PriceObservation.id)).first()

    def get_latest_for_assets(self, asset_ids: Iterable[int]) -> Dict[int, PriceObservation]:
        """
        Get the most recent observation for each of several assets

        Args:
            asset_ids: Asset IDs

        Returns:
            Dict[int, PriceObservation]: Latest observation keyed by asset ID;
            unpriced assets are absent
        """
        asset_ids = list(set(asset_ids))
        if not asset_ids:
            return {}

        ranked = sa.select(
            PriceObservation.id.label("id"),
            func.row_number().over(
                partition_by=PriceObservation.asset_id,
                order_by=(desc(PriceObservation.observed_at), desc(PriceObservation.id)),
            ).label("rn"),
        ).where(PriceObservation.asset_id.in_(asset_ids)).subquery()

        rows = self.db.query(PriceObservation).join(
            ranked, ranked.c.id == PriceObservation.id
        ).filter(ranked.c.rn == 1).all()

        return {row.asset_id: row for row in rows}


class PositionRepository(BaseRepository[Position, Dict[str, Any], Dict[str, Any]]):
    """Repository for open positions"""

    def __init__(self, db: Session):
        """
        Initialize the repository

        Args:
            db: Database session
        """
        super().__init__(Position, db)

    def get_for_update(self, user_id: int, asset_id: int) -> Optional[Position]:
        """
        Get and row-lock a user's position in an asset

        The lock is held until the surrounding transaction ends, which
        serialises concurrent trades on the same (user, asset) pair.

        Args:
            user_id: User ID
            asset_id: Asset ID

        Returns:
            Optional[Position]: Position or None if the user holds none
        """
        return self.db.query(Position).filter(
            Position.user_id == user_id,
            Position.asset_id == asset_id
        ).with_for_update().first()

    def get_user_positions(self, user_id: int) -> List[Position]:
        """
        Get all open positions of a user

        Args:
            user_id: User ID

        Returns:
            List[Position]: Positions ordered by creation
        """
        return self.db.query(Position).filter(
            Position.user_id == user_id
        ).order_by(Position.id).all()

    def get_all_with_users(self) -> List[Tuple[Position, User]]:
        """
        Get every open position with its owner

        Returns:
            List[Tuple[Position, User]]: Rows ordered by user ID, then position ID
        """
        return self.db.query(Position, User).join(
            User, User.id == Position.user_id
        ).order_by(Position.user_id, Position.id).all()


class TransactionRepository(BaseRepository[LedgerTransaction, Dict[str, Any], Dict[str, Any]]):
    """Repository for the trade journal"""

    def __init__(self, db: Session):
        """
        Initialize the repository

        Args:
            db: Database session
        """
        super().__init__(LedgerTransaction, db)

    def _user_query(self, user_id: int, transaction_type: Optional[str] = None):
        query = self.db.query(LedgerTransaction).filter(LedgerTransaction.user_id == user_id)
        if transaction_type:
            query = query.filter(LedgerTransaction.transaction_type == transaction_type)
        return query

    def get_user_transactions(
        self,
        user_id: int,
        transaction_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[LedgerTransaction]:
        """
        Get journal rows for a user, newest first

        Args:
            user_id: User ID
            transaction_type: Optional 'buy' or 'sell'
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List[LedgerTransaction]: Page of journal rows
        """
        return self._user_query(user_id, transaction_type).order_by(
            desc(LedgerTransaction.created_at), desc(LedgerTransaction.id)
        ).offset(skip).limit(limit).all()

    def count_user_transactions(self, user_id: int, transaction_type: Optional[str] = None) -> int:
        """Count journal rows for a user"""
        return self._user_query(user_id, transaction_type).count()
