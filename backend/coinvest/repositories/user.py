"""
User repository for CoinVest

This module provides the balance store the ledger trades against.
"""

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from coinvest.models.user import User
from coinvest.schemas.user import UserCreate
from coinvest.repositories.base import BaseRepository


class UserRepository(BaseRepository[User, UserCreate, UserCreate]):
    """Repository for user balance operations"""

    def __init__(self, db: Session):
        """
        Initialize the repository

        Args:
            db: Database session
        """
        super().__init__(User, db)

    def get_by_username(self, username: str) -> Optional[User]:
        """
        Get a user by username

        Args:
            username: User's username

        Returns:
            Optional[User]: User or None if not found
        """
        return self.db.query(User).filter(User.username == username).first()

    def exists(self, user_id: int) -> bool:
        """Check whether a user exists"""
        return self.db.query(User.id).filter(User.id == user_id).first() is not None

    def get_balance(self, user_id: int) -> Optional[int]:
        """
        Get a user's coin balance

        Args:
            user_id: User ID

        Returns:
            Optional[int]: Balance or None if the user does not exist
        """
        return self.db.query(User.coins_count).filter(User.id == user_id).scalar()

    def debit(self, user_id: int, amount: int, *, required: Optional[int] = None) -> bool:
        """
        Subtract coins in a single conditional UPDATE

        The row is only changed if the balance covers ``required`` (defaults to
        ``amount``), so the funds check and the write cannot be interleaved.

        Args:
            user_id: User ID
            amount: Coins to subtract
            required: Minimum balance the user must hold

        Returns:
            bool: False if the balance was insufficient
        """
        required = amount if required is None else required
        stmt = (
            sa.update(User)
            .where(User.id == user_id, User.coins_count >= required)
            .values(coins_count=User.coins_count - amount)
        )
        result = self.db.execute(stmt, execution_options={"synchronize_session": False})
        self._expire(user_id)
        return result.rowcount == 1

    def credit(self, user_id: int, amount: int) -> bool:
        """
        Add coins in a single UPDATE

        Args:
            user_id: User ID
            amount: Coins to add

        Returns:
            bool: False if the user does not exist
        """
        stmt = (
            sa.update(User)
            .where(User.id == user_id)
            .values(coins_count=User.coins_count + amount)
        )
        result = self.db.execute(stmt, execution_options={"synchronize_session": False})
        self._expire(user_id)
        return result.rowcount == 1

    def _expire(self, user_id: int) -> None:
        # Loaded instances must not keep serving the pre-update balance
        obj = self.db.identity_map.get(identity_key(User, user_id))
        if obj is not None:
            self.db.expire(obj, ["coins_count"])
