"""
User model for CoinVest

Account records are owned by the wider economy service; the ledger only needs
the coin balance and the existence check, so this table carries just those.
"""

import sqlalchemy as sa
from sqlalchemy.orm import relationship

from coinvest.db.base import Base


class User(Base):
    """User account holding the coin balance"""
    __tablename__ = "users"

    id = sa.Column(sa.Integer, primary_key=True, index=True)
    username = sa.Column(sa.String(50), unique=True, index=True, nullable=False)
    coins_count = sa.Column(sa.Integer, nullable=False, default=0)
    is_active = sa.Column(sa.Boolean, default=True)

    __table_args__ = (
        sa.CheckConstraint("coins_count >= 0", name="users_coins_non_negative"),
    )

    # Relationships
    positions = relationship("Position", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.username}>"
