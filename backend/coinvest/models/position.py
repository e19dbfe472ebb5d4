"""
Position model for CoinVest

One live row per (user, asset). Quantity is in thousandths of a unit,
average_cost in hundredths; total_invested and realized_gain are coins.
"""

import sqlalchemy as sa
from sqlalchemy.orm import relationship

from coinvest.db.base import Base, utcnow


class Position(Base):
    """Model for a user's open holding of one asset"""
    __tablename__ = "positions"

    id = sa.Column(sa.Integer, primary_key=True, index=True)
    user_id = sa.Column(sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    asset_id = sa.Column(sa.Integer, sa.ForeignKey("assets.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = sa.Column(sa.Integer, nullable=False)
    average_cost = sa.Column(sa.Integer, nullable=False)
    total_invested = sa.Column(sa.Integer, nullable=False, default=0)
    realized_gain = sa.Column(sa.Integer, nullable=False, default=0)
    first_purchase_at = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow)
    last_transaction_at = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        sa.UniqueConstraint("user_id", "asset_id", name="positions_user_asset_uq"),
        sa.CheckConstraint("quantity > 0", name="positions_quantity_positive"),
        sa.CheckConstraint("total_invested >= 0", name="positions_total_invested_non_negative"),
    )

    # Relationships
    user = relationship("User", back_populates="positions")
    asset = relationship("Asset", back_populates="positions")

    def __repr__(self):
        return f"<Position user={self.user_id} asset={self.asset_id} qty={self.quantity}>"
