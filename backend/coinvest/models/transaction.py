"""
Ledger transaction model for CoinVest

This module defines the journal of executed buys and sells.
"""

import enum

import sqlalchemy as sa
from sqlalchemy.orm import relationship

from coinvest.db.base import Base


class TransactionType(str, enum.Enum):
    """Trade sides"""
    BUY = "buy"
    SELL = "sell"


class LedgerTransaction(Base):
    """Model for an executed trade"""
    __tablename__ = "investment_transactions"

    id = sa.Column(sa.Integer, primary_key=True, index=True)
    user_id = sa.Column(sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    asset_id = sa.Column(sa.Integer, sa.ForeignKey("assets.id", ondelete="RESTRICT"), nullable=False, index=True)
    transaction_type = sa.Column(
        sa.Enum(TransactionType, name="transaction_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    quantity = sa.Column(sa.Integer, nullable=False)
    price_per_unit = sa.Column(sa.Integer, nullable=False)
    subtotal = sa.Column(sa.Integer, nullable=False)
    fee_bps = sa.Column(sa.Integer, nullable=False)
    fee_amount = sa.Column(sa.Integer, nullable=False)
    total_amount = sa.Column(sa.Integer, nullable=False)
    cost_basis = sa.Column(sa.Integer)  # sells only
    realized_gain = sa.Column(sa.Integer)  # sells only
    notes = sa.Column(sa.Text)

    __table_args__ = (
        sa.Index("investment_transactions_user_created_idx", "user_id", "created_at"),
    )

    # Relationships
    asset = relationship("Asset")

    def __repr__(self):
        return (f"<LedgerTransaction {self.id}: {self.transaction_type} "
                f"{self.quantity} {self.asset_id} @ {self.price_per_unit}>")
