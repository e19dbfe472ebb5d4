"""
Price observation model for CoinVest

Prices are integers in hundredths of a nominal unit. Rows are append-only.
"""

import sqlalchemy as sa
from sqlalchemy.orm import relationship

from coinvest.db.base import Base, utcnow


class PriceObservation(Base):
    """Model for a single observed asset price"""
    __tablename__ = "price_observations"

    id = sa.Column(sa.Integer, primary_key=True, index=True)
    asset_id = sa.Column(sa.Integer, sa.ForeignKey("assets.id", ondelete="CASCADE"), nullable=False)
    price = sa.Column(sa.Integer, nullable=False)
    previous_close = sa.Column(sa.Integer)
    change_24h = sa.Column(sa.Integer)
    change_percent_24h = sa.Column(sa.Integer)  # basis points
    observed_at = sa.Column(sa.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        sa.CheckConstraint("price > 0", name="price_observations_price_positive"),
        sa.Index("price_observations_asset_observed_idx", "asset_id", "observed_at"),
    )

    # Relationships
    asset = relationship("Asset", back_populates="prices")

    def __repr__(self):
        return f"<PriceObservation {self.asset_id} = {self.price} @ {self.observed_at}>"
