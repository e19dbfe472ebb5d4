"""
Asset model for CoinVest

This module defines the Asset model for the reference data of tradable assets.
"""

import enum

import sqlalchemy as sa
from sqlalchemy.orm import relationship

from coinvest.db.base import Base


class AssetType(str, enum.Enum):
    """Asset categories"""
    STOCK_US = "stock_us"
    STOCK_INTL = "stock_intl"
    CRYPTO = "crypto"


class Asset(Base):
    """Model for tradable virtual assets"""
    __tablename__ = "assets"

    id = sa.Column(sa.Integer, primary_key=True, index=True)
    symbol = sa.Column(sa.String(50), unique=True, index=True, nullable=False)
    name = sa.Column(sa.String(255), nullable=False)
    asset_type = sa.Column(sa.Enum(AssetType, name="asset_type", values_callable=lambda e: [m.value for m in e]),
                           nullable=False)
    exchange = sa.Column(sa.String(100))
    currency = sa.Column(sa.String(10), nullable=False, default="USD")
    api_source = sa.Column(sa.String(50), nullable=False)  # external price feed name
    api_symbol = sa.Column(sa.String(100), nullable=False)  # identifier within that feed
    is_active = sa.Column(sa.Boolean, nullable=False, default=True)
    min_investment = sa.Column(sa.Integer, nullable=False, default=100)
    description = sa.Column(sa.Text)

    __table_args__ = (
        sa.Index("assets_type_active_idx", "asset_type", "is_active"),
    )

    # Relationships
    prices = relationship("PriceObservation", back_populates="asset", cascade="all, delete-orphan")
    positions = relationship("Position", back_populates="asset")

    def __repr__(self):
        return f"<Asset {self.symbol} ({self.asset_type})>"
