"""
Investment schemas for CoinVest API

This module defines Pydantic models for asset, trade, portfolio and leaderboard interactions.
All money and quantity values are integers in their fixed-point scales.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from coinvest.models.asset import AssetType
from coinvest.models.transaction import TransactionType


class AssetTypeFilterEnum(str, Enum):
    """Asset category filter for listings"""
    STOCK_US = "stock_us"
    STOCK_INTL = "stock_intl"
    CRYPTO = "crypto"
    ALL = "all"


class SellTypeEnum(str, Enum):
    """How the amount to sell is expressed"""
    QUANTITY = "quantity"
    PERCENTAGE = "percentage"
    ALL = "all"


class TransactionTypeFilterEnum(str, Enum):
    """Trade side filter for history"""
    BUY = "buy"
    SELL = "sell"
    ALL = "all"


class LeaderboardMetricEnum(str, Enum):
    """Metrics the leaderboard can rank by"""
    TOTAL_PROFIT = "totalProfit"
    TOTAL_VALUE = "totalValue"
    PROFIT_PERCENT = "profitPercent"


class AssetBase(BaseModel):
    """Base schema for asset"""
    symbol: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    asset_type: AssetType
    exchange: Optional[str] = None
    currency: str = "USD"
    api_source: str
    api_symbol: str
    is_active: bool = True
    min_investment: int = Field(100, ge=1)
    description: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def symbol_upper(cls, v: str) -> str:
        return v.strip().upper()


class AssetCreate(AssetBase):
    """Schema for creating an asset"""
    pass


class AssetUpdate(BaseModel):
    """Schema for toggling an asset; everything else is immutable"""
    is_active: bool


class Asset(AssetBase):
    """Schema for asset from database"""
    id: int

    model_config = ConfigDict(from_attributes=True)


class PriceObservationCreate(BaseModel):
    """Schema for recording a price observation"""
    price: int = Field(..., gt=0, description="Price in hundredths of a nominal unit")
    observed_at: Optional[datetime] = None
    previous_close: Optional[int] = None
    change_24h: Optional[int] = None
    change_percent_24h: Optional[int] = None


class PriceObservation(BaseModel):
    """Schema for price observation from database"""
    id: int
    asset_id: int
    price: int
    previous_close: Optional[int] = None
    change_24h: Optional[int] = None
    change_percent_24h: Optional[int] = None
    observed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Position(BaseModel):
    """Schema for an open position"""
    id: int
    user_id: int
    asset_id: int
    quantity: int
    average_cost: int
    total_invested: int
    realized_gain: int
    first_purchase_at: Optional[datetime] = None
    last_transaction_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BuyRequest(BaseModel):
    """Schema for a buy request"""
    symbol: str = Field(..., min_length=1, max_length=50)
    amount_in_coins: int = Field(..., gt=0)


class SellRequest(BaseModel):
    """Schema for a sell request"""
    symbol: str = Field(..., min_length=1, max_length=50)
    sell_type: SellTypeEnum
    quantity: Optional[Decimal] = Field(None, gt=0, description="Whole or fractional units")
    percentage: Optional[int] = Field(None, ge=1, le=100)

    @model_validator(mode="after")
    def value_matches_sell_type(self) -> "SellRequest":
        if self.sell_type == SellTypeEnum.QUANTITY and self.quantity is None:
            raise ValueError("quantity is required when sell_type is 'quantity'")
        if self.sell_type == SellTypeEnum.PERCENTAGE and self.percentage is None:
            raise ValueError("percentage is required when sell_type is 'percentage'")
        return self


class TradeResult(BaseModel):
    """Outcome of a single buy or sell"""
    side: TransactionType
    symbol: str
    quantity: int
    price: int
    subtotal: int
    fee_amount: int
    total_amount: int
    cost_basis: Optional[int] = None
    profit_loss: Optional[int] = None
    position: Optional[Position] = None
    transaction_id: Optional[int] = None
    message: str = ""


class InvestmentSummary(BaseModel):
    """Aggregate figures over a user's open positions"""
    total_invested: int = 0
    current_value: int = 0
    realized_gains: int = 0
    unrealized_gains: int = 0
    total_profit: int = 0
    profit_percent: float = 0.0
    holdings_count: int = 0


class PortfolioHolding(BaseModel):
    """A single open position valued at the current price"""
    asset: Asset
    position: Position
    current_price: int
    current_value: int
    unrealized_gain: int
    unrealized_gain_percent: float
    price_observed_at: Optional[datetime] = None


class Portfolio(BaseModel):
    """All holdings of a user plus their summary"""
    holdings: List[PortfolioHolding]
    summary: InvestmentSummary


class Wealth(BaseModel):
    """Coin balance combined with investment value"""
    user_id: int
    coins: int
    investments: InvestmentSummary
    total_wealth: int


class LeaderboardEntry(BaseModel):
    """A ranked user"""
    rank: int
    user_id: int
    username: str
    metric_value: float
    total_profit: int
    current_value: int
    profit_percent: float
    total_invested: int
    holdings_count: int


class AssetListing(BaseModel):
    """An active asset with its latest price data"""
    asset: Asset
    current_price: Optional[int] = None
    change_24h: Optional[int] = None
    change_percent_24h: Optional[int] = None
    price_observed_at: Optional[datetime] = None


class AssetList(BaseModel):
    """A page of asset listings"""
    assets: List[AssetListing]
    total: int


class LedgerTransaction(BaseModel):
    """Schema for journal row from database"""
    id: int
    user_id: int
    asset_id: int
    transaction_type: TransactionType
    quantity: int
    price_per_unit: int
    subtotal: int
    fee_bps: int
    fee_amount: int
    total_amount: int
    cost_basis: Optional[int] = None
    realized_gain: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionHistoryItem(BaseModel):
    """A journal row with its asset"""
    transaction: LedgerTransaction
    asset: Asset


class TransactionHistory(BaseModel):
    """A page of journal rows"""
    transactions: List[TransactionHistoryItem]
    total: int
