"""
Test data helpers for the ledger tests

Each helper commits so the services under test see the rows.
"""

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from coinvest.db.init_db import init_db
from coinvest.db.session import build_engine
from coinvest.models.asset import Asset, AssetType
from coinvest.models.position import Position
from coinvest.models.price import PriceObservation
from coinvest.models.user import User
from coinvest.services.price_oracle import PriceOracle


def make_session() -> Tuple[Engine, Session]:
    """Create a fresh in-memory database and a session on it"""
    engine = build_engine("sqlite://")
    init_db(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    return engine, session


def create_user(db: Session, username: str = "investor", coins: int = 10000) -> User:
    user = User(username=username, coins_count=coins)
    db.add(user)
    db.commit()
    return user


def create_asset(
    db: Session,
    symbol: str = "TEST",
    asset_type: AssetType = AssetType.STOCK_US,
    is_active: bool = True,
    min_investment: int = 100
) -> Asset:
    asset = Asset(
        symbol=symbol,
        name=f"{symbol} Corp",
        asset_type=asset_type,
        exchange="NASDAQ",
        api_source="twelvedata",
        api_symbol=symbol,
        is_active=is_active,
        min_investment=min_investment,
    )
    db.add(asset)
    db.commit()
    return asset


def set_price(db: Session, asset: Asset, price: int, observed_at: Optional[datetime] = None) -> PriceObservation:
    return PriceOracle(db).record(asset.id, price, observed_at)


def create_position(
    db: Session,
    user: User,
    asset: Asset,
    quantity: int,
    average_cost: int,
    total_invested: int,
    realized_gain: int = 0
) -> Position:
    position = Position(
        user_id=user.id,
        asset_id=asset.id,
        quantity=quantity,
        average_cost=average_cost,
        total_invested=total_invested,
        realized_gain=realized_gain,
    )
    db.add(position)
    db.commit()
    return position


def balance_of(db: Session, user: User) -> int:
    db.refresh(user)
    return user.coins_count
