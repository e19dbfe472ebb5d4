"""
Database initialisation for CoinVest

Importing the models here registers every table on Base.metadata.
"""

from coinvest.db.base import Base
from coinvest.models.user import User  # noqa: F401
from coinvest.models.asset import Asset  # noqa: F401
from coinvest.models.price import PriceObservation  # noqa: F401
from coinvest.models.position import Position  # noqa: F401
from coinvest.models.transaction import LedgerTransaction  # noqa: F401


def init_db(engine) -> None:
    """Create all ledger tables on the given engine"""
    Base.metadata.create_all(bind=engine)
