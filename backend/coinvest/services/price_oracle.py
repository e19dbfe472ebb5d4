"""
Price Oracle for CoinVest

Current price of an asset is its most recent observation. Observations are
only ever appended.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from coinvest.db.base import utcnow
from coinvest.models.price import PriceObservation
from coinvest.repositories.investment import AssetRepository, PriceObservationRepository
from coinvest.services.exceptions import AssetNotFound, InvalidPrice, NoPriceData

logger = logging.getLogger(__name__)


class PriceOracle:
    """Read and append asset price observations"""

    def __init__(self, db: Session):
        self.db = db
        self.assets = AssetRepository(db)
        self.prices = PriceObservationRepository(db)

    def latest(self, asset_id: int) -> Optional[PriceObservation]:
        """Latest observation for an asset, or None"""
        return self.prices.get_latest(asset_id)

    def latest_prices(self, asset_ids: Iterable[int]) -> Dict[int, PriceObservation]:
        """Latest observation per asset; unpriced assets are left out"""
        return self.prices.get_latest_for_assets(asset_ids)

    def current_price(self, asset_id: int) -> int:
        """
        Current price of an asset in hundredths

        Raises:
            NoPriceData: If the asset has never been observed
        """
        observation = self.latest(asset_id)
        if observation is None:
            logger.error(f"No price observation for asset {asset_id}")
            raise NoPriceData(data={"asset_id": asset_id})
        return observation.price

    def record(
        self,
        asset_id: int,
        price: int,
        observed_at: Optional[datetime] = None,
        *,
        previous_close: Optional[int] = None,
        change_24h: Optional[int] = None,
        change_percent_24h: Optional[int] = None,
        commit: bool = True
    ) -> PriceObservation:
        """
        Append a price observation

        Args:
            asset_id: Asset ID
            price: Price in hundredths, must be positive
            observed_at: Observation time, defaults to now
            previous_close: Optional previous close in hundredths
            change_24h: Optional 24h change in hundredths
            change_percent_24h: Optional 24h change in basis points
            commit: Commit the session after appending

        Returns:
            PriceObservation: The new observation
        """
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise InvalidPrice(data={"price": price})

        if self.assets.get(asset_id) is None:
            raise AssetNotFound(data={"asset_id": asset_id})

        observation = self.prices.create(obj_in={
            "asset_id": asset_id,
            "price": price,
            "observed_at": observed_at or utcnow(),
            "previous_close": previous_close,
            "change_24h": change_24h,
            "change_percent_24h": change_percent_24h,
        })

        if commit:
            self.db.commit()

        logger.debug(f"Recorded price {price} for asset {asset_id} at {observation.observed_at}")
        return observation
