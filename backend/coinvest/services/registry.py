"""
Asset Registry for CoinVest

Resolves symbols to tradable assets and serves the reference data listings.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from coinvest.core.config import settings
from coinvest.models.asset import Asset, AssetType
from coinvest.repositories.investment import AssetRepository, PriceObservationRepository
from coinvest.schemas.investment import AssetCreate, AssetList, AssetListing
from coinvest.services.exceptions import AssetInactive, AssetNotFound, InvalidTradeRequest

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class AssetRegistry:
    """Lookup and administration of tradable assets"""

    def __init__(self, db: Session):
        self.db = db
        self.assets = AssetRepository(db)
        self.prices = PriceObservationRepository(db)

    def get(self, symbol: str) -> Asset:
        """
        Resolve a symbol to an asset

        Raises:
            AssetNotFound: If no asset has the symbol
        """
        asset = self.assets.get_by_symbol(symbol)
        if asset is None:
            raise AssetNotFound(data={"symbol": symbol.upper()})
        return asset

    def get_tradable(self, symbol: str) -> Asset:
        """
        Resolve a symbol to an asset that can currently be bought

        Raises:
            AssetNotFound: If no asset has the symbol
            AssetInactive: If the asset is switched off
        """
        asset = self.get(symbol)
        if not asset.is_active:
            raise AssetInactive(data={"symbol": asset.symbol})
        return asset

    def list_assets(self, asset_type: Optional[str] = None, limit: int = 50, offset: int = 0) -> AssetList:
        """
        List active assets with their latest prices

        Args:
            asset_type: Asset type, or None / 'all' for every type
            limit: Page size, 1 to 100
            offset: Number of assets to skip

        Returns:
            AssetList: Page of listings plus the total count
        """
        if not 1 <= limit <= MAX_PAGE_SIZE or offset < 0:
            raise InvalidTradeRequest(data={"limit": limit, "offset": offset})

        if asset_type in (None, "all"):
            type_filter = None
        else:
            try:
                type_filter = AssetType(asset_type)
            except ValueError:
                raise InvalidTradeRequest(data={"asset_type": str(asset_type)})

        assets = self.assets.get_active(type_filter, skip=offset, limit=limit)
        latest = self.prices.get_latest_for_assets(a.id for a in assets)

        listings = []
        for asset in assets:
            observation = latest.get(asset.id)
            listings.append(AssetListing(
                asset=asset,
                current_price=observation.price if observation else None,
                change_24h=observation.change_24h if observation else None,
                change_percent_24h=observation.change_percent_24h if observation else None,
                price_observed_at=observation.observed_at if observation else None,
            ))

        return AssetList(assets=listings, total=self.assets.count_active(type_filter))

    def create(self, asset_in: AssetCreate) -> Asset:
        """Register a new asset and commit"""
        if self.assets.get_by_symbol(asset_in.symbol) is not None:
            raise InvalidTradeRequest(f"Asset {asset_in.symbol} already exists")

        asset = self.assets.create(obj_in=asset_in.model_dump())
        self.db.commit()
        logger.info(f"Registered asset {asset.symbol} ({asset.asset_type.value})")
        return asset

    def set_active(self, symbol: str, is_active: bool) -> Asset:
        """Toggle whether an asset can be bought and commit"""
        asset = self.get(symbol)
        self.assets.update(db_obj=asset, obj_in={"is_active": is_active})
        self.db.commit()
        logger.info(f"Asset {asset.symbol} is_active={is_active}")
        return asset

    def seed(self, records: Iterable[Dict[str, Any]]) -> int:
        """
        Insert assets that are not registered yet

        Args:
            records: Asset definitions as accepted by AssetCreate; a missing
                min_investment takes the configured default

        Returns:
            int: Number of assets created
        """
        created = 0
        for record in records:
            asset_in = AssetCreate(**{"min_investment": settings.default_min_investment, **record})
            if self.assets.get_by_symbol(asset_in.symbol) is not None:
                continue
            self.assets.create(obj_in=asset_in.model_dump())
            created += 1

        self.db.commit()
        logger.info(f"Seeded {created} assets")
        return created
