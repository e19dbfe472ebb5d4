"""
Asset API endpoints for CoinVest

This module provides the asset listing and the admin endpoints that register
assets, toggle them and record prices.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from coinvest.api.deps import get_db, ledger_http_error, require_admin_token
from coinvest.schemas.investment import (
    Asset,
    AssetCreate,
    AssetList,
    AssetTypeFilterEnum,
    AssetUpdate,
    PriceObservation,
    PriceObservationCreate,
)
from coinvest.services.exceptions import LedgerError
from coinvest.services.price_oracle import PriceOracle
from coinvest.services.registry import AssetRegistry

router = APIRouter()


@router.get("", response_model=AssetList)
def list_assets(
    db: Session = Depends(get_db),
    asset_type: AssetTypeFilterEnum = AssetTypeFilterEnum.ALL,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0)
) -> Any:
    """
    List active assets with their latest prices.
    """
    try:
        return AssetRegistry(db).list_assets(asset_type.value, limit=limit, offset=offset)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.post("", response_model=Asset, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_admin_token)])
def create_asset(*, db: Session = Depends(get_db), asset_in: AssetCreate) -> Any:
    """
    Register a new asset.
    """
    try:
        return AssetRegistry(db).create(asset_in)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.patch("/{symbol}", response_model=Asset, dependencies=[Depends(require_admin_token)])
def update_asset(*, symbol: str, db: Session = Depends(get_db), asset_in: AssetUpdate) -> Any:
    """
    Enable or disable trading of an asset.
    """
    try:
        return AssetRegistry(db).set_active(symbol, asset_in.is_active)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.post("/{symbol}/prices", response_model=PriceObservation, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_admin_token)])
def record_price(*, symbol: str, db: Session = Depends(get_db), price_in: PriceObservationCreate) -> Any:
    """
    Record a price observation for an asset.
    """
    try:
        asset = AssetRegistry(db).get(symbol)
        return PriceOracle(db).record(
            asset.id,
            price_in.price,
            price_in.observed_at,
            previous_close=price_in.previous_close,
            change_24h=price_in.change_24h,
            change_percent_24h=price_in.change_percent_24h,
        )
    except LedgerError as e:
        raise ledger_http_error(e)
