"""
Main API router for CoinVest

This module combines all API endpoint routers.
"""

from fastapi import APIRouter

from coinvest.api.endpoints import assets, investments, leaderboard

# Create main API router
api_router = APIRouter()

# Include endpoint routers
api_router.include_router(investments.router, prefix="/users/{user_id}/investments", tags=["Investments"])
api_router.include_router(leaderboard.router, prefix="/investments", tags=["Leaderboard"])
api_router.include_router(assets.router, prefix="/investments/assets", tags=["Assets"])
