"""
CoinVest - Virtual Asset Trading Ledger
FastAPI Backend Application
"""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coinvest import __version__
from coinvest.api.api import api_router
from coinvest.core.config import settings
from coinvest.db.init_db import init_db
from coinvest.db.session import engine
from coinvest.monitoring.logger import LoggerFactory

# Set up logging
LoggerFactory.get_instance()
logger = logging.getLogger(__name__)

# Create all database tables
init_db(engine)

app = FastAPI(
    title="CoinVest API",
    description="Virtual asset trading with the in-game coin balance",
    version=__version__
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_router, prefix=settings.api_prefix)


@app.get(f"{settings.api_prefix}/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": __version__}


if __name__ == "__main__":
    # Run the application
    uvicorn.run(
        "coinvest.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
