#!/usr/bin/env python3
"""
Database setup script for CoinVest

This script creates the PostgreSQL database if needed, creates the ledger
tables and seeds the asset registry from config.yaml.
"""

import argparse
import logging
import sys

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import make_url

from coinvest.core.config import settings, yaml_config
from coinvest.db.init_db import init_db
from coinvest.db.session import SessionLocal, engine
from coinvest.repositories.user import UserRepository
from coinvest.schemas.user import UserCreate
from coinvest.services.price_oracle import PriceOracle
from coinvest.services.registry import AssetRegistry

logger = logging.getLogger("setup_db")


def create_database():
    """Create the PostgreSQL database if it doesn't exist"""
    url = make_url(settings.database_url)
    if not url.drivername.startswith("postgresql"):
        logger.info(f"Skipping database creation for {url.drivername}")
        return

    # Connect to PostgreSQL server
    conn = psycopg2.connect(
        host=url.host,
        port=url.port or 5432,
        user=url.username,
        password=url.password,
        dbname="postgres"
    )
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    cursor = conn.cursor()

    try:
        cursor.execute("SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s", (url.database,))
        if cursor.fetchone():
            logger.info(f"Database '{url.database}' already exists")
        else:
            cursor.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(url.database)))
            logger.info(f"Database '{url.database}' created successfully")
    finally:
        cursor.close()
        conn.close()


def seed_assets(db):
    """Insert the assets listed in config.yaml"""
    records = yaml_config.get("assets", [])
    return AssetRegistry(db).seed(records)


def seed_demo(db, coins, price):
    """
    Create a demo user and give every asset without a price a starting price

    Args:
        db: Database session
        coins: Starting balance of the demo user
        price: Price in hundredths for unpriced assets
    """
    users = UserRepository(db)
    if users.get_by_username("demo") is None:
        users.create(obj_in=UserCreate(username="demo", coins_count=coins))
        db.commit()
        logger.info(f"Created user 'demo' with {coins} coins")

    registry = AssetRegistry(db)
    oracle = PriceOracle(db)
    listing = registry.list_assets(limit=100)
    for item in listing.assets:
        if item.current_price is None:
            oracle.record(item.asset.id, price, commit=False)
    db.commit()


def main():
    parser = argparse.ArgumentParser(description="Set up the CoinVest database")
    parser.add_argument("--skip-create", action="store_true", help="Do not create the PostgreSQL database")
    parser.add_argument("--demo", action="store_true", help="Add a demo user and starting prices")
    parser.add_argument("--demo-coins", type=int, default=10000, help="Starting balance of the demo user")
    parser.add_argument("--demo-price", type=int, default=10000, help="Starting price in hundredths")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    try:
        if not args.skip_create:
            create_database()
    except psycopg2.Error as e:
        logger.error(f"Error creating database: {e}")
        sys.exit(1)

    init_db(engine)
    logger.info("Database tables created successfully")

    db = SessionLocal()
    try:
        created = seed_assets(db)
        logger.info(f"Seeded {created} new assets")
        if args.demo:
            seed_demo(db, args.demo_coins, args.demo_price)
    finally:
        db.close()

    logger.info("Database setup complete!")


if __name__ == "__main__":
    main()
