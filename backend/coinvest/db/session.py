"""
Database session manager for CoinVest

This module creates and manages SQLAlchemy database connections and sessions.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coinvest.core.config import settings


def build_engine(database_url: str, echo: bool = False):
    """
    Create a SQLAlchemy engine for the given URL

    SQLite URLs get a thread-shareable connection so the same in-memory
    database is visible to every session.

    Args:
        database_url: SQLAlchemy database URL
        echo: Whether to log SQL statements

    Returns:
        Engine: Configured engine
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(database_url, pool_pre_ping=True, echo=echo)


# Create SQLAlchemy engine
engine = build_engine(settings.database_url, echo=settings.debug)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
