"""
Database base model for CoinVest

This module provides the base SQLAlchemy model with common columns and helpers
that every ledger table inherits from.
"""

from datetime import datetime, timezone
from typing import Any, Dict
import sqlalchemy as sa
from sqlalchemy.orm import as_declarative, declared_attr


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


@as_declarative()
class Base:
    """Base class for all database models"""
    id: Any
    __name__: str

    # Generate tablename automatically based on class name
    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()

    # Common columns for all models
    created_at = sa.Column(sa.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = sa.Column(sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model instance to dictionary"""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}
