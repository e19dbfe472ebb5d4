"""
Dependencies for API endpoints in CoinVest

This module provides common dependencies for API endpoints.
"""

import secrets
from typing import Generator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from coinvest.core.config import settings
from coinvest.db.session import SessionLocal
from coinvest.monitoring.logger import TradeAuditLogger
from coinvest.services.exceptions import LedgerError

# Admin token header for asset and price administration
admin_token_header = APIKeyHeader(name="X-Admin-Token", auto_error=False)

_audit_logger: Optional[TradeAuditLogger] = None


def get_db() -> Generator:
    """
    Get database session

    Yields:
        Generator: Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_admin_token(token: Optional[str] = Depends(admin_token_header)) -> None:
    """
    Check the admin token header

    Raises:
        HTTPException: If the header is missing or wrong
    """
    if token is None or not secrets.compare_digest(token, settings.admin_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing admin token"
        )


def get_audit_logger() -> TradeAuditLogger:
    """Get the shared trade audit logger"""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = TradeAuditLogger()
    return _audit_logger


def ledger_http_error(error: LedgerError) -> HTTPException:
    """
    Translate a ledger error into an HTTP error

    Args:
        error: Raised ledger error

    Returns:
        HTTPException: Error carrying the ledger status and a {code, message, data} body
    """
    return HTTPException(status_code=error.status_code, detail=error.to_detail())
