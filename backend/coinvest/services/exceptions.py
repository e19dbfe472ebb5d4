"""
Ledger errors for CoinVest

Every error raised by the ledger services derives from LedgerError and carries
the HTTP status the API layer should answer with. None of them are retried
inside the services; a raised error always means nothing was written.
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for ledger errors"""
    code = "LEDGER_ERROR"
    status_code = 400
    default_message = "Ledger operation failed"

    def __init__(self, message: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.data = data or {}
        super().__init__(self.message)

    def to_detail(self) -> Dict[str, Any]:
        """Error body for API responses"""
        detail = {"code": self.code, "message": self.message}
        if self.data:
            detail["data"] = self.data
        return detail


class InvalidTradeRequest(LedgerError):
    code = "INVALID_INPUT"
    default_message = "Invalid input parameters"


class InvalidPrice(LedgerError):
    code = "INVALID_PRICE"
    default_message = "Price must be a positive integer"


class InvalidSellAmount(LedgerError):
    code = "INSUFFICIENT_HOLDINGS"
    default_message = "Invalid sell amount"


class BelowMinimum(LedgerError):
    code = "BELOW_MINIMUM"
    default_message = "Investment below minimum"


class InsufficientFunds(LedgerError):
    code = "INSUFFICIENT_FUNDS"
    default_message = "Insufficient coins"


class AssetInactive(LedgerError):
    code = "ASSET_INACTIVE"
    default_message = "Asset is currently not available for trading"


class UserNotFound(LedgerError):
    code = "USER_NOT_FOUND"
    status_code = 404
    default_message = "User not found"


class AssetNotFound(LedgerError):
    code = "ASSET_NOT_FOUND"
    status_code = 404
    default_message = "Asset not available for trading"


class NoPosition(LedgerError):
    code = "NO_HOLDINGS"
    status_code = 404
    default_message = "You don't own any of this asset"


class NoPriceData(LedgerError):
    code = "PRICE_NOT_AVAILABLE"
    status_code = 503
    default_message = "Price data not available for this asset"


class TradeConflict(LedgerError):
    code = "TRADE_CONFLICT"
    status_code = 409
    default_message = "Trade could not be committed, retry the request"
