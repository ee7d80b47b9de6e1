"""
Error taxonomy for the trading journal.

Not-found errors are distinct from validation errors so that callers can
report "missing" and "rejected" differently. Anything raised inside a unit
of work aborts the whole unit.
"""

from decimal import Decimal
from typing import Any, Optional


class TradingJournalError(Exception):
    """Base exception for all trading journal failures"""
    pass


# ==================== Not Found ====================

class NotFoundError(TradingJournalError):
    """Raised when a requested entity does not exist"""

    entity = "Entity"

    def __init__(self, identifier: Any = None, message: Optional[str] = None):
        self.identifier = identifier
        if message is None:
            message = f"{self.entity} not found with id: {identifier}"
        super().__init__(message)


class TransactionNotFoundError(NotFoundError):
    entity = "Transaction"


class AccountNotFoundError(NotFoundError):
    entity = "Account"


class StockNotFoundError(NotFoundError):
    entity = "Stock"


class PortfolioNotFoundError(NotFoundError):
    entity = "Portfolio"


class DividendNotFoundError(NotFoundError):
    entity = "Dividend"


class AlertNotFoundError(NotFoundError):
    entity = "Price alert"


# ==================== Validation ====================

class ValidationError(TradingJournalError):
    """Raised when a request is rejected on business rules"""
    pass


class InvalidTransactionError(ValidationError):
    """Raised for transactions that can never be valid (bad type, bad amounts)"""
    pass


class InsufficientLotsError(ValidationError):
    """Raised when a SELL asks for more shares than the open BUY lots hold"""

    def __init__(self, stock_id: int, scope: Any, requested: Decimal, available: Decimal):
        self.stock_id = stock_id
        self.scope = scope
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient lots to sell {requested} of stock {stock_id} ({scope}). "
            f"Available: {available}"
        )


# ==================== State ====================

class InvalidStateError(TradingJournalError):
    """Raised when an operation is not allowed in the entity's current state"""
    pass


# ==================== External ====================

class ExternalLookupError(TradingJournalError):
    """Raised when market data enrichment fails; callers recover locally"""
    pass
