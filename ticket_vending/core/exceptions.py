"""
Custom exceptions for the ticket vending system.

Domain rejections (out of stock, wrong state, insufficient funds) are not
exceptions: the session reports them as effects. The classes below cover
input parsing, catalog construction, the stock ledger and the Redis mirror.
"""

from typing import Any, Optional


class VendingSystemError(Exception):
    """Base exception for all ticket vending errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            code: Optional error code for programmatic handling.
            details: Optional additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for command responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Input / Catalog Errors
# =============================================================================


class InvalidAmountError(VendingSystemError):
    """A payment amount that cannot be interpreted as money."""

    def __init__(self, message: str, value: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if value is not None:
            self.details["value"] = repr(value)


class InvalidPriceError(VendingSystemError):
    """A catalog price that is not a positive finite decimal."""

    def __init__(self, message: str, ticket_type: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if ticket_type:
            self.details["ticket_type"] = ticket_type


# =============================================================================
# Stock Errors
# =============================================================================


class StockDepletedError(VendingSystemError):
    """Attempt to take a ticket from an empty stock ledger."""

    pass


# =============================================================================
# Repository Errors
# =============================================================================


class RepositoryError(VendingSystemError):
    """Base exception for repository errors."""

    pass


class RedisConnectionError(RepositoryError):
    """Error connecting to Redis."""

    pass
