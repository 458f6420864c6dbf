"""
Core module - Foundation layer with no external dependencies.

Contains:
- Exceptions
- Interfaces (Protocols)
- Value Objects
"""

from .exceptions import (
    VendingSystemError,
    InvalidAmountError,
    InvalidPriceError,
    StockDepletedError,
    RepositoryError,
    RedisConnectionError,
)
from .interfaces import (
    PriceCatalog,
    StockLedger,
    StateRepository,
)
from .value_objects import (
    VendingState,
    EventKind,
    EffectReason,
    VendingEvent,
    VendingEffect,
    SessionData,
    SessionSnapshot,
    MAX_PAYMENT,
    PRICE_UNAVAILABLE,
    parse_amount,
)


__all__ = [
    # Exceptions
    "VendingSystemError",
    "InvalidAmountError",
    "InvalidPriceError",
    "StockDepletedError",
    "RepositoryError",
    "RedisConnectionError",
    # Interfaces
    "PriceCatalog",
    "StockLedger",
    "StateRepository",
    # Value Objects
    "VendingState",
    "EventKind",
    "EffectReason",
    "VendingEvent",
    "VendingEffect",
    "SessionData",
    "SessionSnapshot",
    "MAX_PAYMENT",
    "PRICE_UNAVAILABLE",
    "parse_amount",
]
