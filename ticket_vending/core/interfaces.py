"""
Interfaces (Protocols) for the ticket vending system.

Defines contracts for the collaborators of the vending session and for
state repositories, using Python's Protocol for structural subtyping.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Protocol, runtime_checkable


# =============================================================================
# Collaborator Interfaces
# =============================================================================


@runtime_checkable
class PriceCatalog(Protocol):
    """Read-only mapping from ticket type to unit price."""

    def lookup(self, ticket_type: Optional[str]) -> Decimal:
        """
        Get the unit price of a ticket type.

        Args:
            ticket_type: Ticket type name.

        Returns:
            The price, or PRICE_UNAVAILABLE for unknown types.
        """
        ...

    def __contains__(self, ticket_type: object) -> bool:
        ...


@runtime_checkable
class StockLedger(Protocol):
    """Counter of physically dispensable tickets."""

    def available(self) -> int:
        """Get number of tickets left."""
        ...

    def decrement(self) -> int:
        """
        Take one ticket out of stock.

        Returns:
            Tickets left afterwards.
        """
        ...


# =============================================================================
# Repository Interfaces
# =============================================================================


@runtime_checkable
class StateRepository(Protocol):
    """Protocol for state persistence repositories."""

    async def get(self, key: str) -> Optional[str]:
        """Get a value by key."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Set a key-value pair."""
        ...

    async def get_hash(self, key: str) -> dict[str, str]:
        """Get all fields of a hash."""
        ...

    async def set_hash(self, key: str, mapping: dict[str, Any]) -> None:
        """Replace all fields of a hash."""
        ...
