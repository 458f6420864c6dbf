"""
Ticket catalog and stock ledger.

In-memory collaborators of the vending session: a fixed price list and a
counter of tickets left in the machine.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterator, Mapping, Optional

from core.exceptions import InvalidAmountError, InvalidPriceError, StockDepletedError
from core.value_objects import PRICE_UNAVAILABLE, parse_amount
from loggers import logger


# =============================================================================
# Price Catalog
# =============================================================================


class TicketCatalog:
    """
    Fixed price list of purchasable ticket types.

    Prices are validated once at construction and never change afterwards.
    """

    def __init__(self, prices: Mapping[str, Any]) -> None:
        """
        Initialize the catalog.

        Args:
            prices: Ticket type -> price (int, float, str or Decimal).

        Raises:
            InvalidPriceError: If a price is not a positive finite number.
        """
        self._prices: dict[str, Decimal] = {}
        for ticket_type, raw_price in prices.items():
            try:
                price = parse_amount(raw_price)
            except InvalidAmountError as e:
                raise InvalidPriceError(
                    f"Invalid price for {ticket_type}: {raw_price!r}",
                    ticket_type=ticket_type,
                ) from e
            if not price.is_finite() or price <= 0:
                raise InvalidPriceError(
                    f"Price must be positive for {ticket_type}: {raw_price!r}",
                    ticket_type=ticket_type,
                )
            self._prices[ticket_type] = price

    def lookup(self, ticket_type: Optional[str]) -> Decimal:
        """Get the price of a ticket type, or PRICE_UNAVAILABLE if unknown."""
        if ticket_type is None:
            return PRICE_UNAVAILABLE
        return self._prices.get(ticket_type, PRICE_UNAVAILABLE)

    @property
    def ticket_types(self) -> list[str]:
        return list(self._prices)

    def to_dict(self) -> dict[str, str]:
        return {name: f"{price:.2f}" for name, price in self._prices.items()}

    def __contains__(self, ticket_type: object) -> bool:
        return ticket_type in self._prices

    def __iter__(self) -> Iterator[str]:
        return iter(self._prices)

    def __len__(self) -> int:
        return len(self._prices)


# =============================================================================
# Stock Ledger
# =============================================================================


class TicketStock:
    """Count of tickets physically left in the machine."""

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("Stock cannot be negative")
        self._count = count

    def available(self) -> int:
        return self._count

    def decrement(self) -> int:
        """
        Take one ticket out of stock.

        Returns:
            Tickets left afterwards.

        Raises:
            StockDepletedError: If the stock is already empty.
        """
        if self._count <= 0:
            raise StockDepletedError("No tickets left in stock")
        self._count -= 1
        if self._count == 0:
            logger.warning("Ticket stock exhausted")
        return self._count

    def __repr__(self) -> str:
        return f"TicketStock(count={self._count})"
