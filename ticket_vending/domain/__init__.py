"""
Domain layer - Business logic and domain models.

Contains:
- Ticket catalog and stock ledger
- Vending state machine and session
"""

from .catalog import (
    TicketCatalog,
    TicketStock,
)
from .vending_state_machine import (
    TRANSITIONS,
    VendingSession,
    transition,
)


__all__ = [
    # Collaborators
    "TicketCatalog",
    "TicketStock",
    # Vending State
    "TRANSITIONS",
    "VendingSession",
    "transition",
]
