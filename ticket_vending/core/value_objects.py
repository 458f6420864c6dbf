"""
Value Objects for the ticket vending system.

Immutable objects that represent values in the domain: machine states,
events fed into the state machine, and the effects it reports back.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from core.exceptions import InvalidAmountError


# =============================================================================
# Enums
# =============================================================================


class VendingState(str, Enum):
    """States of the vending session."""

    IDLE = "idle"
    AWAITING_PAYMENT = "awaiting_payment"
    PAYMENT_COMPLETE = "payment_complete"
    DISPENSED = "dispensed"
    CANCELED = "canceled"


class EventKind(str, Enum):
    """External actions accepted by the vending session."""

    SELECT = "select"
    PAY = "pay"
    CANCEL = "cancel"
    DISPENSE = "dispense"


class EffectReason(str, Enum):
    """Why an event was rejected or flagged."""

    OUT_OF_STOCK = "out_of_stock"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_TICKET_TYPE = "unknown_ticket_type"
    INVALID_AMOUNT = "invalid_amount"


# =============================================================================
# Money helpers
# =============================================================================


# Price of a ticket type missing from the catalog; no finite sum reaches it
PRICE_UNAVAILABLE = Decimal("Infinity")

ZERO = Decimal("0")

# Largest single payment the machine accepts
MAX_PAYMENT = Decimal("1000000")


def parse_amount(value: Any) -> Decimal:
    """
    Convert an incoming amount to Decimal.

    Floats go through str() so that 0.1 stays 0.1.

    Args:
        value: int, float, str or Decimal.

    Returns:
        The amount as Decimal.

    Raises:
        InvalidAmountError: If the value is not a number.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}", value=value)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(f"Invalid amount: {value!r}", value=value) from e


def format_amount(amount: Optional[Decimal]) -> Optional[str]:
    """Render an amount for responses; infinite prices become None."""
    if amount is None or not amount.is_finite():
        return None
    return f"{amount:.2f}"


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class VendingEvent:
    """
    A single action fed into the state machine.

    Attributes:
        kind: Which action this is.
        ticket_type: Selected ticket type (SELECT only).
        amount: Inserted amount (PAY only).
    """

    kind: EventKind
    ticket_type: Optional[str] = None
    amount: Optional[Decimal] = None

    @classmethod
    def select(cls, ticket_type: str) -> VendingEvent:
        return cls(kind=EventKind.SELECT, ticket_type=ticket_type)

    @classmethod
    def pay(cls, amount: Any) -> VendingEvent:
        return cls(kind=EventKind.PAY, amount=parse_amount(amount))

    @classmethod
    def cancel(cls) -> VendingEvent:
        return cls(kind=EventKind.CANCEL)

    @classmethod
    def dispense(cls) -> VendingEvent:
        return cls(kind=EventKind.DISPENSE)


# =============================================================================
# Session data and effects
# =============================================================================


@dataclass(frozen=True)
class SessionData:
    """
    Immutable snapshot of the mutable part of a vending session.

    Attributes:
        state: Current state.
        selected_ticket: Ticket type of the running transaction.
        accumulated_amount: Money inserted during the running transaction.
    """

    state: VendingState = VendingState.IDLE
    selected_ticket: Optional[str] = None
    accumulated_amount: Decimal = ZERO

    def with_state(self, state: VendingState) -> SessionData:
        return SessionData(state, self.selected_ticket, self.accumulated_amount)

    def reset(self, state: VendingState) -> SessionData:
        """Clear selection and amount together and move to ``state``."""
        return SessionData(state=state)


@dataclass(frozen=True)
class VendingEffect:
    """
    Observable outcome of one event.

    Attributes:
        event: The action that produced this effect.
        accepted: False when the event was not applicable or invalid.
        notice: Human-readable display text.
        state_before: State when the event arrived.
        state_after: State after the event.
        refund_amount: Change returned to the customer, if strictly positive.
        dispensed_ticket: Ticket type handed out, if any.
        stock_change: -1 when a ticket left the machine, else 0.
        reason: Rejection or advisory reason.
    """

    event: EventKind
    accepted: bool
    notice: str
    state_before: VendingState
    state_after: VendingState
    refund_amount: Optional[Decimal] = None
    dispensed_ticket: Optional[str] = None
    stock_change: int = 0
    reason: Optional[EffectReason] = None

    @property
    def state_changed(self) -> bool:
        return self.state_before != self.state_after

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for command responses."""
        result: dict[str, Any] = {
            "event": self.event.value,
            "accepted": self.accepted,
            "notice": self.notice,
            "state_before": self.state_before.value,
            "state_after": self.state_after.value,
            "refund_amount": format_amount(self.refund_amount),
        }
        if self.dispensed_ticket:
            result["dispensed_ticket"] = self.dispensed_ticket
        if self.stock_change:
            result["stock_change"] = self.stock_change
        if self.reason:
            result["reason"] = self.reason.value
        return result


@dataclass(frozen=True)
class SessionSnapshot:
    """Session data plus stock, as exposed to status queries."""

    state: VendingState
    selected_ticket: Optional[str]
    accumulated_amount: Decimal
    price: Optional[Decimal]
    stock: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "selected_ticket": self.selected_ticket,
            "accumulated_amount": format_amount(self.accumulated_amount),
            "price": format_amount(self.price),
            "stock": self.stock,
        }
