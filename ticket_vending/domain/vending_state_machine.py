"""
Vending State Machine - Manages the ticket purchase lifecycle.

One session serves the machine for its whole life. A transaction starts when
a ticket is selected and ends back in IDLE, either through DISPENSED or
through CANCELED.

State Diagram:

    ┌──────┐  select   ┌──────────────────┐  pay (total >= price)  ┌──────────────────┐
    │ IDLE │ ────────► │ AWAITING_PAYMENT │ ─────────────────────► │ PAYMENT_COMPLETE │
    └──────┘           └──────────────────┘                        └──────────────────┘
       ▲                  │           ▲                               │           │
       │               cancel       select                         cancel     dispense
       │                  ▼           │                               │           ▼
       │               ┌──────────────────┐                           │     ┌───────────┐
       │               │     CANCELED     │ ◄─────────────────────────┘     │ DISPENSED │
       │               └──────────────────┘                                 └───────────┘
       │                                                                          │
       └───────────────────────── dispense (acknowledge) ─────────────────────────┘

Every (state, event) pair has exactly one row in TRANSITIONS. Events that do
not apply to the current state are rejected with a notice; nothing is raised.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Optional

from core.interfaces import PriceCatalog, StockLedger
from core.value_objects import (
    MAX_PAYMENT,
    PRICE_UNAVAILABLE,
    ZERO,
    EffectReason,
    EventKind,
    SessionData,
    SessionSnapshot,
    VendingEffect,
    VendingEvent,
    VendingState,
)
from loggers import logger


TransitionResult = tuple[SessionData, VendingEffect]
TransitionHandler = Callable[[SessionData, VendingEvent, PriceCatalog, int], TransitionResult]


# =============================================================================
# Helpers
# =============================================================================


def _money(amount: Decimal) -> str:
    return f"{amount:.2f}"


def _change_due(data: SessionData, catalog: PriceCatalog) -> Optional[Decimal]:
    """Overpayment for the selected ticket, or None when not strictly positive."""
    change = data.accumulated_amount - catalog.lookup(data.selected_ticket)
    return change if change > 0 else None


def _is_valid_payment(amount: Optional[Decimal]) -> bool:
    return amount is not None and amount.is_finite() and ZERO < amount <= MAX_PAYMENT


def _reject(
    data: SessionData,
    event: VendingEvent,
    notice: str,
    reason: EffectReason = EffectReason.INVALID_STATE_TRANSITION,
) -> TransitionResult:
    effect = VendingEffect(
        event=event.kind,
        accepted=False,
        notice=notice,
        state_before=data.state,
        state_after=data.state,
        reason=reason,
    )
    return data, effect


def _accept(
    before: SessionData,
    after: SessionData,
    event: VendingEvent,
    notice: str,
    **extra: Any,
) -> TransitionResult:
    effect = VendingEffect(
        event=event.kind,
        accepted=True,
        notice=notice,
        state_before=before.state,
        state_after=after.state,
        **extra,
    )
    return after, effect


def _reject_missing_ticket(data: SessionData, event: VendingEvent) -> TransitionResult:
    return _reject(data, event, "Please choose a ticket type.", EffectReason.UNKNOWN_TICKET_TYPE)


def _selection_reason(ticket_type: str, catalog: PriceCatalog) -> Optional[EffectReason]:
    if ticket_type in catalog:
        return None
    return EffectReason.UNKNOWN_TICKET_TYPE


def _selection_notice(prefix: str, ticket_type: str, catalog: PriceCatalog) -> str:
    if ticket_type in catalog:
        return f"{prefix}: {ticket_type} ({_money(catalog.lookup(ticket_type))})"
    return f"{prefix}: {ticket_type} (not available for purchase)"


# =============================================================================
# IDLE
# =============================================================================


def _idle_select(data, event, catalog, stock) -> TransitionResult:
    if event.ticket_type is None:
        return _reject_missing_ticket(data, event)
    if stock <= 0:
        return _reject(data, event, "Machine: No tickets in stock.", EffectReason.OUT_OF_STOCK)
    after = SessionData(VendingState.AWAITING_PAYMENT, event.ticket_type, ZERO)
    return _accept(
        data,
        after,
        event,
        _selection_notice("Ticket selected", event.ticket_type, catalog),
        reason=_selection_reason(event.ticket_type, catalog),
    )


def _idle_pay(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Please select ticket first.")


def _idle_cancel(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Nothing to cancel.")


def _idle_dispense(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Select and pay first.")


# =============================================================================
# AWAITING_PAYMENT
# =============================================================================


def _awaiting_select(data, event, catalog, stock) -> TransitionResult:
    if event.ticket_type is None:
        return _reject_missing_ticket(data, event)
    # Inserted money carries over to the new selection
    after = SessionData(data.state, event.ticket_type, data.accumulated_amount)
    return _accept(
        data,
        after,
        event,
        _selection_notice("Changing selection to", event.ticket_type, catalog),
        reason=_selection_reason(event.ticket_type, catalog),
    )


def _awaiting_pay(data, event, catalog, stock) -> TransitionResult:
    if not _is_valid_payment(event.amount):
        return _reject(data, event, f"Invalid amount: {event.amount}", EffectReason.INVALID_AMOUNT)

    total = data.accumulated_amount + event.amount
    price = catalog.lookup(data.selected_ticket)
    notice = f"Inserted {_money(event.amount)}, total inserted: {_money(total)}"

    if total >= price:
        after = SessionData(VendingState.PAYMENT_COMPLETE, data.selected_ticket, total)
        return _accept(data, after, event, f"{notice}. Payment complete.")

    after = SessionData(data.state, data.selected_ticket, total)
    if price == PRICE_UNAVAILABLE:
        return _accept(data, after, event, notice, reason=EffectReason.UNKNOWN_TICKET_TYPE)
    return _accept(data, after, event, f"{notice}, remaining: {_money(price - total)}")


def _awaiting_cancel(data, event, catalog, stock) -> TransitionResult:
    refund = _change_due(data, catalog)
    return _accept(
        data,
        data.reset(VendingState.CANCELED),
        event,
        "Transaction canceled by user (while waiting for money).",
        refund_amount=refund,
    )


def _awaiting_dispense(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Not enough money yet.", EffectReason.INSUFFICIENT_FUNDS)


# =============================================================================
# PAYMENT_COMPLETE
# =============================================================================


def _complete_select(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Can't change selection after full payment (refund then select).")


def _complete_pay(data, event, catalog, stock) -> TransitionResult:
    if not _is_valid_payment(event.amount):
        return _reject(data, event, f"Invalid amount: {event.amount}", EffectReason.INVALID_AMOUNT)

    total = data.accumulated_amount + event.amount
    after = SessionData(data.state, data.selected_ticket, total)
    return _accept(
        data,
        after,
        event,
        f"Additional inserted {_money(event.amount)}, total: {_money(total)}",
    )


def _complete_cancel(data, event, catalog, stock) -> TransitionResult:
    refund = _change_due(data, catalog)
    return _accept(
        data,
        data.reset(VendingState.CANCELED),
        event,
        "Transaction canceled after receiving money. Returning funds.",
        refund_amount=refund,
    )


def _complete_dispense(data, event, catalog, stock) -> TransitionResult:
    if stock <= 0:
        return _reject(data, event, "Cannot dispense: no tickets left.", EffectReason.OUT_OF_STOCK)

    refund = _change_due(data, catalog)
    notice = f"Dispensing ticket: {data.selected_ticket}"
    if refund is not None:
        notice = f"{notice}. Returning change: {_money(refund)}"
    return _accept(
        data,
        data.with_state(VendingState.DISPENSED),
        event,
        notice,
        refund_amount=refund,
        dispensed_ticket=data.selected_ticket,
        stock_change=-1,
    )


# =============================================================================
# DISPENSED
# =============================================================================


def _dispensed_busy(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Please wait. Transaction finishing.")


def _dispensed_cancel(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Cannot cancel: ticket already dispensed.")


def _dispensed_acknowledge(data, event, catalog, stock) -> TransitionResult:
    return _accept(data, data.reset(VendingState.IDLE), event, "Transaction complete. Thank you!")


# =============================================================================
# CANCELED
# =============================================================================


def _canceled_select(data, event, catalog, stock) -> TransitionResult:
    if event.ticket_type is None:
        return _reject_missing_ticket(data, event)
    after = SessionData(VendingState.AWAITING_PAYMENT, event.ticket_type, ZERO)
    return _accept(
        data,
        after,
        event,
        _selection_notice("Ticket selected", event.ticket_type, catalog),
        reason=_selection_reason(event.ticket_type, catalog),
    )


def _canceled_pay(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Please select ticket first (canceled state).")


def _canceled_cancel(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Already canceled.")


def _canceled_dispense(data, event, catalog, stock) -> TransitionResult:
    return _reject(data, event, "Canceled; no dispense.")


# =============================================================================
# Transition Table
# =============================================================================


_S = VendingState
_E = EventKind

TRANSITIONS: dict[tuple[VendingState, EventKind], TransitionHandler] = {
    (_S.IDLE, _E.SELECT): _idle_select,
    (_S.IDLE, _E.PAY): _idle_pay,
    (_S.IDLE, _E.CANCEL): _idle_cancel,
    (_S.IDLE, _E.DISPENSE): _idle_dispense,
    (_S.AWAITING_PAYMENT, _E.SELECT): _awaiting_select,
    (_S.AWAITING_PAYMENT, _E.PAY): _awaiting_pay,
    (_S.AWAITING_PAYMENT, _E.CANCEL): _awaiting_cancel,
    (_S.AWAITING_PAYMENT, _E.DISPENSE): _awaiting_dispense,
    (_S.PAYMENT_COMPLETE, _E.SELECT): _complete_select,
    (_S.PAYMENT_COMPLETE, _E.PAY): _complete_pay,
    (_S.PAYMENT_COMPLETE, _E.CANCEL): _complete_cancel,
    (_S.PAYMENT_COMPLETE, _E.DISPENSE): _complete_dispense,
    (_S.DISPENSED, _E.SELECT): _dispensed_busy,
    (_S.DISPENSED, _E.PAY): _dispensed_busy,
    (_S.DISPENSED, _E.CANCEL): _dispensed_cancel,
    (_S.DISPENSED, _E.DISPENSE): _dispensed_acknowledge,
    (_S.CANCELED, _E.SELECT): _canceled_select,
    (_S.CANCELED, _E.PAY): _canceled_pay,
    (_S.CANCELED, _E.CANCEL): _canceled_cancel,
    (_S.CANCELED, _E.DISPENSE): _canceled_dispense,
}


def transition(
    data: SessionData,
    event: VendingEvent,
    catalog: PriceCatalog,
    stock_available: int,
) -> TransitionResult:
    """
    Compute the next session data and the effect of one event.

    Pure: neither the catalog nor the stock is modified. A dispense is
    signalled by ``effect.stock_change == -1`` and applied by the caller.

    Args:
        data: Current session data.
        event: Incoming event.
        catalog: Price lookup.
        stock_available: Tickets currently in stock.

    Returns:
        Tuple of (new session data, effect).
    """
    handler = TRANSITIONS[(data.state, event.kind)]
    return handler(data, event, catalog, stock_available)


# =============================================================================
# Vending Session
# =============================================================================


class VendingSession:
    """
    Single vending session bound to one machine.

    Applies events through ``transition`` and owns the only write access
    to the stock ledger.
    """

    def __init__(self, catalog: PriceCatalog, stock: StockLedger) -> None:
        """
        Initialize the session in IDLE.

        Args:
            catalog: Read-only price lookup.
            stock: Ticket counter; decremented on each dispense.
        """
        self._catalog = catalog
        self._stock = stock
        self._data = SessionData()

    @property
    def state(self) -> VendingState:
        return self._data.state

    @property
    def selected_ticket(self) -> Optional[str]:
        return self._data.selected_ticket

    @property
    def accumulated_amount(self) -> Decimal:
        return self._data.accumulated_amount

    @property
    def data(self) -> SessionData:
        return self._data

    @property
    def catalog(self) -> PriceCatalog:
        return self._catalog

    @property
    def stock(self) -> int:
        return self._stock.available()

    @property
    def in_transaction(self) -> bool:
        return self._data.state in (VendingState.AWAITING_PAYMENT, VendingState.PAYMENT_COMPLETE)

    def snapshot(self) -> SessionSnapshot:
        price = None
        if self._data.selected_ticket is not None:
            price = self._catalog.lookup(self._data.selected_ticket)
        return SessionSnapshot(
            state=self._data.state,
            selected_ticket=self._data.selected_ticket,
            accumulated_amount=self._data.accumulated_amount,
            price=price,
            stock=self._stock.available(),
        )

    def select(self, ticket_type: str) -> VendingEffect:
        return self.handle(VendingEvent.select(ticket_type))

    def pay(self, amount: Any) -> VendingEffect:
        """
        Insert money.

        Raises:
            InvalidAmountError: If ``amount`` is not a number at all.
        """
        return self.handle(VendingEvent.pay(amount))

    def cancel(self) -> VendingEffect:
        return self.handle(VendingEvent.cancel())

    def dispense(self) -> VendingEffect:
        return self.handle(VendingEvent.dispense())

    def handle(self, event: VendingEvent) -> VendingEffect:
        """
        Apply one event to the session.

        Args:
            event: Incoming event.

        Returns:
            The effect of the event.
        """
        new_data, effect = transition(self._data, event, self._catalog, self._stock.available())

        if effect.stock_change:
            self._stock.decrement()
        self._data = new_data

        if effect.accepted:
            logger.info(
                f"[{effect.state_before.name} -> {effect.state_after.name}] {effect.notice}"
            )
        else:
            logger.warning(
                f"{event.kind.value} rejected in {effect.state_before.name}: {effect.notice}"
            )
        return effect

    def check_invariants(self) -> bool:
        """
        Check that session invariants hold.

        These should NEVER be violated.
        """
        data = self._data
        assert data.accumulated_amount >= 0
        assert self._stock.available() >= 0

        if data.state in (VendingState.IDLE, VendingState.CANCELED):
            assert data.accumulated_amount == 0
            assert data.selected_ticket is None

        if data.state == VendingState.PAYMENT_COMPLETE:
            assert data.accumulated_amount >= self._catalog.lookup(data.selected_ticket)

        return True
