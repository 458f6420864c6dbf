"""
Vending Service - Application service for ticket vending operations.

Serializes events on one vending session, publishes the resulting effects
and mirrors the session state into Redis.
"""

import asyncio
from typing import Any, Optional

from core.exceptions import InvalidAmountError, RepositoryError
from core.value_objects import EventKind, VendingEffect, VendingEvent, VendingState
from domain.catalog import TicketCatalog, TicketStock
from domain.vending_state_machine import VendingSession
from event_system import EventPublisher, EventType
from infrastructure.redis_repository import VendingStateRepository
from infrastructure.settings import Settings, get_settings
from loggers import logger


def event_types_for(effect: VendingEffect) -> list[EventType]:
    """
    Map an effect to the notifications it should produce.

    Args:
        effect: Effect returned by the session.

    Returns:
        Event types in publishing order.
    """
    if not effect.accepted:
        return [EventType.ACTION_REJECTED]

    if effect.event == EventKind.SELECT:
        types = [EventType.TICKET_SELECTED]
    elif effect.event == EventKind.PAY:
        if effect.state_changed and effect.state_after == VendingState.PAYMENT_COMPLETE:
            types = [EventType.PAYMENT_COMPLETE]
        else:
            types = [EventType.PAYMENT_ACCEPTED]
    elif effect.event == EventKind.CANCEL:
        types = [EventType.TRANSACTION_CANCELED]
    elif effect.dispensed_ticket:
        types = [EventType.TICKET_DISPENSED]
    else:
        types = [EventType.TRANSACTION_COMPLETED]

    if effect.refund_amount is not None:
        types.append(EventType.CHANGE_RETURNED)
    return types


class VendingService:
    """
    Application service for ticket vending.

    Every event goes through one asyncio lock, so a transition and its
    stock update are never interleaved with another event.
    """

    def __init__(
        self,
        session: VendingSession,
        event_publisher: EventPublisher,
        repository: Optional[VendingStateRepository] = None,
    ) -> None:
        """
        Initialize the vending service.

        Args:
            session: The machine's vending session.
            event_publisher: Publisher for effect events.
            repository: Optional Redis mirror of the session state.
        """
        self._session = session
        self._event_publisher = event_publisher
        self._repository = repository
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        event_publisher: EventPublisher,
        repository: Optional[VendingStateRepository] = None,
        settings: Optional[Settings] = None,
    ) -> "VendingService":
        """Build a service with the configured catalog and initial stock."""
        settings = settings or get_settings()
        session = VendingSession(
            TicketCatalog(settings.vending.ticket_prices),
            TicketStock(settings.vending.initial_stock),
        )
        return cls(session, event_publisher, repository)

    @property
    def session(self) -> VendingSession:
        return self._session

    @property
    def state(self) -> VendingState:
        return self._session.state

    # =========================================================================
    # Vending Operations
    # =========================================================================

    async def select_ticket(self, ticket_type: str) -> dict[str, Any]:
        """
        Select a ticket type.

        Args:
            ticket_type: Ticket type name.

        Returns:
            Response dictionary with the effect and current status.
        """
        return await self._apply(VendingEvent.select(str(ticket_type)))

    async def insert_money(self, amount: Any) -> dict[str, Any]:
        """
        Insert money into the machine.

        Args:
            amount: Amount as int, float, str or Decimal.

        Returns:
            Response dictionary with the effect and current status.
        """
        try:
            event = VendingEvent.pay(amount)
        except InvalidAmountError as e:
            logger.error(e.message)
            return {"success": False, "message": e.message, "data": e.to_dict()}
        return await self._apply(event)

    async def cancel_transaction(self) -> dict[str, Any]:
        return await self._apply(VendingEvent.cancel())

    async def dispense_ticket(self) -> dict[str, Any]:
        """
        Dispense the paid ticket, or acknowledge a dispensed one.

        Returns:
            Response dictionary with the effect and current status.
        """
        return await self._apply(VendingEvent.dispense())

    async def get_status(self) -> dict[str, Any]:
        snapshot = self._session.snapshot()
        return {
            "success": True,
            "message": f"Machine state: {snapshot.state.name}",
            "data": {**snapshot.to_dict(), "in_transaction": self._session.in_transaction},
        }

    async def get_catalog(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": f"{len(self._session.catalog)} ticket types available",
            "data": self._session.catalog.to_dict(),
        }

    # =========================================================================
    # Internals
    # =========================================================================

    async def _apply(self, event: VendingEvent) -> dict[str, Any]:
        async with self._lock:
            effect = self._session.handle(event)
            snapshot = self._session.snapshot()
            await self._publish(effect)
            await self.mirror_state()

        return {
            "success": effect.accepted,
            "message": effect.notice,
            "data": {**effect.to_dict(), "status": snapshot.to_dict()},
        }

    async def _publish(self, effect: VendingEffect) -> None:
        payload = effect.to_dict()
        for event_type in event_types_for(effect):
            await self._event_publisher.publish(event_type, **payload)

    async def mirror_state(self) -> bool:
        """
        Write the session snapshot to Redis.

        Returns:
            True if written, False if there is no repository or Redis failed.
        """
        if self._repository is None:
            return False
        try:
            await self._repository.save_snapshot(self._session.snapshot())
            return True
        except RepositoryError as e:
            logger.error(f"Failed to mirror vending state: {e.message}")
            return False
