"""
API Facade - Unified interface for the ticket vending machine.

Wires the event queue, the vending service and the Redis mirror together
and exposes the operations used by the command handler.
"""

import asyncio
from typing import Any, Optional

from redis.asyncio import Redis

from application.vending_service import VendingService
from core.exceptions import RepositoryError
from event_system import EventConsumer, EventPublisher, EventType
from infrastructure.redis_repository import VendingStateRepository
from infrastructure.settings import Settings, get_settings
from loggers import logger
from redis_error_handler import redis_error_handler
from send_to_ws import send_to_ws


class VendingMachineFacade:
    """
    Facade for the ticket vending machine.

    Owns one vending session for the lifetime of the process.
    """

    def __init__(
        self,
        redis: Optional[Redis] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        """
        Initialize the vending machine facade.

        Args:
            redis: Redis client instance. Without one, no state is mirrored.
            settings: Application settings (defaults to the singleton).
        """
        self._settings = settings or get_settings()

        # Event system
        self._event_queue: asyncio.Queue = asyncio.Queue()
        self._event_publisher = EventPublisher(self._event_queue)
        self._event_consumer = EventConsumer(self._event_queue)

        self._repository: Optional[VendingStateRepository] = None
        if redis is not None:
            self._repository = VendingStateRepository(
                redis, prefix=self._settings.vending.key_prefix
            )

        self._vending_service = VendingService.from_settings(
            self._event_publisher,
            self._repository,
            self._settings,
        )

        self._is_started = False

    @property
    def vending_service(self) -> VendingService:
        return self._vending_service

    @property
    def event_consumer(self) -> EventConsumer:
        return self._event_consumer

    @property
    def is_started(self) -> bool:
        return self._is_started

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> dict[str, Any]:
        """
        Register notification handlers, start consuming events and publish
        the initial catalog and state.

        Returns:
            Dictionary indicating start success.
        """
        if self._is_started:
            return {"success": True, "message": "Vending machine already started"}

        self._register_event_handlers()
        await self._event_consumer.start_consuming()
        self._is_started = True

        if self._repository is not None:
            await self.publish_catalog()
            await self._vending_service.mirror_state()

        logger.info(
            f"Vending machine started. Stock: {self._vending_service.session.stock}, "
            f"catalog: {self._vending_service.session.catalog.to_dict()}"
        )
        return {"success": True, "message": "Vending machine started"}

    def _register_event_handlers(self) -> None:
        """Forward every vending event to the frontend."""
        for event_type in EventType:
            self._event_consumer.register_handler(event_type, self._notify_frontend)

    async def _notify_frontend(self, event: dict[str, Any]) -> None:
        event_type = event["type"]
        data = {key: value for key, value in event.items() if key != "type"}
        await send_to_ws(
            event=EventType(event_type),
            data=data,
            ws_url=self._settings.services.websocket_url,
        )

    async def shutdown(self) -> None:
        """Stop the event consumer."""
        await self._event_consumer.stop_consuming()
        self._is_started = False
        logger.info("Vending machine shut down")

    # =========================================================================
    # Vending Operations
    # =========================================================================

    async def select_ticket(self, ticket_type: str) -> dict[str, Any]:
        return await self._vending_service.select_ticket(ticket_type)

    async def insert_money(self, amount: Any) -> dict[str, Any]:
        return await self._vending_service.insert_money(amount)

    async def cancel_transaction(self) -> dict[str, Any]:
        return await self._vending_service.cancel_transaction()

    async def dispense_ticket(self) -> dict[str, Any]:
        return await self._vending_service.dispense_ticket()

    async def status(self) -> dict[str, Any]:
        return await self._vending_service.get_status()

    async def catalog(self) -> dict[str, Any]:
        return await self._vending_service.get_catalog()

    # =========================================================================
    # Redis Mirror
    # =========================================================================

    def _require_repository(self) -> VendingStateRepository:
        if self._repository is None:
            raise RepositoryError("Redis is not configured")
        return self._repository

    @redis_error_handler("Catalog published")
    async def publish_catalog(self) -> dict[str, str]:
        """
        Write the price list to Redis.

        Returns:
            The published catalog.
        """
        prices = self._vending_service.session.catalog.to_dict()
        await self._require_repository().save_catalog(prices)
        return prices

    @redis_error_handler("Stored state loaded")
    async def stored_state(self) -> dict[str, Any]:
        """
        Read the last mirrored state back from Redis.

        Returns:
            The mirrored state.
        """
        stored = await self._require_repository().get_state()
        return stored.to_dict()
