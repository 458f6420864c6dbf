"""
Event system for the ticket vending system.

This module provides a publish-subscribe event system that carries vending
effects (selections, payments, dispenses, refunds) to notification handlers.
"""

import asyncio
import inspect
from enum import Enum
from typing import Any, Callable, Union

from loggers import logger


class EventType(str, Enum):
    """
    Enumeration of event types in the ticket vending system.

    Values double as the WebSocket event names sent to the frontend.
    """

    TICKET_SELECTED = "ticketSelected"
    PAYMENT_ACCEPTED = "paymentAccepted"
    PAYMENT_COMPLETE = "paymentComplete"
    TICKET_DISPENSED = "ticketDispensed"
    CHANGE_RETURNED = "changeReturned"
    TRANSACTION_CANCELED = "transactionCanceled"
    TRANSACTION_COMPLETED = "transactionCompleted"
    ACTION_REJECTED = "actionRejected"


class EventPublisher:
    """
    Publisher for sending events to the event queue.

    Attributes:
        event_queue: The asyncio queue to publish events to.
    """

    def __init__(self, event_queue: asyncio.Queue) -> None:
        self.event_queue = event_queue

    async def publish(self, event_type: Union[EventType, str], **data: Any) -> None:
        """
        Publish an event to the queue.

        Args:
            event_type: The type of event to publish.
            **data: Additional event data as keyword arguments.
        """
        event = {"type": event_type, **data}
        await self.event_queue.put(event)


class EventConsumer:
    """
    Consumer for processing events from the event queue.

    Handles event dispatch to registered handlers based on event type.

    Attributes:
        event_queue: The asyncio queue to consume events from.
        handlers: Mapping of event types to their handler functions.
        is_consuming: Flag indicating if the consumer is active.
    """

    def __init__(self, event_queue: asyncio.Queue) -> None:
        self.event_queue = event_queue
        self.handlers: dict[Union[EventType, str], list[Callable]] = {}
        self.is_consuming = False
        self._consume_task: asyncio.Task | None = None

    def register_handler(
        self,
        event_type: Union[EventType, str],
        handler: Callable,
    ) -> None:
        """
        Register a handler for an event type.

        Args:
            event_type: The event type to handle.
            handler: The handler function (sync or async).
        """
        if event_type not in self.handlers:
            self.handlers[event_type] = []
        self.handlers[event_type].append(handler)

    def unregister_handler(
        self,
        event_type: Union[EventType, str],
        handler: Callable,
    ) -> None:
        if event_type in self.handlers:
            try:
                self.handlers[event_type].remove(handler)
            except ValueError:
                pass

    async def process_event(self, event: dict[str, Any]) -> None:
        """
        Process a single event by calling all registered handlers.

        Args:
            event: The event dictionary containing type and data.
        """
        event_type = event.get("type")
        if event_type not in self.handlers:
            return

        handlers = self.handlers[event_type]

        async_handlers = [h for h in handlers if inspect.iscoroutinefunction(h)]
        sync_handlers = [h for h in handlers if not inspect.iscoroutinefunction(h)]

        if async_handlers:
            results = await asyncio.gather(
                *(handler(event) for handler in async_handlers),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Handler error for {event_type}: {result}")

        for handler in sync_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler error for {event_type}: {e}")

    async def _consume_loop(self) -> None:
        """Main consumption loop that processes events from the queue."""
        while self.is_consuming:
            try:
                # Timeout lets the loop notice is_consuming going False
                event = await asyncio.wait_for(
                    self.event_queue.get(),
                    timeout=0.5,
                )
                await self.process_event(event)
                self.event_queue.task_done()
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Event loop error: {e}")

    async def start_consuming(self) -> None:
        """Start the event consumption loop."""
        if self.is_consuming:
            return

        self.is_consuming = True
        self._consume_task = asyncio.create_task(self._consume_loop())

    async def stop_consuming(self) -> None:
        """Stop processing events and cancel the consumption task."""
        self.is_consuming = False

        if self._consume_task:
            self._consume_task.cancel()
            try:
                await self._consume_task
            except asyncio.CancelledError:
                pass
            self._consume_task = None
