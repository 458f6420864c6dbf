"""
WebSocket client for pushing vending notifications to the frontend.

Only the event names defined by ``EventType`` are sent; anything else is
dropped with an error log.
"""

import json
from typing import Any, Optional, Union

import websockets
from websockets.exceptions import WebSocketException

from configs import WS_URL
from event_system import EventType
from loggers import logger


def build_notification(
    event: Union[EventType, str],
    data: Optional[dict[str, Any]] = None,
) -> str:
    """
    Encode a vending notification as the JSON frame the frontend expects.

    Args:
        event: Event type or its wire name (e.g. ``"ticketDispensed"``).
        data: Optional effect fields to attach.

    Returns:
        JSON string ``{"event": <name>, "data": <data>}``.

    Raises:
        ValueError: If ``event`` is not a known vending event.
    """
    event_type = EventType(event)
    return json.dumps({"event": event_type.value, "data": data}, default=str)


async def send_to_ws(
    event: Union[EventType, str],
    data: Optional[dict[str, Any]] = None,
    ws_url: str = WS_URL,
) -> bool:
    """
    Send a vending notification to the WebSocket server.

    Args:
        event: The vending event type to send.
        data: Optional dictionary of event data.
        ws_url: WebSocket URL to connect to (default from config).

    Returns:
        True if the message was sent successfully, False otherwise.

    Example:
        await send_to_ws(
            event=EventType.TICKET_DISPENSED,
            data={'dispensed_ticket': 'Standard', 'refund_amount': '0.50'},
        )
    """
    try:
        message = build_notification(event, data)
    except ValueError:
        logger.error(f"Unknown vending event, not sent: {event!r}")
        return False

    try:
        async with websockets.connect(ws_url) as ws:
            await ws.send(message)
            logger.debug(f"Vending notification sent: {message}")
            return True
    except WebSocketException as e:
        logger.warning(f"WebSocket connection error: {e}")
        return False
    except OSError as e:
        logger.error(f"Failed to send vending notification {event!r}: {e}")
        return False
