"""
Ticket Vending System - Main entry point.

Listens for commands on Redis pub/sub, executes them against the vending
machine facade and publishes the responses.
"""

import asyncio
import json
from typing import Final

from redis.asyncio import Redis

from application.api_facade import VendingMachineFacade
from application.command_handler import ticket_vending_commands
from infrastructure.settings import get_settings
from loggers import logger


# =============================================================================
# Constants
# =============================================================================

settings = get_settings()
COMMAND_CHANNEL: Final[str] = settings.vending.command_channel
RESPONSE_CHANNEL: Final[str] = settings.vending.response_channel


# =============================================================================
# Redis Command Listener
# =============================================================================


async def handle_message(redis: Redis, api: VendingMachineFacade, raw_data: str) -> None:
    """
    Execute one raw pub/sub message and publish the response.

    Args:
        redis: Redis client instance.
        api: VendingMachineFacade instance for command execution.
        raw_data: JSON-encoded command.
    """
    try:
        command = json.loads(raw_data)
    except json.JSONDecodeError as e:
        logger.error(f"Command parsing error: {e}")
        return

    if not isinstance(command, dict):
        logger.error(f"Command must be a JSON object: {raw_data}")
        return

    logger.info(f"Received command: {command}")
    response = await ticket_vending_commands(command, api)

    await redis.publish(RESPONSE_CHANNEL, json.dumps(response))
    logger.info(f"Response sent to {RESPONSE_CHANNEL}: {response}")


async def listen_to_redis(redis: Redis, api: VendingMachineFacade) -> None:
    """
    Listen for commands on Redis pub/sub and process them.

    Args:
        redis: Redis client instance.
        api: VendingMachineFacade instance for command execution.
    """
    await api.start()

    pubsub = redis.pubsub()
    await pubsub.subscribe(COMMAND_CHANNEL)
    logger.info(f"Listening for commands on channel: {COMMAND_CHANNEL}")

    try:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue

            raw_data = message.get("data")

            if raw_data == "ping":
                continue

            await handle_message(redis, api, raw_data)
    finally:
        await pubsub.unsubscribe(COMMAND_CHANNEL)
        await api.shutdown()


# =============================================================================
# Main Entry Point
# =============================================================================


async def main() -> None:
    """
    Main entry point for the ticket vending service.

    Initializes the Redis connection and starts the command listener.
    """
    redis = Redis(
        host=settings.redis.host,
        port=settings.redis.port,
        decode_responses=settings.redis.decode_responses,
    )

    vending_api = VendingMachineFacade(redis, settings)

    try:
        await listen_to_redis(redis, vending_api)
    finally:
        await redis.aclose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
