"""
Redis Repository implementations.

Provides type-safe access to the Redis keys that mirror the vending session
for dashboards and the frontend. The mirror is write-mostly: the session
never restores itself from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisClientConnectionError
from redis.exceptions import RedisError

from core.exceptions import RedisConnectionError, RepositoryError
from core.value_objects import SessionSnapshot
from loggers import logger


# =============================================================================
# Base Repository
# =============================================================================


class RedisStateRepository:
    """
    Base repository for Redis state operations.

    Provides common Redis operations with error handling.
    """

    def __init__(self, redis: Redis) -> None:
        """
        Initialize the repository.

        Args:
            redis: Redis client instance.
        """
        self._redis = redis

    async def get(self, key: str) -> Optional[str]:
        """Get a string value by key."""
        try:
            return await self._redis.get(key)
        except RedisClientConnectionError as e:
            raise RedisConnectionError(f"Redis connection error: {e}") from e
        except RedisError as e:
            raise RepositoryError(f"Redis error: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        """Set a key-value pair."""
        try:
            await self._redis.set(key, value)
        except RedisClientConnectionError as e:
            raise RedisConnectionError(f"Redis connection error: {e}") from e
        except RedisError as e:
            raise RepositoryError(f"Redis error: {e}") from e

    async def get_int(self, key: str, default: int = 0) -> int:
        """Get an integer value by key."""
        value = await self.get(key)
        return int(value) if value else default

    async def get_hash(self, key: str) -> dict[str, str]:
        """Get all fields of a hash."""
        try:
            return await self._redis.hgetall(key)
        except RedisClientConnectionError as e:
            raise RedisConnectionError(f"Redis connection error: {e}") from e
        except RedisError as e:
            raise RepositoryError(f"Redis error: {e}") from e

    async def set_hash(self, key: str, mapping: dict[str, Any]) -> None:
        """Replace all fields of a hash."""
        try:
            await self._redis.delete(key)
            if mapping:
                await self._redis.hset(key, mapping=mapping)
        except RedisClientConnectionError as e:
            raise RedisConnectionError(f"Redis connection error: {e}") from e
        except RedisError as e:
            raise RepositoryError(f"Redis error: {e}") from e


# =============================================================================
# Vending State Repository
# =============================================================================


@dataclass
class StoredVendingState:
    """Session state as last written to Redis."""

    state: Optional[str] = None
    selected_ticket: Optional[str] = None
    accumulated_amount: Optional[str] = None
    stock: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "selected_ticket": self.selected_ticket,
            "accumulated_amount": self.accumulated_amount,
            "stock": self.stock,
        }


class VendingStateRepository(RedisStateRepository):
    """
    Repository for the vending session mirror.

    Keys (with the configured prefix, "ticket_vending" by default):
    - <prefix>:state: Current state name
    - <prefix>:selected_ticket: Selected ticket type ("" when none)
    - <prefix>:accumulated_amount: Money inserted in the running transaction
    - <prefix>:stock: Tickets left
    - <prefix>:catalog: Hash of ticket type -> price
    """

    def __init__(self, redis: Redis, prefix: str = "ticket_vending") -> None:
        super().__init__(redis)
        self.key_state = f"{prefix}:state"
        self.key_selected = f"{prefix}:selected_ticket"
        self.key_amount = f"{prefix}:accumulated_amount"
        self.key_stock = f"{prefix}:stock"
        self.key_catalog = f"{prefix}:catalog"

    async def save_snapshot(self, snapshot: SessionSnapshot) -> None:
        """Write the session snapshot."""
        data = snapshot.to_dict()
        await self.set(self.key_state, data["state"])
        await self.set(self.key_selected, data["selected_ticket"] or "")
        await self.set(self.key_amount, data["accumulated_amount"])
        await self.set(self.key_stock, data["stock"])
        logger.debug(f"Mirrored vending state: {data}")

    async def get_state(self) -> StoredVendingState:
        """Read back the last mirrored state."""
        return StoredVendingState(
            state=await self.get(self.key_state),
            selected_ticket=await self.get(self.key_selected) or None,
            accumulated_amount=await self.get(self.key_amount),
            stock=await self.get_int(self.key_stock),
        )

    async def save_catalog(self, prices: dict[str, str]) -> None:
        """Write the catalog hash."""
        await self.set_hash(self.key_catalog, prices)

    async def get_catalog(self) -> dict[str, str]:
        """Read the catalog hash."""
        return await self.get_hash(self.key_catalog)
