"""
Redis error handling utilities.

This module provides a decorator for async operations that touch the Redis
mirror, turning repository failures into uniform response dictionaries.
"""

from functools import wraps
from typing import Any, Callable, TypeVar

from core.exceptions import RepositoryError
from loggers import logger


F = TypeVar("F", bound=Callable[..., Any])


def redis_error_handler(success_message: str) -> Callable[[F], F]:
    """
    Decorator for handling Redis errors and providing unified responses.

    Args:
        success_message: The message to return on successful operation.

    Returns:
        Decorated function with error handling.

    Example:
        @redis_error_handler("Catalog published")
        async def publish_catalog(self):
            await self._repository.save_catalog(...)
    """
    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
            try:
                result = await func(*args, **kwargs)
                if result is not None:
                    return {
                        "success": True,
                        "message": success_message,
                        "data": result,
                    }
                return {
                    "success": True,
                    "message": success_message,
                }
            except RepositoryError as e:
                logger.error(f"Redis error: {e.message}")
                return {
                    "success": False,
                    "message": e.message,
                    "data": e.to_dict(),
                }
            except TimeoutError as e:
                logger.error(f"Redis timeout error: {e}")
                return {
                    "success": False,
                    "message": f"Redis timeout error: {e}",
                }
        return wrapper  # type: ignore
    return decorator
