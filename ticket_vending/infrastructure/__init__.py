"""
Infrastructure layer - External dependencies and implementations.

Contains:
- Repository implementations (Redis)
- Configuration
"""

from .redis_repository import (
    RedisStateRepository,
    StoredVendingState,
    VendingStateRepository,
)
from .settings import (
    Settings,
    get_settings,
)


__all__ = [
    # Repositories
    "RedisStateRepository",
    "StoredVendingState",
    "VendingStateRepository",
    # Settings
    "Settings",
    "get_settings",
]
