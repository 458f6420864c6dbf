"""
Application settings.

Provides typed configuration sections aggregated in a single Settings object.
"""

from dataclasses import dataclass, field
from typing import Final

from configs import LOKI_URL, SYSTEM_USER, WS_URL


# =============================================================================
# Default Values
# =============================================================================


DEFAULT_TICKET_PRICES: Final[dict[str, str]] = {
    "Standard": "1.50",
    "VIP": "3.00",
    "Student": "0.75",
}

DEFAULT_INITIAL_STOCK: Final[int] = 100


# =============================================================================
# Configuration Classes
# =============================================================================


@dataclass(frozen=True)
class RedisSettings:
    """Redis connection settings."""

    host: str = "localhost"
    port: int = 6379
    decode_responses: bool = True


@dataclass(frozen=True)
class ServiceSettings:
    """External service URLs."""

    loki_url: str = LOKI_URL
    websocket_url: str = WS_URL


@dataclass(frozen=True)
class VendingSettings:
    """Ticket vending settings."""

    command_channel: str = "ticket_vending_commands"
    key_prefix: str = "ticket_vending"
    initial_stock: int = DEFAULT_INITIAL_STOCK
    ticket_prices: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_TICKET_PRICES)
    )

    @property
    def response_channel(self) -> str:
        """Get response channel name."""
        return f"{self.command_channel}_response"


# =============================================================================
# Main Settings
# =============================================================================


@dataclass
class Settings:
    """
    Main application settings.

    Aggregates all configuration sections.
    """

    system_user: str = SYSTEM_USER
    redis: RedisSettings = field(default_factory=RedisSettings)
    services: ServiceSettings = field(default_factory=ServiceSettings)
    vending: VendingSettings = field(default_factory=VendingSettings)


# =============================================================================
# Settings Singleton
# =============================================================================


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
