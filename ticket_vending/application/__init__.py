"""
Application layer - Application services and use cases.

Contains:
- Vending service
- API facade
- Command handlers
"""

from .vending_service import VendingService, event_types_for
from .api_facade import VendingMachineFacade
from .command_handler import CommandHandler, CommandResponse, ticket_vending_commands


__all__ = [
    "VendingService",
    "event_types_for",
    "VendingMachineFacade",
    "CommandHandler",
    "CommandResponse",
    "ticket_vending_commands",
]
