"""
Configuration module for the ticket vending system.

This module provides process-wide constants for logging and external
services. Every value can be overridden with a TICKET_VENDING_* environment
variable.
"""

import os
from typing import Final


# =============================================================================
# System Configuration
# =============================================================================

SYSTEM_USER: Final[str] = os.getenv("TICKET_VENDING_SYSTEM_USER", "fsadmin")
APP_NAME: Final[str] = "ticket_vending"


# =============================================================================
# Logging Configuration
# =============================================================================

LOG_FILE: Final[str] = os.getenv(
    "TICKET_VENDING_LOG_FILE",
    f"/home/{SYSTEM_USER}/ticket_vending/logs/ticket_vending.log",
)


# =============================================================================
# External Services Configuration
# =============================================================================

# An empty value disables the Loki handler
LOKI_URL: Final[str] = os.getenv(
    "TICKET_VENDING_LOKI_URL",
    "http://localhost:3100/loki/api/v1/push",
)
WS_URL: Final[str] = os.getenv("TICKET_VENDING_WS_URL", "ws://localhost:8005/ws")
