"""
Pytest configuration for ticket vending tests.

Adds the ticket_vending directory to sys.path so that tests can import
modules the same way the service does, and keeps logging local.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest


# Must run before anything imports loggers
os.environ.setdefault("TICKET_VENDING_LOKI_URL", "")
os.environ.setdefault(
    "TICKET_VENDING_LOG_FILE",
    str(Path(tempfile.gettempdir()) / "ticket_vending_tests" / "ticket_vending.log"),
)

ticket_vending_path = Path(__file__).parent.parent
if str(ticket_vending_path) not in sys.path:
    sys.path.insert(0, str(ticket_vending_path))


from domain.catalog import TicketCatalog, TicketStock  # noqa: E402
from domain.vending_state_machine import VendingSession  # noqa: E402


PRICES = {"Standard": "1.50", "VIP": "3.00", "Student": "0.75"}


@pytest.fixture
def catalog():
    return TicketCatalog(PRICES)


@pytest.fixture
def stock():
    return TicketStock(100)


@pytest.fixture
def session(catalog, stock):
    """Fresh session with the default catalog and 100 tickets."""
    return VendingSession(catalog, stock)
