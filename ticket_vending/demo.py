"""
Ticket vending demo.

Replays the classic purchase scenarios against an in-memory session and
logs every effect. No Redis or WebSocket server is needed.

Usage:
    python demo.py [--stock N]
"""

import argparse
from typing import Optional

from core.value_objects import VendingEffect
from domain.catalog import TicketCatalog, TicketStock
from domain.vending_state_machine import VendingSession
from infrastructure.settings import get_settings
from loggers import logger


def report(effect: VendingEffect) -> None:
    line = f"{effect.notice}  [{effect.state_after.name}]"
    if effect.refund_amount is not None:
        line += f"  refund={effect.refund_amount:.2f}"
    logger.info(line)


def run_demo(stock: Optional[int] = None) -> VendingSession:
    """
    Run the demo scenarios.

    Args:
        stock: Initial stock (defaults to the configured value).

    Returns:
        The session after all scenarios, for inspection.
    """
    settings = get_settings()
    session = VendingSession(
        TicketCatalog(settings.vending.ticket_prices),
        TicketStock(settings.vending.initial_stock if stock is None else stock),
    )

    logger.info("=== Scenario: normal purchase ===")
    report(session.select("Standard"))
    report(session.pay("1.00"))
    report(session.pay("0.50"))
    report(session.dispense())
    report(session.dispense())

    logger.info("=== Scenario: cancel while waiting for money ===")
    report(session.select("VIP"))
    report(session.pay("1.00"))
    report(session.cancel())

    logger.info("=== Scenario: VIP purchase with change ===")
    report(session.select("VIP"))
    report(session.pay("5.00"))
    report(session.dispense())
    report(session.dispense())

    logger.info("=== Scenario: drain the stock ===")
    while session.stock > 0:
        session.select("Student")
        session.pay("0.75")
        session.dispense()
        session.dispense()
    report(session.select("Student"))

    logger.info(f"Demo finished. Tickets left: {session.stock}")
    return session


def main() -> None:
    parser = argparse.ArgumentParser(description="Ticket vending machine demo")
    parser.add_argument("--stock", type=int, default=None, help="initial ticket stock")
    args = parser.parse_args()
    run_demo(args.stock)


if __name__ == "__main__":
    main()
