"""
Command-line slot board.

Prints every slot of a day for one service category with its status,
using the appointments currently held in the store.

Usage:
    python main.py 2024-06-10 "Oil Change"
    python main.py 2024-06-10 tyres --scheme half-hourly --now 2024-06-10T14:00
"""

import argparse
import logging
import sys
from datetime import date, datetime

from slotbook.config import settings
from slotbook.scheduling.availability import get_day_availability
from slotbook.scheduling.errors import InvalidSlotConfig
from slotbook.scheduling.slots import BANDED_SCHEME, HALF_HOURLY_SCHEME, SlotScheme
from slotbook.tools.appointments import list_appointments
from slotbook.tools.services import match_category

logger = logging.getLogger(__name__)

SCHEMES = {
    "banded": BANDED_SCHEME,
    "half-hourly": HALF_HOURLY_SCHEME,
}


def format_board(day: date, category: str, board: list[dict]) -> str:
    lines = [f"{settings.shop.name}: {category} on {day:%A, %d %B %Y}", ""]
    for cell in board:
        lines.append(f"  {cell['label']:<15} {cell['status']}")
    open_count = sum(1 for cell in board if cell["status"] == "Open")
    lines.append("")
    lines.append(f"{open_count} of {len(board)} slots open.")
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Show bookable slots for a day and service category."
    )
    parser.add_argument("day", type=date.fromisoformat, help="Day to show (YYYY-MM-DD).")
    parser.add_argument("category", type=str, help="Service category name or keyword.")
    parser.add_argument(
        "--scheme",
        choices=[*SCHEMES, "config"],
        default="config",
        help="Slot scheme to use (default: from environment configuration).",
    )
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="Override the current time (ISO 8601), for previewing.",
    )

    args = parser.parse_args()

    category = match_category(args.category)
    if category is None:
        logger.error("Unknown service category: %s", args.category)
        sys.exit(1)

    scheme = (
        SlotScheme.from_config(settings.schedule) if args.scheme == "config"
        else SCHEMES[args.scheme]
    )
    now = args.now or datetime.now(settings.schedule.tzinfo)

    try:
        board = get_day_availability(
            args.day, category, list_appointments(day=args.day), now, scheme=scheme
        )
    except InvalidSlotConfig as exc:
        logger.error("Cannot build slot board: %s", exc)
        sys.exit(1)

    sys.stdout.write(format_board(args.day, category, board) + "\n")


if __name__ == "__main__":
    main()
