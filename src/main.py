import csv
import logging
import os
import sys
from decimal import Decimal
from typing import Dict, List, Optional, TextIO

from errors import PaymentsError
from models import AccountSnapshot, scale_amount
from payments_engine import PaymentsEngine

LOG_LEVEL_ENV = "PAYMENTS_ENGINE_LOG_LEVEL"

logger = logging.getLogger(__name__)


def parse_log_level(value: Optional[str]) -> int:
    """Accept a level name or number, falling back to WARNING."""
    level_name = (value or "").strip().upper()
    if level_name.isdigit():
        return int(level_name)
    level = getattr(logging, level_name, None) if level_name else None
    if not isinstance(level, int):
        return logging.WARNING
    return level


def configure_logging() -> None:
    """Log to stderr at WARNING unless PAYMENTS_ENGINE_LOG_LEVEL says otherwise."""
    logging.basicConfig(
        level=parse_log_level(os.getenv(LOG_LEVEL_ENV)),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def format_amount(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places."""
    return f"{scale_amount(value):f}"


def render_accounts(accounts: Dict[int, AccountSnapshot]) -> List[List[str]]:
    """Build every output row up front so a failure leaves stdout untouched."""
    rows = [["client", "available", "held", "total", "locked"]]
    for client_id in sorted(accounts.keys()):
        account = accounts[client_id]
        rows.append([
            str(client_id),
            format_amount(account.available),
            format_amount(account.held),
            format_amount(account.total),
            str(account.locked).lower(),
        ])
    return rows


def write_rows(rows: List[List[str]], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerows(rows)


def main() -> int:
    configure_logging()

    if len(sys.argv) != 2:
        print("Usage: payments-engine <input.csv>", file=sys.stderr)
        return 1

    filepath = sys.argv[1]
    engine = PaymentsEngine()
    try:
        rows = render_accounts(engine.process_file(filepath))
    except PaymentsError as e:
        logger.debug("Run aborted", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    write_rows(rows, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
