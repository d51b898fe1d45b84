import csv
import logging
from decimal import Decimal, Inexact, InvalidOperation
from typing import Dict, Iterable, Iterator, Optional

from errors import AmountOutOfRange, InputError, MalformedRecord
from models import (
    MAX_CLIENT_ID,
    MAX_TRANSACTION_ID,
    AccountSnapshot,
    ProcessingStats,
    Transaction,
    TransactionType,
    scale_amount,
)
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "client", "tx")


class PaymentsEngine:
    """
    Runs a stream of transactions through a fresh TransactionProcessor.

    A run is all-or-nothing: the first error propagates and the partially
    built state is dropped, so no snapshot is ever returned for a failed run.
    """

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing {filepath}")
        try:
            with open(filepath, "r", encoding="utf-8", newline="") as f:
                return self.process(self._read_transactions(f))
        except OSError as e:
            raise InputError(f"Unable to read {filepath}: {e}") from e
        except (csv.Error, UnicodeDecodeError) as e:
            raise InputError(f"Unable to parse csv {filepath}: {e}") from e

    def process(self, transactions: Iterable[Transaction]) -> Dict[int, AccountSnapshot]:
        processor = TransactionProcessor()
        stats = ProcessingStats()

        for transaction in transactions:
            stats.record(processor.process_transaction(transaction))

        logger.info(f"Processed: {stats.processed}, applied: {stats.applied}, ignored: {stats.ignored}")
        return processor.get_all_accounts()

    def _read_transactions(self, f) -> Iterator[Transaction]:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            return
        missing = set(REQUIRED_COLUMNS) - {name.strip() for name in reader.fieldnames}
        if missing:
            raise MalformedRecord(f"Header is missing column(s): {', '.join(sorted(missing))}")

        for row in reader:
            yield self._parse_csv_row(row, reader.line_num)

    def _parse_csv_row(self, row: Dict[Optional[str], Optional[str]], line_num: int) -> Transaction:
        """Parse CSV row into Transaction."""
        # Short rows leave trailing values as None, long rows put extras under the None key.
        normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

        transaction_type = TransactionType.parse(normalized["type"])
        client_id = _parse_int(normalized["client"], "client", MAX_CLIENT_ID, line_num)
        transaction_id = _parse_int(normalized["tx"], "tx", MAX_TRANSACTION_ID, line_num)

        amount = None
        amount_str = normalized.get("amount", "")
        if amount_str:
            amount = _parse_amount(amount_str, line_num)

        return Transaction(
            transaction_type=transaction_type,
            client_id=client_id,
            transaction_id=transaction_id,
            amount=amount,
        )


def _parse_int(value: str, column: str, maximum: int, line_num: int) -> int:
    # Plain unsigned decimal digits only; int() would also take "+5" or "1_000".
    if not (value.isascii() and value.isdigit()):
        raise MalformedRecord(f"Line {line_num}: invalid {column} {value!r}")
    number = int(value)
    if number > maximum:
        raise MalformedRecord(f"Line {line_num}: {column} {number} out of range 0..{maximum}")
    return number


def _parse_amount(value: str, line_num: int) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise MalformedRecord(f"Line {line_num}: invalid amount {value!r}") from None
    if not amount.is_finite() or amount <= 0:
        raise MalformedRecord(f"Line {line_num}: amount must be a positive number, got {value!r}")
    try:
        return scale_amount(amount)
    except AmountOutOfRange as e:
        if isinstance(e.__cause__, Inexact):
            raise MalformedRecord(f"Line {line_num}: amount {value!r} has more than 4 decimal places") from None
        raise MalformedRecord(f"Line {line_num}: amount {value!r} is too large") from None
