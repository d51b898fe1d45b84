from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow, ROUND_HALF_EVEN, localcontext
from enum import Enum
from typing import Iterator, Optional, Set

from errors import AccountLocked, AlreadyDisputed, AmountOutOfRange, InsufficientFunds, UnknownTransactionType

AMOUNT_PRECISION = Decimal("0.0001")
MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

# Every amount carries exactly four decimal places. Arithmetic that would have
# to round or needs more than 64 digits raises instead of dropping minor units.
MONEY_CONTEXT = Context(
    prec=64,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, Inexact, Overflow],
)


@contextmanager
def money_arithmetic() -> Iterator[None]:
    try:
        with localcontext(MONEY_CONTEXT):
            yield
    except (InvalidOperation, Inexact) as e:
        raise AmountOutOfRange(f"Amount exceeds {MONEY_CONTEXT.prec} significant digits") from e


def scale_amount(value: Decimal) -> Decimal:
    """Return value with exactly four decimal places, raising if digits would be lost."""
    with money_arithmetic():
        return value.quantize(AMOUNT_PRECISION)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @classmethod
    def parse(cls, value: str) -> "TransactionType":
        """Case-sensitive lookup by wire name."""
        try:
            return cls(value)
        except ValueError:
            raise UnknownTransactionType(value) from None


class ProcessingResult(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass(frozen=True)
class HistoryEntry:
    """An accepted deposit or withdrawal, kept for later dispute lookups."""

    client_id: int
    transaction_id: int
    amount: Decimal
    transaction_type: TransactionType


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ClientAccount:
    """
    One client's balances and the funds state machine.

    Deposits and withdrawals are refused once the account is locked.
    Disputes, resolves and chargebacks still apply so that disputes opened
    before a lock can be finished. Resolve and chargeback only act on
    transactions currently under dispute; otherwise they are no-ops and
    return False.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False
    disputed_transactions: Set[int] = field(default_factory=set)
    charged_back_transactions: Set[int] = field(default_factory=set)

    @property
    def total(self) -> Decimal:
        with money_arithmetic():
            return self.available + self.held

    def deposit(self, amount: Decimal) -> None:
        if self.locked:
            raise AccountLocked(self.client_id)
        with money_arithmetic():
            self.available = self.available + amount

    def withdraw(self, amount: Decimal) -> None:
        if self.locked:
            raise AccountLocked(self.client_id)
        # Withdrawing exactly the available balance is allowed.
        if self.available < amount:
            raise InsufficientFunds(self.client_id, self.available, amount)
        with money_arithmetic():
            self.available = self.available - amount

    def dispute(self, transaction_id: int, amount: Decimal) -> bool:
        if transaction_id in self.disputed_transactions:
            raise AlreadyDisputed(self.client_id, transaction_id)
        if transaction_id in self.charged_back_transactions:
            return False
        with money_arithmetic():
            available, held = self.available - amount, self.held + amount
        self.available, self.held = available, held
        self.disputed_transactions.add(transaction_id)
        return True

    def resolve(self, transaction_id: int, amount: Decimal) -> bool:
        if transaction_id not in self.disputed_transactions:
            return False
        with money_arithmetic():
            available, held = self.available + amount, self.held - amount
        self.available, self.held = available, held
        self.disputed_transactions.remove(transaction_id)
        return True

    def chargeback(self, transaction_id: int, amount: Decimal) -> bool:
        if transaction_id not in self.disputed_transactions:
            return False
        with money_arithmetic():
            self.held = self.held - amount
        self.locked = True
        self.disputed_transactions.remove(transaction_id)
        self.charged_back_transactions.add(transaction_id)
        return True

    def is_disputed(self, transaction_id: int) -> bool:
        return transaction_id in self.disputed_transactions

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


class ProcessingStats:
    """Counters for the end-of-run processing report."""

    def __init__(self):
        self.applied = 0
        self.ignored = 0

    def record(self, result: ProcessingResult) -> None:
        if result == ProcessingResult.APPLIED:
            self.applied += 1
        else:
            self.ignored += 1

    @property
    def processed(self) -> int:
        return self.applied + self.ignored
