class PaymentsError(Exception):
    """Base class for every condition that aborts a processing run."""


class InputError(PaymentsError):
    """The transaction source could not be opened or read."""


class MalformedRecord(PaymentsError):
    """A record is missing a field or carries a value out of range."""


class UnknownTransactionType(PaymentsError):
    def __init__(self, transaction_type: str):
        super().__init__(f"Unknown transaction type: {transaction_type!r}")
        self.transaction_type = transaction_type


class AmountMissing(PaymentsError):
    def __init__(self, transaction_id: int):
        super().__init__(f"Amount missing for transaction {transaction_id}")
        self.transaction_id = transaction_id


class DuplicateTransaction(PaymentsError):
    def __init__(self, transaction_id: int):
        super().__init__(f"Duplicate transaction: {transaction_id}")
        self.transaction_id = transaction_id


class UnableToProcessTransaction(PaymentsError):
    def __init__(self, transaction_id: int):
        super().__init__(f"Unable to process transaction {transaction_id}: no such transaction")
        self.transaction_id = transaction_id


class LedgerError(PaymentsError):
    """Raised by an account when a transaction effect is not allowed."""

    def __init__(self, client_id: int, message: str):
        super().__init__(f"Client {client_id}: {message}")
        self.client_id = client_id


class AccountLocked(LedgerError):
    def __init__(self, client_id: int):
        super().__init__(client_id, "account is locked")


class InsufficientFunds(LedgerError):
    def __init__(self, client_id: int, available, requested):
        super().__init__(client_id, f"insufficient funds available ({available} < {requested})")
        self.available = available
        self.requested = requested


class AlreadyDisputed(LedgerError):
    def __init__(self, client_id: int, transaction_id: int):
        super().__init__(client_id, f"transaction {transaction_id} is already disputed")
        self.transaction_id = transaction_id


class AmountOutOfRange(PaymentsError):
    """A balance grew beyond what can be held at four decimal places."""
