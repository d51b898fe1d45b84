import logging
from typing import Dict, Optional

from errors import AmountMissing, DuplicateTransaction, UnableToProcessTransaction, UnknownTransactionType
from models import AccountSnapshot, ClientAccount, HistoryEntry, ProcessingResult, Transaction, TransactionType
from state_manager import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions, in arrival order, against accounts and history.

    Returns ProcessingResult.APPLIED when the transaction changed state and
    ProcessingResult.IGNORED for references that are deliberately skipped.
    Every other problem raises a PaymentsError and should abort the run.
    """

    def __init__(self, state: Optional[StateManager] = None):
        self._state = state if state is not None else StateManager()

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        account = self._state.get_or_create_account(transaction.client_id)

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(account, transaction)
            case _:
                raise UnknownTransactionType(str(transaction.transaction_type))

    def get_all_accounts(self) -> Dict[int, AccountSnapshot]:
        return self._state.get_all_accounts()

    def _check_new_transaction(self, transaction: Transaction) -> None:
        if transaction.amount is None:
            logger.warning(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: amount missing")
            raise AmountMissing(transaction.transaction_id)

        # Checked before the account is touched so a duplicate leaves no trace.
        if self._state.has_transaction(transaction.transaction_id):
            logger.warning(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: transaction id already used")
            raise DuplicateTransaction(transaction.transaction_id)

    def _record(self, transaction: Transaction) -> None:
        self._state.store_transaction(HistoryEntry(
            client_id=transaction.client_id,
            transaction_id=transaction.transaction_id,
            amount=transaction.amount,
            transaction_type=transaction.transaction_type,
        ))

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        self._check_new_transaction(transaction)
        account.deposit(transaction.amount)
        self._record(transaction)
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        self._check_new_transaction(transaction)
        account.withdraw(transaction.amount)
        self._record(transaction)
        return ProcessingResult.APPLIED

    def _find_own_transaction(self, transaction: Transaction) -> Optional[HistoryEntry]:
        """Look up the referenced transaction, or None when it should be ignored."""
        original = self._state.get_transaction(transaction.transaction_id)

        if original is None:
            logger.info(f"{transaction.transaction_type.value.capitalize()} for tx {transaction.transaction_id}: transaction not found, ignoring")
            return None

        if original.client_id != transaction.client_id:
            logger.info(
                f"{transaction.transaction_type.value.capitalize()} for tx {transaction.transaction_id}: "
                f"belongs to client {original.client_id}, not {transaction.client_id}, ignoring"
            )
            return None

        return original

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original = self._find_own_transaction(transaction)
        if original is None:
            return ProcessingResult.IGNORED

        if not account.dispute(original.transaction_id, original.amount):
            logger.info(f"Dispute for tx {transaction.transaction_id}: already charged back, ignoring")
            return ProcessingResult.IGNORED

        logger.info(f"Dispute for tx {transaction.transaction_id}: holding {original.amount} of {original.transaction_type.value}")
        return ProcessingResult.APPLIED

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original = self._find_own_transaction(transaction)
        if original is None:
            return ProcessingResult.IGNORED

        if not account.resolve(original.transaction_id, original.amount):
            logger.info(f"Resolve for tx {transaction.transaction_id}: transaction not under dispute, ignoring")
            return ProcessingResult.IGNORED
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original = self._state.get_transaction(transaction.transaction_id)

        if original is None:
            logger.warning(f"Chargeback for tx {transaction.transaction_id}: transaction not found")
            raise UnableToProcessTransaction(transaction.transaction_id)

        if not account.chargeback(original.transaction_id, original.amount):
            logger.info(f"Chargeback for tx {transaction.transaction_id}: transaction not under dispute for client {account.client_id}, ignoring")
            return ProcessingResult.IGNORED

        logger.info(f"Chargeback for tx {transaction.transaction_id}: client {account.client_id} locked")
        return ProcessingResult.APPLIED
