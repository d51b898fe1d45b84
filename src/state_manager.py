from typing import Dict, Optional

from errors import DuplicateTransaction
from models import AccountSnapshot, ClientAccount, HistoryEntry


class StateManager:
    """
    Client accounts and transaction history for a single run.
    Accounts are created on first reference and never removed.
    History entries are immutable once stored.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._history: Dict[int, HistoryEntry] = {}

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def has_transaction(self, transaction_id: int) -> bool:
        return transaction_id in self._history

    def store_transaction(self, entry: HistoryEntry) -> None:
        """Store an accepted deposit/withdrawal for future dispute lookups."""
        if entry.transaction_id in self._history:
            raise DuplicateTransaction(entry.transaction_id)
        self._history[entry.transaction_id] = entry

    def get_transaction(self, transaction_id: int) -> Optional[HistoryEntry]:
        """Retrieve stored transaction by ID."""
        return self._history.get(transaction_id)

    def get_all_accounts(self) -> Dict[int, AccountSnapshot]:
        """Return a snapshot of every account, ordered by client id."""
        return {client_id: self._accounts[client_id].snapshot() for client_id in sorted(self._accounts)}
