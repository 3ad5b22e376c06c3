import threading
from decimal import Decimal
from typing import Dict, List, Optional

from exceptions import DuplicateTransactionError
from models import AccountSnapshot, ClientAccount, HistoryEntry, TransactionType


class LedgerStore:
    """
    Owns client accounts and the history of accepted deposits and withdrawals.
    Every mutation touches one account and, for disputes, one history entry
    belonging to that same account.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._history: Dict[int, HistoryEntry] = {}

        # Guards insertion into both dicts when partitions run on separate threads.
        # Mutating an existing account is left to the single worker owning its client.
        self._lock = threading.Lock()

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create a zeroed, unlocked one."""
        with self._lock:
            account = self._accounts.get(client_id)
            if account is None:
                account = ClientAccount(client_id=client_id)
                self._accounts[client_id] = account
            return account

    def record_history(
        self,
        transaction_id: int,
        client_id: int,
        transaction_type: TransactionType,
        amount: Decimal,
    ) -> HistoryEntry:
        """
        Store an accepted deposit or withdrawal for future dispute lookups.

        Raises:
            DuplicateTransactionError: transaction_id is already in history.
        """
        with self._lock:
            if transaction_id in self._history:
                raise DuplicateTransactionError(transaction_id)
            entry = HistoryEntry(
                transaction_id=transaction_id,
                client_id=client_id,
                transaction_type=transaction_type,
                amount=amount,
            )
            self._history[transaction_id] = entry
            return entry

    def has_history(self, transaction_id: int) -> bool:
        return transaction_id in self._history

    def find_history(self, transaction_id: int) -> Optional[HistoryEntry]:
        return self._history.get(transaction_id)

    def snapshot_all(self) -> List[AccountSnapshot]:
        """Return read-only copies of every account, in the order clients were first seen."""
        with self._lock:
            accounts = list(self._accounts.values())
        return [account.snapshot() for account in accounts]

    def __len__(self) -> int:
        return len(self._accounts)
