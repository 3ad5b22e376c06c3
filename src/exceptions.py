from typing import Mapping, Optional


class PaymentsError(Exception):
    """Base class for errors raised by the payments engine."""


class DuplicateTransactionError(PaymentsError):
    """A deposit or withdrawal reused a transaction id already in history."""

    def __init__(self, transaction_id: int):
        super().__init__(f"transaction {transaction_id} already recorded")
        self.transaction_id = transaction_id


class BalanceOverflowError(PaymentsError):
    """A balance change would exceed the digits the ledger keeps exactly."""

    def __init__(self, client_id: int):
        super().__init__(f"balance of client {client_id} cannot be represented exactly")
        self.client_id = client_id


class TransactionParseError(PaymentsError):
    """A CSV row could not be turned into a transaction record."""

    def __init__(self, reason: str, row: Optional[Mapping[str, Optional[str]]] = None):
        super().__init__(reason)
        self.reason = reason
        self.row = row
