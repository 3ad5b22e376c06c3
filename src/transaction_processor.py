import logging
from typing import Optional, Tuple, Union

from exceptions import BalanceOverflowError, DuplicateTransactionError
from ledger import LedgerStore
from models import (
    Chargeback,
    ClientAccount,
    Deposit,
    Dispute,
    DisputeState,
    HistoryEntry,
    ProcessingResult,
    Resolve,
    Transaction,
    Withdrawal,
)

logger = logging.getLogger(__name__)

# A resolved transaction has its funds fully restored and may be disputed again.
DISPUTABLE_STATES = frozenset({DisputeState.NORMAL, DisputeState.RESOLVED})


class TransactionProcessor:
    """
    Applies transactions to a ledger one at a time.
    Returns a ProcessingResult; a rejected transaction leaves the ledger untouched.
    Caller must not feed records of the same client from more than one thread.
    """

    def __init__(self, ledger: LedgerStore):
        self._ledger = ledger

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            APPLIED: Balances and history were updated
            anything else: The reason the transaction was rejected
        """
        account = self._ledger.get_or_create_account(transaction.client_id)

        # Once locked, nothing for this client is applied, including disputes
        # against transactions recorded before the chargeback.
        if account.locked:
            logger.debug(f"{transaction}: account {account.client_id} is locked")
            return ProcessingResult.ACCOUNT_LOCKED

        try:
            match transaction:
                case Deposit():
                    return self._handle_deposit(account, transaction)
                case Withdrawal():
                    return self._handle_withdrawal(account, transaction)
                case Dispute():
                    return self._handle_dispute(account, transaction)
                case Resolve():
                    return self._handle_resolve(account, transaction)
                case Chargeback():
                    return self._handle_chargeback(account, transaction)
                case _:
                    raise TypeError(f"Unsupported transaction record: {transaction!r}")
        except BalanceOverflowError as e:
            logger.warning(f"{transaction}: {e}")
            return ProcessingResult.BALANCE_OVERFLOW

    def _handle_deposit(self, account: ClientAccount, transaction: Deposit) -> ProcessingResult:
        if transaction.amount < 0:
            logger.warning(f"Deposit tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.INVALID_AMOUNT

        if self._ledger.has_history(transaction.transaction_id):
            logger.info(f"Deposit tx {transaction.transaction_id}: transaction id already used, skipping")
            return ProcessingResult.DUPLICATE_TRANSACTION

        # Raises BalanceOverflowError before anything is recorded
        account.check_change(transaction.amount)

        result = self._record(transaction)
        if result is not ProcessingResult.APPLIED:
            return result

        account.credit(transaction.amount)
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, account: ClientAccount, transaction: Withdrawal) -> ProcessingResult:
        if transaction.amount < 0:
            logger.warning(f"Withdrawal tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.INVALID_AMOUNT

        if self._ledger.has_history(transaction.transaction_id):
            logger.info(f"Withdrawal tx {transaction.transaction_id}: transaction id already used, skipping")
            return ProcessingResult.DUPLICATE_TRANSACTION

        if account.available < transaction.amount:
            logger.debug(
                f"Withdrawal tx {transaction.transaction_id}: insufficient funds "
                f"(available {account.available}, requested {transaction.amount})"
            )
            return ProcessingResult.INSUFFICIENT_FUNDS

        account.check_change(-transaction.amount)

        result = self._record(transaction)
        if result is not ProcessingResult.APPLIED:
            return result

        account.debit(transaction.amount)
        return ProcessingResult.APPLIED

    def _handle_dispute(self, account: ClientAccount, transaction: Dispute) -> ProcessingResult:
        entry, result = self._find_owned_entry(transaction)
        if entry is None:
            return result

        if entry.dispute_state not in DISPUTABLE_STATES:
            logger.debug(f"Dispute for tx {transaction.transaction_id}: transaction is {entry.dispute_state.value}")
            return ProcessingResult.INVALID_DISPUTE_STATE

        account.hold(entry.amount)
        entry.dispute_state = DisputeState.DISPUTED
        return ProcessingResult.APPLIED

    def _handle_resolve(self, account: ClientAccount, transaction: Resolve) -> ProcessingResult:
        entry, result = self._find_owned_entry(transaction)
        if entry is None:
            return result

        if entry.dispute_state is not DisputeState.DISPUTED:
            logger.debug(f"Resolve for tx {transaction.transaction_id}: transaction is not disputed")
            return ProcessingResult.INVALID_DISPUTE_STATE

        account.release_hold(entry.amount)
        entry.dispute_state = DisputeState.RESOLVED
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, account: ClientAccount, transaction: Chargeback) -> ProcessingResult:
        entry, result = self._find_owned_entry(transaction)
        if entry is None:
            return result

        if entry.dispute_state is not DisputeState.DISPUTED:
            logger.debug(f"Chargeback for tx {transaction.transaction_id}: transaction is not disputed")
            return ProcessingResult.INVALID_DISPUTE_STATE

        account.remove_held(entry.amount)
        account.lock()
        entry.dispute_state = DisputeState.CHARGED_BACK
        logger.info(f"Chargeback for tx {transaction.transaction_id}: account {account.client_id} locked")
        return ProcessingResult.APPLIED

    def _record(self, transaction: Union[Deposit, Withdrawal]) -> ProcessingResult:
        try:
            self._ledger.record_history(
                transaction.transaction_id,
                transaction.client_id,
                transaction.transaction_type,
                transaction.amount,
            )
        except DuplicateTransactionError:
            logger.info(
                f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: "
                f"transaction id already used, skipping"
            )
            return ProcessingResult.DUPLICATE_TRANSACTION
        return ProcessingResult.APPLIED

    def _find_owned_entry(
        self, transaction: Union[Dispute, Resolve, Chargeback]
    ) -> Tuple[Optional[HistoryEntry], ProcessingResult]:
        """Look up the referenced transaction, which must belong to the same client."""
        name = transaction.transaction_type.value.capitalize()
        entry = self._ledger.find_history(transaction.transaction_id)

        if entry is None:
            logger.debug(f"{name} for tx {transaction.transaction_id}: transaction not found")
            return None, ProcessingResult.UNKNOWN_TRANSACTION

        if entry.client_id != transaction.client_id:
            logger.info(
                f"{name} for tx {transaction.transaction_id}: client mismatch "
                f"(expected {entry.client_id}, got {transaction.client_id})"
            )
            return None, ProcessingResult.CLIENT_MISMATCH

        return entry, ProcessingResult.APPLIED
