import threading
from collections import Counter
from dataclasses import dataclass
from decimal import (
    ROUND_HALF_EVEN,
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
)
from enum import Enum
from typing import ClassVar, Dict, Tuple, Union

from exceptions import BalanceOverflowError

# Amounts are carried with four fractional digits, both on input and output.
DECIMAL_PLACES = 4

# Significant digits a balance may hold. Any arithmetic that would need rounding
# to fit raises instead, so balances are always exact.
LEDGER_PRECISION = 28

LEDGER_CONTEXT = Context(
    prec=LEDGER_PRECISION,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow, Inexact],
)

ZERO = Decimal("0")


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DisputeState(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    APPLIED = "applied"
    ACCOUNT_LOCKED = "account_locked"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    CLIENT_MISMATCH = "client_mismatch"
    INVALID_DISPUTE_STATE = "invalid_dispute_state"
    BALANCE_OVERFLOW = "balance_overflow"

    @property
    def applied(self) -> bool:
        return self is ProcessingResult.APPLIED


@dataclass(frozen=True)
class Deposit:
    client_id: int
    transaction_id: int
    amount: Decimal

    transaction_type: ClassVar[TransactionType] = TransactionType.DEPOSIT


@dataclass(frozen=True)
class Withdrawal:
    client_id: int
    transaction_id: int
    amount: Decimal

    transaction_type: ClassVar[TransactionType] = TransactionType.WITHDRAWAL


@dataclass(frozen=True)
class Dispute:
    client_id: int
    transaction_id: int

    transaction_type: ClassVar[TransactionType] = TransactionType.DISPUTE


@dataclass(frozen=True)
class Resolve:
    client_id: int
    transaction_id: int

    transaction_type: ClassVar[TransactionType] = TransactionType.RESOLVE


@dataclass(frozen=True)
class Chargeback:
    client_id: int
    transaction_id: int

    transaction_type: ClassVar[TransactionType] = TransactionType.CHARGEBACK


Transaction = Union[Deposit, Withdrawal, Dispute, Resolve, Chargeback]


@dataclass
class HistoryEntry:
    """An accepted deposit or withdrawal, kept for later dispute lookups."""

    transaction_id: int
    client_id: int
    transaction_type: TransactionType
    amount: Decimal
    dispute_state: DisputeState = DisputeState.NORMAL


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return LEDGER_CONTEXT.add(self.available, self.held)

    def check_change(self, available_delta: Decimal, held_delta: Decimal = ZERO) -> Tuple[Decimal, Decimal]:
        """
        Return the balances after a change without applying it.

        Raises:
            BalanceOverflowError: available, held or total would need rounding.
        """
        try:
            available = LEDGER_CONTEXT.add(self.available, available_delta)
            held = LEDGER_CONTEXT.add(self.held, held_delta)
            LEDGER_CONTEXT.add(available, held)
        except (Inexact, Overflow):
            raise BalanceOverflowError(self.client_id)
        return available, held

    def _change(self, available_delta: Decimal, held_delta: Decimal = ZERO) -> None:
        self.available, self.held = self.check_change(available_delta, held_delta)

    def credit(self, amount: Decimal) -> None:
        self._change(amount)

    def debit(self, amount: Decimal) -> None:
        self._change(LEDGER_CONTEXT.minus(amount))

    def hold(self, amount: Decimal) -> None:
        self._change(LEDGER_CONTEXT.minus(amount), amount)

    def release_hold(self, amount: Decimal) -> None:
        self._change(amount, LEDGER_CONTEXT.minus(amount))

    def remove_held(self, amount: Decimal) -> None:
        self._change(ZERO, LEDGER_CONTEXT.minus(amount))

    def lock(self) -> None:
        self.locked = True

    def snapshot(self) -> "AccountSnapshot":
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


class ProcessingStats:
    """Thread-safe counters for tracking processing statistics."""

    def __init__(self):
        self._lock = threading.Lock()
        self._results: Counter = Counter()
        self.rows_skipped = 0

    def record_result(self, result: ProcessingResult) -> None:
        with self._lock:
            self._results[result] += 1

    def record_skipped(self, count: int = 1) -> None:
        with self._lock:
            self.rows_skipped += count

    @property
    def applied(self) -> int:
        with self._lock:
            return self._results[ProcessingResult.APPLIED]

    @property
    def rejected(self) -> int:
        return sum(self.rejections().values())

    def rejections(self) -> Dict[ProcessingResult, int]:
        with self._lock:
            return {result: count for result, count in self._results.items() if not result.applied}
