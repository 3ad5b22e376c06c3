"""
CSV boundary of the engine.

Reading turns rows of ``type, client, tx, amount`` into transaction records,
dropping malformed rows with a warning. Writing renders account snapshots as
``client,available,held,total,locked`` with a fixed number of decimal places.
"""
import csv
import logging
from decimal import ROUND_HALF_EVEN, Context, Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, Mapping, Optional, TextIO

from exceptions import TransactionParseError
from models import (
    DECIMAL_PLACES,
    LEDGER_PRECISION,
    AccountSnapshot,
    Chargeback,
    Deposit,
    Dispute,
    Resolve,
    Transaction,
    TransactionType,
    Withdrawal,
)

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

OUTPUT_HEADER = ["client", "available", "held", "total", "locked"]

_QUANTUM = Decimal(1).scaleb(-DECIMAL_PLACES)

# Rounds input amounts to the quantum but refuses ones with more digits than a balance keeps.
_AMOUNT_CONTEXT = Context(prec=LEDGER_PRECISION)


def _parse_id(value: str, field: str, upper_bound: int) -> int:
    if not (value.isascii() and value.isdigit()):
        raise TransactionParseError(f"{field} is not an unsigned integer: {value!r}")
    parsed = int(value)
    if parsed > upper_bound:
        raise TransactionParseError(f"{field} out of range: {parsed}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    if not value:
        raise TransactionParseError("amount is required")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise TransactionParseError(f"amount is not a number: {value!r}")
    if not amount.is_finite():
        raise TransactionParseError(f"amount is not finite: {value!r}")
    if amount < 0:
        raise TransactionParseError(f"amount is negative: {value!r}")
    try:
        return amount.quantize(_QUANTUM, rounding=ROUND_HALF_EVEN, context=_AMOUNT_CONTEXT)
    except InvalidOperation:
        raise TransactionParseError(f"amount is too large: {value!r}")


def parse_transaction(row: Mapping[Optional[str], Optional[str]]) -> Transaction:
    """Parse CSV row into a transaction record, raising TransactionParseError if it is malformed."""
    normalized: Dict[str, str] = {
        key.strip().lower(): (value or "").strip()
        for key, value in row.items()
        if isinstance(key, str)
    }

    try:
        transaction_type = TransactionType(normalized.get("type", "").lower())
    except ValueError:
        raise TransactionParseError(f"unknown transaction type: {normalized.get('type')!r}", row)

    try:
        client_id = _parse_id(normalized.get("client", ""), "client", MAX_CLIENT_ID)
        transaction_id = _parse_id(normalized.get("tx", ""), "tx", MAX_TRANSACTION_ID)

        match transaction_type:
            case TransactionType.DEPOSIT:
                return Deposit(client_id, transaction_id, _parse_amount(normalized.get("amount", "")))
            case TransactionType.WITHDRAWAL:
                return Withdrawal(client_id, transaction_id, _parse_amount(normalized.get("amount", "")))
            case TransactionType.DISPUTE:
                return Dispute(client_id, transaction_id)
            case TransactionType.RESOLVE:
                return Resolve(client_id, transaction_id)
            case TransactionType.CHARGEBACK:
                return Chargeback(client_id, transaction_id)
    except TransactionParseError as e:
        raise TransactionParseError(e.reason, row)

    raise TransactionParseError(f"unhandled transaction type: {transaction_type}", row)


class TransactionReader:
    """
    Lazily yields transaction records from a CSV text stream, in file order.
    Malformed rows are logged, counted in ``rows_skipped`` and dropped.
    """

    def __init__(self, stream: TextIO):
        self._stream = stream
        self.rows_skipped = 0

    def __iter__(self) -> Iterator[Transaction]:
        reader = csv.DictReader(self._stream, skipinitialspace=True)
        for row in reader:
            try:
                yield parse_transaction(row)
            except TransactionParseError as e:
                self.rows_skipped += 1
                logger.warning(f"Skipping line {reader.line_num}: {e.reason} ({dict(e.row or row)})")


def format_amount(value: Decimal, precision: int = DECIMAL_PLACES) -> str:
    """Render a decimal with exactly ``precision`` fractional digits."""
    # Integer digits, the fractional digits asked for, and one more for a rounding carry
    context = Context(prec=max(value.adjusted(), 0) + precision + 2)
    quantized = value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_EVEN, context=context)
    if quantized.is_zero():
        quantized = abs(quantized)
    return f"{quantized:f}"


def write_accounts(accounts: Iterable[AccountSnapshot], stream: TextIO, precision: int = DECIMAL_PLACES) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for account in accounts:
        writer.writerow([
            account.client_id,
            format_amount(account.available, precision),
            format_amount(account.held, precision),
            format_amount(account.total, precision),
            str(account.locked).lower(),
        ])
