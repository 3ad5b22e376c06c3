import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from exceptions import DuplicateTransactionError
from ledger import LedgerStore
from models import DisputeState, TransactionType


class TestLedgerStore:
    def setup_method(self):
        self.ledger = LedgerStore()

    def test_get_or_create_account_creates_zeroed(self):
        account = self.ledger.get_or_create_account(5)
        assert account.client_id == 5
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.locked is False

    def test_get_or_create_account_returns_same_account(self):
        first = self.ledger.get_or_create_account(1)
        first.credit(Decimal("10"))
        assert self.ledger.get_or_create_account(1) is first
        assert len(self.ledger) == 1

    def test_record_and_find_history(self):
        self.ledger.record_history(1, 2, TransactionType.DEPOSIT, Decimal("3.5"))

        entry = self.ledger.find_history(1)
        assert entry is not None
        assert entry.client_id == 2
        assert entry.amount == Decimal("3.5")
        assert entry.transaction_type == TransactionType.DEPOSIT
        assert entry.dispute_state == DisputeState.NORMAL

    def test_find_unknown_history(self):
        assert self.ledger.find_history(42) is None
        assert not self.ledger.has_history(42)

    def test_duplicate_history_raises(self):
        self.ledger.record_history(1, 1, TransactionType.DEPOSIT, Decimal("1"))
        with pytest.raises(DuplicateTransactionError) as exc_info:
            self.ledger.record_history(1, 2, TransactionType.WITHDRAWAL, Decimal("9"))

        assert exc_info.value.transaction_id == 1
        # First entry is untouched
        assert self.ledger.find_history(1).client_id == 1

    def test_snapshot_all_in_discovery_order(self):
        for client_id in (3, 1, 2):
            self.ledger.get_or_create_account(client_id)
        self.ledger.get_or_create_account(1).credit(Decimal("4"))

        snapshots = self.ledger.snapshot_all()
        assert [s.client_id for s in snapshots] == [3, 1, 2]
        assert snapshots[1].available == Decimal("4")
        assert snapshots[1].total == Decimal("4")

    def test_separate_stores_are_independent(self):
        other = LedgerStore()
        self.ledger.get_or_create_account(1).credit(Decimal("10"))
        self.ledger.record_history(1, 1, TransactionType.DEPOSIT, Decimal("10"))

        assert other.snapshot_all() == []
        assert other.find_history(1) is None
