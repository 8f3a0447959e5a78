"""
Tests for the transaction ledger

Covers per-type validation, the pending -> completed lifecycle, immutability
of recorded entries and the per-account history queries.
"""

import pytest
from decimal import Decimal
from datetime import timedelta

from neobank.clock import FixedClock
from neobank.errors import ValidationError
from neobank.ledger import (
    Transaction, TransactionLedger, TransactionStatus, TransactionType
)
from neobank.storage import InMemoryStorage


class TestTransaction:
    """Test Transaction validation"""

    def setup_method(self):
        self.clock = FixedClock()

    def make(self, **kwargs):
        defaults = dict(
            id="TXN001",
            created_at=self.clock.now(),
            transaction_type=TransactionType.TRANSFER,
            amount=Decimal("10.00"),
            from_account_id="A",
            to_account_id="B",
        )
        defaults.update(kwargs)
        return Transaction(**defaults)

    def test_valid_transfer(self):
        txn = self.make()
        assert txn.status == TransactionStatus.PENDING
        assert txn.is_pending
        assert txn.involves("A") and txn.involves("B")
        assert not txn.involves("C")

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError, match="must be positive"):
            self.make(amount=Decimal("0"))
        with pytest.raises(ValidationError, match="must be positive"):
            self.make(amount=Decimal("-1.00"))

    def test_deposit_sides(self):
        self.make(transaction_type=TransactionType.DEPOSIT, from_account_id=None)
        with pytest.raises(ValidationError, match="source account"):
            self.make(transaction_type=TransactionType.DEPOSIT)

    def test_withdrawal_sides(self):
        self.make(transaction_type=TransactionType.WITHDRAWAL, to_account_id=None)
        with pytest.raises(ValidationError, match="destination account"):
            self.make(transaction_type=TransactionType.WITHDRAWAL, from_account_id="A")

    def test_transfer_needs_distinct_sides(self):
        with pytest.raises(ValidationError, match="destination account"):
            self.make(to_account_id=None)
        with pytest.raises(ValidationError, match="must differ"):
            self.make(to_account_id="A")

    def test_description_and_reference_lengths(self):
        self.make(description="x" * 250, external_reference="r" * 100)
        with pytest.raises(ValidationError, match="Description"):
            self.make(description="x" * 251)
        with pytest.raises(ValidationError, match="External reference"):
            self.make(external_reference="r" * 101)

    def test_signed_amount(self):
        txn = self.make()
        assert txn.signed_amount_for("A") == Decimal("-10.00")
        assert txn.signed_amount_for("B") == Decimal("10.00")
        assert txn.signed_amount_for("C") == Decimal("0.00")

    def test_complete_only_from_pending(self):
        txn = self.make()
        txn.complete(self.clock.now())
        assert txn.is_completed
        assert txn.processed_at == self.clock.now()

        with pytest.raises(ValidationError, match="only pending"):
            txn.complete(self.clock.now())

    def test_round_trip_through_dict(self):
        txn = self.make(description="rent", external_reference="REF-1")
        txn.complete(self.clock.now())
        assert Transaction.from_dict(txn.to_dict()) == txn


class TestTransactionLedger:
    """Test ledger recording and queries"""

    def setup_method(self):
        self.clock = FixedClock()
        self.storage = InMemoryStorage()
        self.ledger = TransactionLedger(self.storage, self.clock)

    def record(self, transaction_type, amount, from_id=None, to_id=None):
        txn = self.ledger.new_transaction(
            transaction_type, Decimal(amount), from_account_id=from_id, to_account_id=to_id
        )
        txn.complete(self.clock.now())
        self.ledger.record(txn)
        self.clock.advance(minutes=1)
        return txn

    def test_new_transaction_is_pending_and_unsaved(self):
        txn = self.ledger.new_transaction(TransactionType.DEPOSIT, Decimal("5"), to_account_id="A")
        assert txn.is_pending
        assert txn.created_at == self.clock.now()
        assert self.ledger.find(txn.id) is None

    def test_record_and_find(self):
        txn = self.record(TransactionType.DEPOSIT, "50.00", to_id="A")
        found = self.ledger.find(txn.id)
        assert found == txn
        assert found.amount == Decimal("50.00")

    def test_recorded_entries_are_immutable(self):
        txn = self.record(TransactionType.DEPOSIT, "50.00", to_id="A")
        with pytest.raises(ValidationError, match="already recorded"):
            self.ledger.record(txn)

    def test_list_for_account_both_sides_newest_first(self):
        first = self.record(TransactionType.DEPOSIT, "100.00", to_id="A")
        second = self.record(TransactionType.TRANSFER, "30.00", from_id="A", to_id="B")
        third = self.record(TransactionType.TRANSFER, "5.00", from_id="B", to_id="A")
        self.record(TransactionType.DEPOSIT, "1.00", to_id="B")

        history = self.ledger.list_for_account("A")
        assert [t.id for t in history] == [third.id, second.id, first.id]

    def test_list_for_account_bounds_are_inclusive(self):
        first = self.record(TransactionType.DEPOSIT, "1.00", to_id="A")
        second = self.record(TransactionType.DEPOSIT, "2.00", to_id="A")
        third = self.record(TransactionType.DEPOSIT, "3.00", to_id="A")

        window = self.ledger.list_for_account("A", start=second.created_at, end=third.created_at)
        assert [t.id for t in window] == [third.id, second.id]

        before = self.ledger.list_for_account("A", end=first.created_at)
        assert [t.id for t in before] == [first.id]

        empty = self.ledger.list_for_account(
            "A", start=third.created_at + timedelta(seconds=1)
        )
        assert empty == []

    def test_list_for_account_accepts_naive_bounds_as_utc(self):
        self.record(TransactionType.DEPOSIT, "1.00", to_id="A")
        second = self.record(TransactionType.DEPOSIT, "2.00", to_id="A")
        third = self.record(TransactionType.DEPOSIT, "3.00", to_id="A")

        window = self.ledger.list_for_account(
            "A",
            start=second.created_at.replace(tzinfo=None),
            end=third.created_at.replace(tzinfo=None)
        )
        assert [t.id for t in window] == [third.id, second.id]

    def test_net_flow(self):
        self.record(TransactionType.DEPOSIT, "100.00", to_id="A")
        self.record(TransactionType.WITHDRAWAL, "30.00", from_id="A")
        self.record(TransactionType.TRANSFER, "20.00", from_id="A", to_id="B")
        self.record(TransactionType.TRANSFER, "5.00", from_id="B", to_id="A")

        assert self.ledger.net_flow("A") == Decimal("55.00")
        assert self.ledger.net_flow("B") == Decimal("15.00")
        assert self.ledger.net_flow("C") == Decimal("0.00")
