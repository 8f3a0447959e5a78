"""
Transaction Ledger Module

Append-only log of monetary movements. Each entry references zero, one or
two accounts (debit side = from_account_id, credit side = to_account_id)
and carries a lifecycle status. Entries are never updated once Completed
and never deleted.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import uuid

from .clock import Clock, SystemClock, as_utc
from .errors import ValidationError
from .money import ZERO, to_amount
from .storage import StorageInterface, StorageRecord


MAX_DESCRIPTION_LENGTH = 250
MAX_REFERENCE_LENGTH = 100


class TransactionType(Enum):
    """Types of monetary movements"""
    DEPOSIT = "deposit"          # External money into an account
    WITHDRAWAL = "withdrawal"    # Money out of an account to outside
    TRANSFER = "transfer"        # Between two internal accounts
    PAYMENT = "payment"          # Bill payment
    PIX_IN = "pix_in"            # Instant payment received
    PIX_OUT = "pix_out"          # Instant payment sent


class TransactionStatus(Enum):
    """
    Lifecycle of a transaction.

    Only PENDING -> COMPLETED is used by the synchronous engine; FAILED and
    CANCELLED are reserved for asynchronous flows.
    """
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Which sides each type must (True) or must not (False) reference.
_REQUIRED_SIDES = {
    TransactionType.DEPOSIT: (False, True),
    TransactionType.WITHDRAWAL: (True, False),
    TransactionType.TRANSFER: (True, True),
}


@dataclass
class Transaction(StorageRecord):
    """
    A single monetary movement
    """
    transaction_type: TransactionType
    amount: Decimal
    from_account_id: Optional[str] = None   # Debited account
    to_account_id: Optional[str] = None     # Credited account
    description: Optional[str] = None
    status: TransactionStatus = TransactionStatus.PENDING
    processed_at: Optional[datetime] = None
    external_reference: Optional[str] = None

    def __post_init__(self):
        self.amount = to_amount(self.amount)
        if self.amount <= ZERO:
            raise ValidationError("Transaction amount must be positive")

        required = _REQUIRED_SIDES.get(self.transaction_type)
        if required:
            needs_from, needs_to = required
            if bool(self.from_account_id) != needs_from:
                raise ValidationError(
                    f"{self.transaction_type.value} must "
                    f"{'have' if needs_from else 'not have'} a source account"
                )
            if bool(self.to_account_id) != needs_to:
                raise ValidationError(
                    f"{self.transaction_type.value} must "
                    f"{'have' if needs_to else 'not have'} a destination account"
                )

        if (self.from_account_id and self.to_account_id
                and self.from_account_id == self.to_account_id):
            raise ValidationError("Source and destination accounts must differ")

        if self.description and len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(f"Description longer than {MAX_DESCRIPTION_LENGTH} characters")

        if self.external_reference and len(self.external_reference) > MAX_REFERENCE_LENGTH:
            raise ValidationError(f"External reference longer than {MAX_REFERENCE_LENGTH} characters")

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    def involves(self, account_id: str) -> bool:
        return account_id in (self.from_account_id, self.to_account_id)

    def signed_amount_for(self, account_id: str) -> Decimal:
        """Amount as seen by one account: positive credit, negative debit"""
        if self.to_account_id == account_id:
            return self.amount
        if self.from_account_id == account_id:
            return -self.amount
        return ZERO

    def complete(self, processed_at: datetime) -> None:
        """Move a pending transaction to COMPLETED"""
        if not self.is_pending:
            raise ValidationError(
                f"Transaction {self.id} is {self.status.value}, only pending transactions can complete"
            )
        self.status = TransactionStatus.COMPLETED
        self.processed_at = processed_at

    @classmethod
    def from_dict(cls, data: Dict) -> 'Transaction':
        return cls(
            id=data['id'],
            created_at=cls.parse_datetime(data['created_at']),
            transaction_type=TransactionType(data['transaction_type']),
            amount=Decimal(data['amount']),
            from_account_id=data.get('from_account_id'),
            to_account_id=data.get('to_account_id'),
            description=data.get('description'),
            status=TransactionStatus(data['status']),
            processed_at=cls.parse_datetime(data.get('processed_at')),
            external_reference=data.get('external_reference')
        )


class TransactionLedger:
    """
    Append-only store of Transaction entries
    """

    def __init__(self, storage: StorageInterface, clock: Optional[Clock] = None):
        self.storage = storage
        self.clock = clock or SystemClock()
        self.table_name = "transactions"

    def new_transaction(
        self,
        transaction_type: TransactionType,
        amount: Decimal,
        from_account_id: Optional[str] = None,
        to_account_id: Optional[str] = None,
        description: Optional[str] = None,
        external_reference: Optional[str] = None
    ) -> Transaction:
        """Build a PENDING transaction stamped with the ledger clock (not stored)"""
        return Transaction(
            id=str(uuid.uuid4()),
            created_at=self.clock.now(),
            transaction_type=transaction_type,
            amount=amount,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            description=description,
            external_reference=external_reference
        )

    def record(self, transaction: Transaction) -> Transaction:
        """
        Append a transaction to the ledger

        Raises:
            ValidationError: If an entry with the same id was already recorded
        """
        if self.storage.exists(self.table_name, transaction.id):
            raise ValidationError(
                f"Transaction {transaction.id} already recorded; ledger entries are immutable"
            )
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())
        return transaction

    def find(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID"""
        data = self.storage.load(self.table_name, transaction_id)
        if data:
            return Transaction.from_dict(data)
        return None

    def list_for_account(
        self,
        account_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[Transaction]:
        """
        Get transactions where the account is either side

        Args:
            account_id: Account ID
            start: Optional inclusive lower bound on created_at (naive = UTC)
            end: Optional inclusive upper bound on created_at (naive = UTC)

        Returns:
            Transactions ordered by created_at, most recent first
        """
        rows: Dict[str, Dict] = {}
        for side in ("from_account_id", "to_account_id"):
            for data in self.storage.find(self.table_name, {side: account_id}):
                rows[data['id']] = data

        transactions = [Transaction.from_dict(data) for data in rows.values()]

        if start:
            start = as_utc(start)
            transactions = [t for t in transactions if t.created_at >= start]
        if end:
            end = as_utc(end)
            transactions = [t for t in transactions if t.created_at <= end]

        transactions.sort(key=lambda t: t.created_at, reverse=True)
        return transactions

    def net_flow(self, account_id: str) -> Decimal:
        """Sum of completed credits minus completed debits for an account"""
        total = ZERO
        for transaction in self.list_for_account(account_id):
            if transaction.is_completed:
                total += transaction.signed_amount_for(account_id)
        return total
