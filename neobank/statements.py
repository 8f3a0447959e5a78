"""
Statement Builder

Read-only projection of an account: its live balance plus the ledger
entries touching it within a date window.
"""

from decimal import Decimal
from datetime import datetime, timedelta
from dataclasses import dataclass, field
from typing import List, Optional

from .accounts import AccountStore
from .clock import Clock, SystemClock, as_utc
from .errors import AccountNotFound, ValidationError
from .ledger import Transaction, TransactionLedger


DEFAULT_STATEMENT_DAYS = 30


@dataclass
class Statement:
    """Account statement for a period"""
    account_id: str
    account_number: str
    current_balance: Decimal
    period_start: datetime
    period_end: datetime
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def total_credits(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions
             if t.is_completed and t.to_account_id == self.account_id),
            Decimal('0.00')
        )

    @property
    def total_debits(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions
             if t.is_completed and t.from_account_id == self.account_id),
            Decimal('0.00')
        )


class StatementBuilder:
    """Builds statements; never writes"""

    def __init__(
        self,
        accounts: AccountStore,
        ledger: TransactionLedger,
        clock: Optional[Clock] = None,
        default_days: int = DEFAULT_STATEMENT_DAYS
    ):
        self.accounts = accounts
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.default_days = default_days

    def build_statement(
        self,
        account_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Statement:
        """
        Build a statement for an active account

        Args:
            account_id: Account ID
            start: Inclusive lower bound (default: now minus default_days)
            end: Inclusive upper bound (default: now)

        Raises:
            AccountNotFound: If the account is missing or closed
            ValidationError: If start is after end
        """
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFound(account_id)

        now = self.clock.now()
        end = as_utc(end) if end else now
        start = as_utc(start) if start else now - timedelta(days=self.default_days)

        if start > end:
            raise ValidationError("Statement start date must not be after end date")

        return Statement(
            account_id=account.id,
            account_number=account.account_number,
            current_balance=account.balance,
            period_start=start,
            period_end=end,
            transactions=self.ledger.list_for_account(account.id, start, end)
        )
