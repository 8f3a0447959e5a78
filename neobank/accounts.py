"""
Account Store Module

Holds account records and their balances. Balances live on the account row
and change only through adjust_balance(), which the ledger engine calls
inside its atomic units. Closed accounts are soft-deleted (is_active=False)
and become invisible to every lookup used for money movement.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from enum import Enum
import re
import secrets
import uuid

from .clock import Clock, SystemClock
from .errors import BalanceNotZero, DuplicateIdentity, ValidationError
from .ledger import TransactionLedger, TransactionType
from .logging_config import get_logger, log_action
from .money import ZERO, format_amount, to_amount
from .storage import StorageInterface, StorageRecord


ACCOUNT_NUMBER_PATTERN = re.compile(r'^\d{8}$')
DEFAULT_CHECKING_CREDIT_LIMIT = Decimal('500.00')
DEFAULT_AGENCY = "0001"
INITIAL_DEPOSIT_DESCRIPTION = "Initial deposit"


class AccountType(Enum):
    """Banking product types"""
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"


@dataclass
class Account(StorageRecord):
    """
    Bank account with a stored balance and an overdraft (credit) limit
    """
    account_number: str
    owner_id: str
    account_type: AccountType
    balance: Decimal = ZERO
    credit_limit: Decimal = ZERO
    agency: str = DEFAULT_AGENCY
    is_active: bool = True
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not ACCOUNT_NUMBER_PATTERN.match(self.account_number):
            raise ValidationError(f"Account number must be 8 digits, got '{self.account_number}'")

        self.balance = to_amount(self.balance)
        self.credit_limit = to_amount(self.credit_limit)

        if self.credit_limit < ZERO:
            raise ValidationError("Credit limit cannot be negative")

    @property
    def available_balance(self) -> Decimal:
        """balance + credit_limit: the most that can be debited"""
        return self.balance + self.credit_limit

    def can_cover(self, amount: Decimal) -> bool:
        return amount <= self.available_balance

    @classmethod
    def from_dict(cls, data: Dict) -> 'Account':
        return cls(
            id=data['id'],
            created_at=cls.parse_datetime(data['created_at']),
            account_number=data['account_number'],
            owner_id=data['owner_id'],
            account_type=AccountType(data['account_type']),
            balance=Decimal(data['balance']),
            credit_limit=Decimal(data['credit_limit']),
            agency=data.get('agency', DEFAULT_AGENCY),
            is_active=data.get('is_active', True),
            updated_at=cls.parse_datetime(data.get('updated_at'))
        )


class AccountStore:
    """
    Manages account lifecycle and the balance-adjustment primitive
    """

    def __init__(
        self,
        storage: StorageInterface,
        ledger: TransactionLedger,
        clock: Optional[Clock] = None,
        checking_credit_limit: Decimal = DEFAULT_CHECKING_CREDIT_LIMIT,
        agency: str = DEFAULT_AGENCY,
        max_number_attempts: int = 20,
        number_generator: Optional[Callable[[], str]] = None
    ):
        self.storage = storage
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.checking_credit_limit = to_amount(checking_credit_limit)
        self.agency = agency
        self.max_number_attempts = max_number_attempts
        self._number_generator = number_generator or self._random_account_number
        self.table_name = "accounts"
        self.logger = get_logger("neobank.accounts")

    def get(self, account_id: str, include_inactive: bool = False) -> Optional[Account]:
        """Get account by ID; closed accounts are hidden unless include_inactive"""
        data = self.storage.load(self.table_name, account_id)
        if not data:
            return None
        account = Account.from_dict(data)
        if not account.is_active and not include_inactive:
            return None
        return account

    def get_by_number(self, account_number: str) -> Optional[Account]:
        """Get active account by account number"""
        rows = self.storage.find(self.table_name, {"account_number": account_number, "is_active": True})
        if rows:
            return Account.from_dict(rows[0])
        return None

    def get_by_owner(self, owner_id: str) -> List[Account]:
        """Active accounts of a user, oldest first"""
        rows = self.storage.find(self.table_name, {"owner_id": owner_id, "is_active": True})
        accounts = [Account.from_dict(data) for data in rows]
        accounts.sort(key=lambda a: a.created_at)
        return accounts

    def open(
        self,
        owner_id: str,
        account_type: AccountType,
        initial_deposit: Decimal = ZERO
    ) -> Account:
        """
        Open a new account

        Args:
            owner_id: ID of the owning user
            account_type: Type of banking product
            initial_deposit: Opening balance (>= 0). When positive a completed
                deposit transaction is recorded in the same atomic unit.

        Returns:
            Created Account

        Raises:
            ValidationError: If initial_deposit is negative
            DuplicateIdentity: If no free account number was found
        """
        initial_deposit = to_amount(initial_deposit)
        if initial_deposit < ZERO:
            raise ValidationError("Initial deposit cannot be negative")

        credit_limit = self.checking_credit_limit if account_type == AccountType.CHECKING else ZERO

        with self.storage.atomic():
            now = self.clock.now()
            account = Account(
                id=str(uuid.uuid4()),
                created_at=now,
                account_number=self._allocate_account_number(),
                owner_id=owner_id,
                account_type=account_type,
                balance=initial_deposit,
                credit_limit=credit_limit,
                agency=self.agency
            )
            self._save(account)

            if initial_deposit > ZERO:
                deposit = self.ledger.new_transaction(
                    TransactionType.DEPOSIT,
                    initial_deposit,
                    to_account_id=account.id,
                    description=INITIAL_DEPOSIT_DESCRIPTION
                )
                deposit.complete(now)
                self.ledger.record(deposit)

        log_action(
            self.logger, "info", f"Account opened: {account.account_number}",
            user_id=owner_id, action="open_account", resource=f"account:{account.id}",
            extra={
                "account_type": account_type.value,
                "initial_deposit": str(initial_deposit),
                "credit_limit": str(credit_limit)
            }
        )
        return account

    def adjust_balance(self, account_id: str, delta: Decimal) -> bool:
        """
        Add delta (positive or negative) to the balance

        Returns False when the account is missing or inactive; callers must
        check. Does not enforce the credit limit, the engine does that before
        calling.
        """
        account = self.get(account_id)
        if account is None:
            return False

        account.balance = to_amount(account.balance + to_amount(delta))
        account.updated_at = self.clock.now()
        self._save(account)
        return True

    def close(self, account_id: str) -> bool:
        """
        Deactivate an account

        Returns:
            False if the account does not exist or is already closed

        Raises:
            BalanceNotZero: If the balance is not exactly zero
        """
        account = self.get(account_id)
        if account is None:
            return False

        if account.balance != ZERO:
            raise BalanceNotZero(account_id, format_amount(account.balance))

        account.is_active = False
        account.updated_at = self.clock.now()
        self._save(account)

        log_action(
            self.logger, "info", f"Account closed: {account.account_number}",
            user_id=account.owner_id, action="close_account", resource=f"account:{account.id}"
        )
        return True

    def _allocate_account_number(self) -> str:
        """Generate candidates until one is unused, up to max_number_attempts"""
        for _ in range(self.max_number_attempts):
            candidate = self._number_generator()
            if not self.storage.find(self.table_name, {"account_number": candidate}):
                return candidate
        raise DuplicateIdentity(
            f"Could not allocate a unique account number after {self.max_number_attempts} attempts"
        )

    @staticmethod
    def _random_account_number() -> str:
        return str(10_000_000 + secrets.randbelow(90_000_000))

    def _save(self, account: Account) -> None:
        self.storage.save(self.table_name, account.id, account.to_dict())
