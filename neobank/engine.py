"""
Ledger Engine Module

Orchestrates deposits, withdrawals and transfers as atomic units spanning the
account store and the transaction ledger. Every money movement:

1. locks the affected accounts (sorted id order, see locking.py)
2. opens a storage unit of work
3. re-reads the accounts and checks existence, ownership and funds
4. adjusts the balance(s) and records one COMPLETED transaction

Any failure in steps 3-4 rolls back the whole unit, so no partial balance
change or orphan transaction is ever left behind. The engine never retries.
"""

from decimal import Decimal
from datetime import datetime
from contextlib import contextmanager
from typing import List, Optional, Sequence, Tuple

from .accounts import Account, AccountStore, AccountType
from .clock import Clock, SystemClock
from .errors import (
    AccountNotFound, BankingError, InsufficientFunds, SameAccount,
    TransactionNotFound, Unauthorized, ValidationError
)
from .ledger import Transaction, TransactionLedger, TransactionType
from .locking import AccountLockManager
from .logging_config import get_logger, log_action
from .money import MAX_AMOUNT, ZERO, format_amount, positive_amount, to_amount
from .statements import Statement, StatementBuilder
from .storage import StorageInterface


DEFAULT_DEPOSIT_DESCRIPTION = "Account deposit"
DEFAULT_WITHDRAWAL_DESCRIPTION = "Account withdrawal"
TRANSFER_DESCRIPTION_TEMPLATE = "Transfer to account {account_number}"


class LedgerEngine:
    """
    Single entry point for every operation that mutates balances or
    appends to the ledger
    """

    def __init__(
        self,
        storage: StorageInterface,
        accounts: AccountStore,
        ledger: TransactionLedger,
        clock: Optional[Clock] = None,
        locks: Optional[AccountLockManager] = None,
        statements: Optional[StatementBuilder] = None
    ):
        self.storage = storage
        self.accounts = accounts
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.locks = locks or AccountLockManager()
        self.statements = statements or StatementBuilder(accounts, ledger, self.clock)
        self.logger = get_logger("neobank.engine")

    # Money movement

    def deposit(
        self,
        account_id: str,
        amount: Decimal,
        description: Optional[str] = None,
        external_reference: Optional[str] = None
    ) -> Transaction:
        """
        Credit an account from outside the bank

        No ownership check: any accepted request may deposit into any
        active account.

        Raises:
            ValidationError: If amount is not positive, or the new balance
                would exceed MAX_AMOUNT
            AccountNotFound: If the account is missing or closed
        """
        with self._operation("deposit", resource=f"account:{account_id}"):
            amount = positive_amount(amount)
            with self.locks.hold(account_id), self.storage.atomic():
                account = self._require_account(account_id)
                self._require_headroom(account, amount)
                transaction = self.ledger.new_transaction(
                    TransactionType.DEPOSIT,
                    amount,
                    to_account_id=account_id,
                    description=description or DEFAULT_DEPOSIT_DESCRIPTION,
                    external_reference=external_reference
                )
                self._commit(transaction, [(account_id, amount)])

        self._log_completed(transaction)
        return transaction

    def withdraw(
        self,
        account_id: str,
        amount: Decimal,
        requester_id: str,
        description: Optional[str] = None
    ) -> Transaction:
        """
        Debit an account owned by the requester

        Raises:
            ValidationError: If amount is not positive
            AccountNotFound: If the account is missing or closed
            Unauthorized: If requester_id does not own the account
            InsufficientFunds: If amount > balance + credit_limit
        """
        with self._operation("withdraw", requester_id, f"account:{account_id}"):
            amount = positive_amount(amount)
            with self.locks.hold(account_id), self.storage.atomic():
                account = self._require_account(account_id)
                self._require_owner(account, requester_id, "withdraw from")
                self._require_funds(account, amount)

                transaction = self.ledger.new_transaction(
                    TransactionType.WITHDRAWAL,
                    amount,
                    from_account_id=account_id,
                    description=description or DEFAULT_WITHDRAWAL_DESCRIPTION
                )
                self._commit(transaction, [(account_id, -amount)])

        self._log_completed(transaction, requester_id)
        return transaction

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Decimal,
        requester_id: str,
        description: Optional[str] = None
    ) -> Transaction:
        """
        Move money between two accounts in one atomic unit

        Raises:
            ValidationError: If amount is not positive, or the destination balance
                would exceed MAX_AMOUNT
            SameAccount: If source and destination are the same id
            AccountNotFound: If either account is missing or closed
            Unauthorized: If requester_id does not own the source account
            InsufficientFunds: If amount > source balance + credit_limit
        """
        with self._operation("transfer", requester_id, f"account:{from_account_id}"):
            amount = positive_amount(amount)
            if from_account_id == to_account_id:
                raise SameAccount(from_account_id)

            with self.locks.hold(from_account_id, to_account_id), self.storage.atomic():
                source = self._require_account(from_account_id, "Source account not found")
                self._require_owner(source, requester_id, "transfer from")
                destination = self._require_account(to_account_id, "Destination account not found")
                self._require_funds(source, amount)
                self._require_headroom(destination, amount)

                transaction = self.ledger.new_transaction(
                    TransactionType.TRANSFER,
                    amount,
                    from_account_id=from_account_id,
                    to_account_id=to_account_id,
                    description=description or TRANSFER_DESCRIPTION_TEMPLATE.format(
                        account_number=destination.account_number
                    )
                )
                self._commit(transaction, [
                    (from_account_id, -amount),
                    (to_account_id, amount),
                ])

        self._log_completed(transaction, requester_id)
        return transaction

    # Account lifecycle

    def open_account(
        self,
        owner_id: str,
        account_type: AccountType,
        initial_deposit: Decimal = ZERO
    ) -> Account:
        """Open an account, seeding it with an optional initial deposit"""
        with self._operation("open_account", owner_id):
            return self.accounts.open(owner_id, account_type, to_amount(initial_deposit))

    def close_account(self, account_id: str, requester_id: Optional[str] = None) -> Account:
        """
        Close (soft-delete) an account with a zero balance

        When requester_id is given the requester must own the account.

        Raises:
            AccountNotFound: If the account is missing or already closed
            Unauthorized: If requester_id is given and is not the owner
            BalanceNotZero: If the balance is not zero
        """
        with self._operation("close_account", requester_id, f"account:{account_id}"):
            with self.locks.hold(account_id), self.storage.atomic():
                account = self._require_account(account_id)
                if requester_id is not None:
                    self._require_owner(account, requester_id, "close")
                self.accounts.close(account_id)

        return self.accounts.get(account_id, include_inactive=True)

    # Reads

    def get_account(self, account_id: str) -> Account:
        return self._require_account(account_id)

    def get_accounts_by_owner(self, owner_id: str) -> List[Account]:
        return self.accounts.get_by_owner(owner_id)

    def get_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.ledger.find(transaction_id)
        if transaction is None:
            raise TransactionNotFound(transaction_id)
        return transaction

    def get_statement(
        self,
        account_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Statement:
        return self.statements.build_statement(account_id, start, end)

    # Internals

    def _require_account(self, account_id: str, message: Optional[str] = None) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFound(account_id, message)
        return account

    @staticmethod
    def _require_owner(account: Account, requester_id: str, verb: str) -> None:
        if account.owner_id != requester_id:
            raise Unauthorized(f"You are not allowed to {verb} account {account.account_number}")

    @staticmethod
    def _require_funds(account: Account, amount: Decimal) -> None:
        if not account.can_cover(amount):
            raise InsufficientFunds(
                account.id,
                format_amount(account.available_balance),
                format_amount(amount)
            )

    @staticmethod
    def _require_headroom(account: Account, amount: Decimal) -> None:
        if account.balance + amount > MAX_AMOUNT:
            raise ValidationError(
                f"Credit would take account {account.account_number} past the maximum balance of {MAX_AMOUNT}"
            )

    def _commit(self, transaction: Transaction, adjustments: Sequence[Tuple[str, Decimal]]) -> None:
        """Apply balance deltas and record the completed transaction (caller holds the unit)"""
        for account_id, delta in adjustments:
            if not self.accounts.adjust_balance(account_id, delta):
                raise AccountNotFound(account_id)
        transaction.complete(self.clock.now())
        self.ledger.record(transaction)

    @contextmanager
    def _operation(self, action: str, requester_id: Optional[str] = None,
                   resource: Optional[str] = None):
        """Log rejected operations before re-raising"""
        try:
            yield
        except BankingError as e:
            log_action(
                self.logger, "warning", f"{action} rejected: {e.message}",
                user_id=requester_id, action=action, resource=resource,
                extra={"error_kind": e.kind}
            )
            raise

    def _log_completed(self, transaction: Transaction, requester_id: Optional[str] = None) -> None:
        log_action(
            self.logger, "info", f"Transaction completed: {transaction.transaction_type.value}",
            user_id=requester_id, action=transaction.transaction_type.value,
            resource=f"transaction:{transaction.id}",
            extra={
                "amount": str(transaction.amount),
                "from_account": transaction.from_account_id,
                "to_account": transaction.to_account_id
            }
        )
