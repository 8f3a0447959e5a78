"""
Banking Errors

Typed error taxonomy raised by the ledger core. Every error is a
ValueError so callers that only catch ValueError keep working; the
`kind` attribute is what the HTTP boundary maps to a status code.
"""


class BankingError(ValueError):
    """Base class for all ledger-core errors"""

    kind = "banking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BankingError):
    """Invalid input (non-positive amount, malformed CPF, bad date range...)"""
    kind = "validation_error"


class AccountNotFound(BankingError):
    """Account id does not resolve to an active account"""
    kind = "account_not_found"

    def __init__(self, account_id: str, message: str = None):
        super().__init__(message or f"Account {account_id} not found")
        self.account_id = account_id


class TransactionNotFound(BankingError):
    kind = "transaction_not_found"

    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction {transaction_id} not found")
        self.transaction_id = transaction_id


class UserNotFound(BankingError):
    kind = "user_not_found"

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class Unauthorized(BankingError):
    """Caller does not own the account being debited"""
    kind = "unauthorized"


class InvalidCredentials(BankingError):
    """Bad login or an invalid/expired bearer token"""
    kind = "invalid_credentials"


class InsufficientFunds(BankingError):
    """Requested amount exceeds balance + credit limit"""
    kind = "insufficient_funds"

    def __init__(self, account_id: str, available, requested):
        super().__init__(
            f"Insufficient funds: available {available}, requested {requested}"
        )
        self.account_id = account_id
        self.available = available
        self.requested = requested


class SameAccount(BankingError):
    kind = "same_account"

    def __init__(self, account_id: str):
        super().__init__("Source and destination accounts must differ")
        self.account_id = account_id


class BalanceNotZero(BankingError):
    """Closing an account that still holds (or owes) money"""
    kind = "balance_not_zero"

    def __init__(self, account_id: str, balance):
        super().__init__(f"Cannot close account with non-zero balance: {balance}")
        self.account_id = account_id
        self.balance = balance


class DuplicateIdentity(BankingError):
    """Unique constraint collision (email, CPF, account number)"""
    kind = "duplicate_identity"
