"""
Pydantic schemas for API requests and responses

Monetary amounts travel as decimal strings in both directions.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from ..accounts import Account, AccountType
from ..auth import IssuedToken
from ..ledger import Transaction
from ..statements import Statement
from ..users import User


# Auth / user schemas
class RegisterRequest(BaseModel):
    full_name: str
    cpf: str = Field(..., description="11 digits, punctuation allowed")
    email: str
    password: str
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateUserRequest(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    full_name: str
    cpf: str
    email: str
    phone: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> 'UserResponse':
        return cls(
            id=user.id,
            full_name=user.full_name,
            cpf=user.cpf,
            email=user.email,
            phone=user.phone,
            created_at=user.created_at
        )


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse

    @classmethod
    def build(cls, issued: IssuedToken, user: User) -> 'TokenResponse':
        return cls(
            access_token=issued.token,
            expires_at=issued.expires_at,
            user=UserResponse.from_user(user)
        )


# Account schemas
class CreateAccountRequest(BaseModel):
    account_type: AccountType
    initial_deposit: str = Field("0.00", description="Decimal amount as string")


class AccountResponse(BaseModel):
    id: str
    account_number: str
    agency: str
    account_type: str
    balance: str
    credit_limit: str
    available_balance: str
    is_active: bool
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> 'AccountResponse':
        return cls(
            id=account.id,
            account_number=account.account_number,
            agency=account.agency,
            account_type=account.account_type.value,
            balance=str(account.balance),
            credit_limit=str(account.credit_limit),
            available_balance=str(account.available_balance),
            is_active=account.is_active,
            created_at=account.created_at
        )


# Transaction schemas
class DepositRequest(BaseModel):
    account_id: str
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = Field(None, max_length=250)
    external_reference: Optional[str] = Field(None, max_length=100)


class WithdrawRequest(BaseModel):
    account_id: str
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = Field(None, max_length=250)


class TransferRequest(BaseModel):
    from_account_id: str
    to_account_id: str
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = Field(None, max_length=250)


class TransactionResponse(BaseModel):
    id: str
    transaction_type: str
    amount: str
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    description: Optional[str] = None
    status: str
    created_at: datetime
    processed_at: Optional[datetime] = None
    external_reference: Optional[str] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> 'TransactionResponse':
        return cls(
            id=transaction.id,
            transaction_type=transaction.transaction_type.value,
            amount=str(transaction.amount),
            from_account_id=transaction.from_account_id,
            to_account_id=transaction.to_account_id,
            description=transaction.description,
            status=transaction.status.value,
            created_at=transaction.created_at,
            processed_at=transaction.processed_at,
            external_reference=transaction.external_reference
        )


class StatementResponse(BaseModel):
    account_id: str
    account_number: str
    current_balance: str
    period_start: datetime
    period_end: datetime
    total_credits: str
    total_debits: str
    transactions: List[TransactionResponse]

    @classmethod
    def from_statement(cls, statement: Statement) -> 'StatementResponse':
        return cls(
            account_id=statement.account_id,
            account_number=statement.account_number,
            current_balance=str(statement.current_balance),
            period_start=statement.period_start,
            period_end=statement.period_end,
            total_credits=str(statement.total_credits),
            total_debits=str(statement.total_debits),
            transactions=[TransactionResponse.from_transaction(t) for t in statement.transactions]
        )


class ErrorResponse(BaseModel):
    error: str
    kind: str
