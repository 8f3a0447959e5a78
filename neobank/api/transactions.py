"""
Transaction endpoints
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, status

from .accounts import get_owned_account
from .dependencies import BankingSystem, get_banking_system, get_current_user_id
from .schemas import (
    DepositRequest, StatementResponse, TransactionResponse, TransferRequest, WithdrawRequest
)
from ..errors import Unauthorized


router = APIRouter()


@router.post("/deposit", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def deposit(
    request: DepositRequest,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    """Deposit into any active account"""
    transaction = system.engine.deposit(
        request.account_id,
        request.amount,
        description=request.description,
        external_reference=request.external_reference
    )
    return TransactionResponse.from_transaction(transaction)


@router.post("/withdraw", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def withdraw(
    request: WithdrawRequest,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    transaction = system.engine.withdraw(
        request.account_id,
        request.amount,
        requester_id=user_id,
        description=request.description
    )
    return TransactionResponse.from_transaction(transaction)


@router.post("/transfer", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def transfer(
    request: TransferRequest,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    transaction = system.engine.transfer(
        request.from_account_id,
        request.to_account_id,
        request.amount,
        requester_id=user_id,
        description=request.description
    )
    return TransactionResponse.from_transaction(transaction)


@router.get("/statement/{account_id}", response_model=StatementResponse)
def get_statement(
    account_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    """Statement for one of the caller's accounts (default: last 30 days)"""
    get_owned_account(system, account_id, user_id)
    statement = system.engine.get_statement(account_id, start_date, end_date)
    return StatementResponse.from_statement(statement)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get a transaction the caller is a party to"""
    transaction = system.engine.get_transaction(transaction_id)
    owned = {account.id for account in system.engine.get_accounts_by_owner(user_id)}
    if not (transaction.from_account_id in owned or transaction.to_account_id in owned):
        raise Unauthorized("You do not have access to this transaction")
    return TransactionResponse.from_transaction(transaction)
