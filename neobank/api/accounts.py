"""
Account management endpoints
"""

from typing import List
from fastapi import APIRouter, Depends, Response, status

from .dependencies import BankingSystem, get_banking_system, get_current_user_id
from .schemas import AccountResponse, CreateAccountRequest
from ..accounts import Account
from ..errors import Unauthorized


router = APIRouter()


def get_owned_account(system: BankingSystem, account_id: str, user_id: str) -> Account:
    """Active account owned by the caller; AccountNotFound / Unauthorized otherwise"""
    account = system.engine.get_account(account_id)
    if account.owner_id != user_id:
        raise Unauthorized("You do not have access to this account")
    return account


@router.get("", response_model=List[AccountResponse])
def list_accounts(
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    """List the caller's active accounts"""
    return [
        AccountResponse.from_account(account)
        for account in system.engine.get_accounts_by_owner(user_id)
    ]


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    return AccountResponse.from_account(get_owned_account(system, account_id, user_id))


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    request: CreateAccountRequest,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    """Open an account for the caller"""
    account = system.engine.open_account(user_id, request.account_type, request.initial_deposit)
    return AccountResponse.from_account(account)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def close_account(
    account_id: str,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    """Close an account; its balance must be zero"""
    system.engine.close_account(account_id, requester_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
