"""
Current-user profile endpoints
"""

from fastapi import APIRouter, Depends, Response, status

from .dependencies import BankingSystem, get_banking_system, get_current_user_id
from .schemas import UpdateUserRequest, UserResponse
from ..errors import UserNotFound


router = APIRouter()


@router.get("/me", response_model=UserResponse)
def get_me(
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    user = system.users.get(user_id)
    if user is None:
        raise UserNotFound(user_id)
    return UserResponse.from_user(user)


@router.put("/me", response_model=UserResponse)
def update_me(
    request: UpdateUserRequest,
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    """Update name and/or phone; omitted or blank fields are kept"""
    user = system.users.update(user_id, full_name=request.full_name, phone=request.phone)
    if user is None:
        raise UserNotFound(user_id)
    return UserResponse.from_user(user)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
def delete_me(
    user_id: str = Depends(get_current_user_id),
    system: BankingSystem = Depends(get_banking_system)
):
    if not system.users.deactivate(user_id):
        raise UserNotFound(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
