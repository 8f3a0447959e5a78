"""
Registration and login endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import BankingSystem, get_banking_system
from .schemas import LoginRequest, RegisterRequest, TokenResponse
from ..errors import InvalidCredentials


router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Register a customer and return a bearer token"""
    user = system.users.register(
        full_name=request.full_name,
        cpf=request.cpf,
        email=request.email,
        password=request.password,
        phone=request.phone
    )
    return TokenResponse.build(system.tokens.issue(user), user)


@router.post("/login", response_model=TokenResponse)
def login(
    request: LoginRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    user = system.users.authenticate(request.email, request.password)
    if user is None:
        raise InvalidCredentials("Invalid email or password")
    return TokenResponse.build(system.tokens.issue(user), user)
