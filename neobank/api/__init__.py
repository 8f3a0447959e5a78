"""
NeoBank API Application Factory
"""

from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import BankingError
from ..logging_config import get_logger, log_action
from .dependencies import BankingSystem, get_banking_system, get_current_user_id
from .schemas import ErrorResponse
from .auth import router as auth_router
from .users import router as users_router
from .accounts import router as accounts_router
from .transactions import router as transactions_router


ERROR_STATUS_CODES = {
    "account_not_found": 404,
    "transaction_not_found": 404,
    "user_not_found": 404,
    "unauthorized": 403,
    "invalid_credentials": 401,
    "duplicate_identity": 409,
}

# Documented on every /api route; bodies come from banking_error_handler
ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in sorted(set(ERROR_STATUS_CODES.values()) | {400})
}

logger = get_logger("neobank.api")


def status_code_for(error: BankingError) -> int:
    """HTTP status for an error kind; anything unmapped is a bad request"""
    return ERROR_STATUS_CODES.get(error.kind, 400)


async def banking_error_handler(request: Request, exc: BankingError) -> JSONResponse:
    status_code = status_code_for(exc)
    log_action(
        logger, "warning" if status_code < 500 else "error",
        f"{request.method} {request.url.path} -> {status_code}: {exc.message}",
        action="http_error", resource=request.url.path,
        extra={"error_kind": exc.kind, "status_code": status_code}
    )
    return JSONResponse(status_code=status_code, content={"error": exc.message, "kind": exc.kind})


def create_app(system: Optional[BankingSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application around a banking system"""
    app = FastAPI(
        title="NeoBank API",
        description="Digital bank ledger: accounts, deposits, withdrawals and transfers",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.banking_system = system or BankingSystem()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BankingError, banking_error_handler)

    app.include_router(auth_router, prefix="/api/auth", tags=["Auth"], responses=ERROR_RESPONSES)
    app.include_router(users_router, prefix="/api/users", tags=["Users"], responses=ERROR_RESPONSES)
    app.include_router(accounts_router, prefix="/api/accounts", tags=["Accounts"], responses=ERROR_RESPONSES)
    app.include_router(transactions_router, prefix="/api/transactions", tags=["Transactions"], responses=ERROR_RESPONSES)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "neobank_api",
            "version": __version__
        }

    return app


__all__ = [
    "BankingSystem",
    "create_app",
    "get_banking_system",
    "get_current_user_id",
    "status_code_for",
]
