"""
Request dependencies: the wired banking system and the authenticated caller
"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..accounts import AccountStore
from ..auth import TokenService
from ..clock import Clock, SystemClock
from ..config import NeoBankConfig, get_config
from ..engine import LedgerEngine
from ..errors import InvalidCredentials
from ..ledger import TransactionLedger
from ..locking import AccountLockManager
from ..statements import StatementBuilder
from ..storage import InMemoryStorage, SQLiteStorage, StorageInterface
from ..users import UserDirectory


class BankingSystem:
    """NeoBank components wired over one storage backend"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        config: Optional[NeoBankConfig] = None,
        clock: Optional[Clock] = None
    ):
        self.config = config or get_config()
        self.clock = clock or SystemClock()

        # Initialize storage
        if storage is not None:
            self.storage = storage
        elif self.config.use_sqlite:
            self.storage = SQLiteStorage(self.config.database_path)
        else:
            self.storage = InMemoryStorage()

        # Initialize core components
        self.ledger = TransactionLedger(self.storage, self.clock)
        self.account_store = AccountStore(
            self.storage, self.ledger, self.clock,
            checking_credit_limit=self.config.checking_credit_limit,
            agency=self.config.agency_code,
            max_number_attempts=self.config.account_number_max_attempts
        )
        self.statement_builder = StatementBuilder(
            self.account_store, self.ledger, self.clock,
            default_days=self.config.statement_default_days
        )
        self.engine = LedgerEngine(
            self.storage, self.account_store, self.ledger, self.clock,
            locks=AccountLockManager(),
            statements=self.statement_builder
        )
        self.users = UserDirectory(
            self.storage, self.clock,
            password_min_length=self.config.password_min_length
        )
        self.tokens = TokenService(self.config, self.clock)

    def close(self) -> None:
        self.storage.close()


security = HTTPBearer(auto_error=False)


def get_banking_system(request: Request) -> BankingSystem:
    return request.app.state.banking_system


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    system: BankingSystem = Depends(get_banking_system)
) -> str:
    """Resolve the bearer token to an active user id"""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user_id = system.tokens.verify(credentials.credentials)
    if system.users.get(user_id) is None:
        raise InvalidCredentials("User is not active")
    return user_id
