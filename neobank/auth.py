"""
Bearer Token Service

Issues and verifies HS256 JWTs. A verified token resolves to the
authenticated user id carried in the `sub` claim.
"""

from datetime import datetime, timedelta
from dataclasses import dataclass
from typing import Optional

import jwt

from .clock import Clock, SystemClock
from .config import NeoBankConfig, get_config
from .errors import InvalidCredentials
from .users import User


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime


class TokenService:
    """JWT issue/verify bound to the configured secret, issuer and audience"""

    def __init__(self, config: Optional[NeoBankConfig] = None, clock: Optional[Clock] = None):
        self.config = config or get_config()
        self.clock = clock or SystemClock()

    def issue(self, user: User) -> IssuedToken:
        now = self.clock.now()
        expires_at = now + timedelta(hours=self.config.jwt_expiry_hours)
        payload = {
            "sub": user.id,
            "email": user.email,
            "name": user.full_name,
            "iss": self.config.jwt_issuer,
            "aud": self.config.jwt_audience,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def verify(self, token: str) -> str:
        """
        Decode a token and return its subject

        Raises:
            InvalidCredentials: If the token is expired, tampered with or
                was issued for another issuer/audience
        """
        try:
            # exp is compared against the injected clock, not time.time()
            payload = jwt.decode(
                token,
                self.config.jwt_secret,
                algorithms=[self.config.jwt_algorithm],
                audience=self.config.jwt_audience,
                issuer=self.config.jwt_issuer,
                options={"require": ["exp", "sub"], "verify_exp": False},
            )
        except jwt.InvalidTokenError:
            raise InvalidCredentials("Invalid token")

        if payload["exp"] <= int(self.clock.now().timestamp()):
            raise InvalidCredentials("Token expired")

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidCredentials("Invalid token")
        return user_id
