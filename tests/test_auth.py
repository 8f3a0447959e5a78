"""
Tests for bearer token issue and verification
"""

import pytest
import jwt
from datetime import timedelta

from neobank.auth import TokenService
from neobank.clock import FixedClock
from neobank.config import NeoBankConfig
from neobank.errors import InvalidCredentials
from neobank.storage import InMemoryStorage
from neobank.users import UserDirectory


class TestTokenService:

    def setup_method(self):
        self.clock = FixedClock()
        self.config = NeoBankConfig(jwt_secret="test-secret")
        self.tokens = TokenService(self.config, self.clock)
        directory = UserDirectory(InMemoryStorage(), self.clock)
        self.user = directory.register(
            full_name="Maria Silva", cpf="12345678909",
            email="maria@example.com", password="secret123"
        )

    def test_issue_and_verify(self):
        issued = self.tokens.issue(self.user)

        assert issued.expires_at == self.clock.now() + timedelta(hours=8)
        assert self.tokens.verify(issued.token) == self.user.id

    def test_claims(self):
        issued = self.tokens.issue(self.user)
        claims = jwt.decode(
            issued.token, "test-secret", algorithms=["HS256"],
            audience="NeoBank.Users", options={"verify_exp": False}
        )
        assert claims["sub"] == self.user.id
        assert claims["email"] == "maria@example.com"
        assert claims["iss"] == "NeoBank"
        assert claims["aud"] == "NeoBank.Users"

    def test_expired_token(self):
        issued = self.tokens.issue(self.user)
        self.clock.advance(hours=8)

        with pytest.raises(InvalidCredentials, match="expired"):
            self.tokens.verify(issued.token)

    def test_token_valid_just_before_expiry(self):
        issued = self.tokens.issue(self.user)
        self.clock.advance(hours=7, minutes=59)
        assert self.tokens.verify(issued.token) == self.user.id

    def test_wrong_secret(self):
        other = TokenService(NeoBankConfig(jwt_secret="other-secret"), self.clock)
        issued = other.issue(self.user)

        with pytest.raises(InvalidCredentials, match="Invalid token"):
            self.tokens.verify(issued.token)

    def test_wrong_audience(self):
        other = TokenService(
            NeoBankConfig(jwt_secret="test-secret", jwt_audience="Someone.Else"), self.clock
        )
        with pytest.raises(InvalidCredentials):
            self.tokens.verify(other.issue(self.user).token)

    def test_wrong_issuer(self):
        other = TokenService(
            NeoBankConfig(jwt_secret="test-secret", jwt_issuer="Evil"), self.clock
        )
        with pytest.raises(InvalidCredentials):
            self.tokens.verify(other.issue(self.user).token)

    def test_garbage_token(self):
        with pytest.raises(InvalidCredentials):
            self.tokens.verify("not.a.jwt")

    def test_configured_expiry(self):
        tokens = TokenService(NeoBankConfig(jwt_secret="test-secret", jwt_expiry_hours=1), self.clock)
        issued = tokens.issue(self.user)
        assert issued.expires_at == self.clock.now() + timedelta(hours=1)
