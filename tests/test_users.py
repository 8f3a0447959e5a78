"""
Tests for the user directory
"""

import pytest

from neobank.clock import FixedClock
from neobank.errors import DuplicateIdentity, ValidationError
from neobank.storage import InMemoryStorage
from neobank.users import UserDirectory, normalize_cpf, normalize_email


def register(directory, **overrides):
    data = dict(
        full_name="Maria Silva",
        cpf="123.456.789-09",
        email="Maria@Example.com",
        password="secret123",
        phone="+55 11 99999-0000",
    )
    data.update(overrides)
    return directory.register(**data)


class TestNormalization:

    def test_normalize_email(self):
        assert normalize_email("  Maria@Example.COM ") == "maria@example.com"

    def test_normalize_cpf(self):
        assert normalize_cpf("123.456.789-09") == "12345678909"
        assert normalize_cpf("12345678909") == "12345678909"


class TestUserDirectory:

    def setup_method(self):
        self.clock = FixedClock()
        self.storage = InMemoryStorage()
        self.directory = UserDirectory(self.storage, self.clock)

    def test_register_normalizes_identity(self):
        user = register(self.directory)

        assert user.email == "maria@example.com"
        assert user.cpf == "12345678909"
        assert user.full_name == "Maria Silva"
        assert user.is_active
        assert user.created_at == self.clock.now()
        assert user.password_hash != "secret123"
        assert len(user.password_salt) == 32

    def test_lookups(self):
        user = register(self.directory)

        assert self.directory.get(user.id) == user
        assert self.directory.get_by_email("MARIA@example.com") == user
        assert self.directory.get_by_cpf("12345678909") == user
        assert self.directory.get("missing") is None
        assert self.directory.get_by_email("other@example.com") is None

    def test_duplicate_email(self):
        register(self.directory)
        with pytest.raises(DuplicateIdentity, match="Email"):
            register(self.directory, cpf="98765432100", email="maria@example.com")

    def test_duplicate_cpf(self):
        register(self.directory)
        with pytest.raises(DuplicateIdentity, match="CPF"):
            register(self.directory, email="other@example.com", cpf="12345678909")

    @pytest.mark.parametrize("overrides, message", [
        ({"full_name": "   "}, "Full name"),
        ({"cpf": "123"}, "CPF"),
        ({"email": "not-an-email"}, "Invalid email"),
        ({"password": "12345"}, "at least 6"),
    ])
    def test_register_validation(self, overrides, message):
        with pytest.raises(ValidationError, match=message):
            register(self.directory, **overrides)
        assert self.storage.count("users") == 0

    def test_password_min_length_is_configurable(self):
        directory = UserDirectory(self.storage, self.clock, password_min_length=10)
        with pytest.raises(ValidationError, match="at least 10"):
            register(directory, password="short1234")

    def test_authenticate(self):
        user = register(self.directory)

        assert self.directory.authenticate("maria@example.com", "secret123") == user
        assert self.directory.authenticate("MARIA@EXAMPLE.COM", "secret123") == user
        assert self.directory.authenticate("maria@example.com", "wrong") is None
        assert self.directory.authenticate("nobody@example.com", "secret123") is None

    def test_update_ignores_blank_values(self):
        user = register(self.directory)
        self.clock.advance(hours=1)

        updated = self.directory.update(user.id, full_name="Maria S. Souza", phone="  ")
        assert updated.full_name == "Maria S. Souza"
        assert updated.phone == "+55 11 99999-0000"
        assert updated.updated_at == self.clock.now()
        assert self.directory.get(user.id).full_name == "Maria S. Souza"

    def test_update_missing_user(self):
        assert self.directory.update("missing", full_name="X") is None

    def test_deactivate(self):
        user = register(self.directory)

        assert self.directory.deactivate(user.id)
        assert self.directory.get(user.id) is None
        assert self.directory.get_by_email("maria@example.com") is None
        assert self.directory.authenticate("maria@example.com", "secret123") is None
        assert not self.directory.deactivate(user.id)

    def test_deactivated_identity_stays_reserved(self):
        user = register(self.directory)
        self.directory.deactivate(user.id)

        with pytest.raises(DuplicateIdentity):
            register(self.directory)
