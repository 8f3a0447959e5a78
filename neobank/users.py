"""
User Directory Module

Registration, lookup and password authentication for bank customers.
Emails are stored lower-cased and CPFs as bare digits; both are unique.
"""

from datetime import datetime
from dataclasses import dataclass
from typing import Dict, Optional
import hashlib
import hmac
import re
import secrets
import uuid

from .clock import Clock, SystemClock
from .errors import DuplicateIdentity, ValidationError
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord


EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
CPF_PATTERN = re.compile(r'^\d{11}$')
MAX_NAME_LENGTH = 200


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_cpf(cpf: str) -> str:
    """Strip the usual 000.000.000-00 punctuation"""
    return cpf.strip().replace(".", "").replace("-", "")


@dataclass
class User(StorageRecord):
    """Bank customer"""
    full_name: str
    cpf: str
    email: str
    password_hash: str
    password_salt: str
    phone: Optional[str] = None
    is_active: bool = True
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'User':
        return cls(
            id=data['id'],
            created_at=cls.parse_datetime(data['created_at']),
            full_name=data['full_name'],
            cpf=data['cpf'],
            email=data['email'],
            password_hash=data['password_hash'],
            password_salt=data['password_salt'],
            phone=data.get('phone'),
            is_active=data.get('is_active', True),
            updated_at=cls.parse_datetime(data.get('updated_at'))
        )


class UserDirectory:
    """
    Manages bank customers and their credentials
    """

    def __init__(
        self,
        storage: StorageInterface,
        clock: Optional[Clock] = None,
        password_min_length: int = 6
    ):
        self.storage = storage
        self.clock = clock or SystemClock()
        self.password_min_length = password_min_length
        self.table_name = "users"
        self.logger = get_logger("neobank.users")

    def register(
        self,
        full_name: str,
        cpf: str,
        email: str,
        password: str,
        phone: Optional[str] = None
    ) -> User:
        """
        Register a new customer

        Raises:
            ValidationError: On a malformed name, CPF, email or short password
            DuplicateIdentity: If the email or CPF is already registered
        """
        full_name = (full_name or "").strip()
        email = normalize_email(email or "")
        cpf = normalize_cpf(cpf or "")

        if not full_name or len(full_name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Full name is required (max {MAX_NAME_LENGTH} characters)")
        if not CPF_PATTERN.match(cpf):
            raise ValidationError("CPF must contain 11 digits")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError(f"Invalid email address: {email}")
        if not password or len(password) < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters"
            )

        with self.storage.atomic():
            if self.storage.find(self.table_name, {"email": email}):
                raise DuplicateIdentity("Email already registered")
            if self.storage.find(self.table_name, {"cpf": cpf}):
                raise DuplicateIdentity("CPF already registered")

            salt = self._generate_salt()
            user = User(
                id=str(uuid.uuid4()),
                created_at=self.clock.now(),
                full_name=full_name,
                cpf=cpf,
                email=email,
                password_hash=self._hash_password(password, salt),
                password_salt=salt,
                phone=phone or None
            )
            self._save(user)

        log_action(
            self.logger, "info", "User registered",
            user_id=user.id, action="register", resource=f"user:{user.id}"
        )
        return user

    def get(self, user_id: str) -> Optional[User]:
        """Get active user by ID"""
        data = self.storage.load(self.table_name, user_id)
        if not data:
            return None
        user = User.from_dict(data)
        return user if user.is_active else None

    def get_by_email(self, email: str) -> Optional[User]:
        rows = self.storage.find(self.table_name, {"email": normalize_email(email), "is_active": True})
        return User.from_dict(rows[0]) if rows else None

    def get_by_cpf(self, cpf: str) -> Optional[User]:
        rows = self.storage.find(self.table_name, {"cpf": normalize_cpf(cpf), "is_active": True})
        return User.from_dict(rows[0]) if rows else None

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the active user for these credentials, or None"""
        user = self.get_by_email(email)
        if user is None or not self._verify_password(user, password or ""):
            log_action(
                self.logger, "warning", "Login failed",
                action="login", extra={"email": normalize_email(email)}
            )
            return None
        return user

    def update(
        self,
        user_id: str,
        full_name: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Optional[User]:
        """Update profile fields; blank values are ignored"""
        with self.storage.atomic():
            user = self.get(user_id)
            if user is None:
                return None

            if full_name and full_name.strip():
                if len(full_name.strip()) > MAX_NAME_LENGTH:
                    raise ValidationError(f"Full name longer than {MAX_NAME_LENGTH} characters")
                user.full_name = full_name.strip()
            if phone and phone.strip():
                user.phone = phone.strip()

            user.updated_at = self.clock.now()
            self._save(user)

        return user

    def deactivate(self, user_id: str) -> bool:
        with self.storage.atomic():
            user = self.get(user_id)
            if user is None:
                return False
            user.is_active = False
            user.updated_at = self.clock.now()
            self._save(user)

        log_action(
            self.logger, "info", "User deactivated",
            user_id=user_id, action="deactivate", resource=f"user:{user_id}"
        )
        return True

    def _generate_salt(self) -> str:
        return secrets.token_hex(16)

    def _hash_password(self, password: str, salt: str) -> str:
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=16384, r=8, p=1
        ).hex()

    def _verify_password(self, user: User, password: str) -> bool:
        expected = self._hash_password(password, user.password_salt)
        return hmac.compare_digest(expected, user.password_hash)

    def _save(self, user: User) -> None:
        self.storage.save(self.table_name, user.id, user.to_dict())
