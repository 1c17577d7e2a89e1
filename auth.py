# auth.py
"""Registration and sign-in.

Passwords are stored as bcrypt(base64(sha256(password))): the pre-hash keeps
any password length inside bcrypt's 72-byte input limit.
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import bcrypt
from loguru import logger
from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator

import db
from config import get_settings
from errors import EmailInUse, InvalidCredentials, RegistrationInvalid

MIN_PASSWORD = 6
MIN_NAME = 2


@dataclass(frozen=True)
class Identity:
    """Who is making a request. Passed explicitly to every task operation."""

    user_id: str
    email: str
    name: Optional[str] = None


class RegisterForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD)
    name: str = Field(min_length=MIN_NAME)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


_FIELD_MESSAGES = {
    "email": "Invalid email address.",
    "password": f"Password must be at least {MIN_PASSWORD} characters.",
    "name": f"Name must be at least {MIN_NAME} characters.",
}


def _prehash(password: str) -> bytes:
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or get_settings().bcrypt_rounds)
    return bcrypt.hashpw(_prehash(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """Checked against when the email is unknown, so both paths pay for bcrypt."""
    return hash_password("taskdeck-no-such-user")


def register(email: str, password: str, name: str) -> Identity:
    try:
        form = RegisterForm(email=email, password=password, name=name)
    except ValidationError as e:
        field_errors = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err.get("loc") else "form"
            field_errors.setdefault(field, _FIELD_MESSAGES.get(field, err.get("msg", "Invalid value.")))
        raise RegistrationInvalid(field_errors)

    if db.get_user_by_email(form.email) is not None:
        raise EmailInUse()

    user = db.create_user(form.email, hash_password(form.password), form.name)
    logger.info("registered user {}", user.id)
    return Identity(user_id=user.id, email=user.email, name=user.name)


def authenticate(email: str, password: str) -> Identity:
    """Same error for unknown email and wrong password."""
    user = db.get_user_by_email(email or "")
    stored = user.password_hash if user is not None else _dummy_hash()
    matched = verify_password(password or "", stored)
    if user is None or not matched:
        logger.info("failed sign-in attempt")
        raise InvalidCredentials()
    return Identity(user_id=user.id, email=user.email, name=user.name)
