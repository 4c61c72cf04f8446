"""Password hashing and credential format rules for the local collaborators."""

import re
from typing import Optional, TypeVar

from argon2 import PasswordHasher, exceptions as argon_exc
from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from accountkit import messages
from accountkit.errors import ServiceError
from accountkit.validators import is_email

_ph = PasswordHasher()

PASSWORD_RE = re.compile(r"^(?=.*\d)(?=.*[A-Za-z]).{8,}$")
USERNAME_RE = re.compile(r"^[a-z0-9_]{3,15}$")

M = TypeVar("M", bound=BaseModel)


def hash_password(password: str) -> str:
    return _ph.hash(password)


def verify_password(password: str, stored_hash: Optional[str]) -> bool:
    if not stored_hash:
        return False
    try:
        return _ph.verify(stored_hash, password)
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def _check_password(value: str) -> str:
    if not PASSWORD_RE.match(value):
        raise PydanticCustomError("invalid_password", messages.INVALID_PASSWORD)
    return value


class NewUser(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not is_email(value):
            raise PydanticCustomError("invalid_email", messages.INVALID_EMAIL)
        return value.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)


class NewPassword(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)


class NewUsername(BaseModel):
    username: str

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        if not USERNAME_RE.match(value):
            raise PydanticCustomError("invalid_username", messages.INVALID_USERNAME)
        return value


def validate(model: type[M], **data) -> M:
    """Build ``model`` or raise a VALIDATION ServiceError with every message."""
    try:
        return model(**data)
    except ValidationError as exc:
        raise ServiceError.from_validation_error(exc) from exc
