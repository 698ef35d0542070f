"""Validated inbound payloads for login and registration.

Fields accept both snake_case names and the camelCase aliases used by JSON
clients (``firstName``, ``confirmPassword``, ...).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MIN_PASSWORD_LENGTH = 8
STRONG_PASSWORD_MESSAGE = (
    "Password must be strong. It should contain at least 8 characters, "
    "1 lowercase, 1 uppercase, 1 number, and 1 symbol."
)


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def is_strong_password(password: str) -> bool:
    return (
        len(password) >= MIN_PASSWORD_LENGTH
        and any(c.islower() for c in password)
        and any(c.isupper() for c in password)
        and any(c.isdigit() for c in password)
        and any(not c.isalnum() and not c.isspace() for c in password)
    )


class _Request(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class LoginRequest(_Request):
    """Email/password credentials."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return _strip(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class RegistrationRequest(_Request):
    """New account details."""

    first_name: str = Field(..., min_length=1)
    last_name: Optional[str] = None
    email: EmailStr
    password: str
    confirm_password: str = Field(..., min_length=1)
    phone_number: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v):
        if not v.strip():
            raise ValueError("First name is required")
        return v.strip()

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return _strip(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError("Password must be at least 8 characters long")
        if not is_strong_password(v):
            raise ValueError(STRONG_PASSWORD_MESSAGE)
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v):
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self
