"""Configuration schema models using Pydantic."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..utils import parse_duration

_DURATION_RE = re.compile(r"^\d+[smhd]$")
_BACKEND_RE = re.compile(
    r"^([a-zA-Z_][a-zA-Z0-9_-]*|[a-zA-Z_][a-zA-Z0-9_]*(?:\.[a-zA-Z_][a-zA-Z0-9_]*)*:[a-zA-Z_][a-zA-Z0-9_]*)$"
)

SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")


def _validate_backend_path(value: str) -> str:
    # Simple name (bundled) or import path (external): module.path:ClassName
    if not value or not _BACKEND_RE.match(value):
        raise ValueError(
            "Backend must be a simple name (e.g., 'memory') or import path (e.g., 'module.path:ClassName')"
        )
    return value


class LockoutConfig(BaseModel):
    """Account lockout configuration."""

    max_failed_attempts: int = Field(5, description="Failures that trigger a lockout")
    duration: str = Field("15m", description="Lockout duration, e.g. '15m'")

    @field_validator("max_failed_attempts")
    @classmethod
    def validate_attempts(cls, v):
        if v < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        return v

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if not _DURATION_RE.match(v):
            raise ValueError("duration must look like '<number><s|m|h|d>'")
        return v

    @property
    def duration_delta(self) -> timedelta:
        return parse_duration(self.duration)


class PasswordConfig(BaseModel):
    """Password hashing configuration."""

    hasher: str = Field("bcrypt", description="'bcrypt', 'argon2' or 'module:Class'")
    bcrypt_rounds: int = Field(12, description="bcrypt work factor")
    argon2_time_cost: int = Field(3, description="argon2 iterations")
    argon2_memory_cost: int = Field(65536, description="argon2 memory in KiB")

    @field_validator("hasher")
    @classmethod
    def validate_hasher(cls, v):
        return _validate_backend_path(v)

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_rounds(cls, v):
        if not 4 <= v <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        return v


class StorageConfig(BaseModel):
    """Backends for the external collaborators."""

    users: str = Field("memory", description="UserStore backend")
    tokens: str = Field("memory", description="TokenRepository backend")
    audit: str = Field("memory", description="AuditSink backend")
    login_history: str = Field("memory", description="LoginHistoryStore backend")

    @field_validator("users", "tokens", "audit", "login_history")
    @classmethod
    def validate_backend(cls, v):
        return _validate_backend_path(v)


class AuthSettings(BaseModel):
    """Main authentication configuration."""

    jwt_secret: str = Field(..., description="HMAC secret for signing tokens")
    jwt_algorithm: str = Field("HS256", description="JWT signing algorithm")
    access_token_ttl: str = Field("1d", description="Access token lifetime")
    refresh_token_ttl: str = Field("7d", description="Refresh token lifetime")
    issuer: Optional[str] = Field(None, description="JWT 'iss' claim")
    audience: Optional[str] = Field(None, description="JWT 'aud' claim")
    lockout: LockoutConfig = Field(default_factory=LockoutConfig)
    password: PasswordConfig = Field(default_factory=PasswordConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @field_validator("jwt_secret")
    @classmethod
    def validate_secret(cls, v):
        if len(v) < 16:
            raise ValueError("jwt_secret must be at least 16 characters")
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_algorithm(cls, v):
        if v not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported JWT algorithm: {v}")
        return v

    @property
    def access_ttl(self) -> timedelta:
        return parse_duration(self.access_token_ttl)

    @property
    def refresh_ttl(self) -> timedelta:
        return parse_duration(self.refresh_token_ttl)
