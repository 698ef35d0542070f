"""Core data types for the authentication system."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .utils import utcnow


class Role(str, Enum):
    """User roles, highest privilege first."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    USER = "USER"


class UserStatus(str, Enum):
    """Lifecycle status of an account."""

    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class TokenType(str, Enum):
    """Kinds of bearer tokens tracked by the ledger."""

    ACCESS = "ACCESS"
    REFRESH = "REFRESH"


class AuditAction(str, Enum):
    """Actions recorded in audit events."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    RESTORE = "RESTORE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    TOKEN_REVOKE = "TOKEN_REVOKE"


@dataclass
class UserProfile:
    """Profile details joined onto a user record."""

    user_id: str
    first_name: str
    last_name: str | None = None
    phone_number: str | None = None
    deleted_at: datetime | None = None


@dataclass
class User:
    """Represents a user in the authentication system."""

    id: str
    email: str
    password_hash: str
    role: Role = Role.USER
    status: UserStatus = UserStatus.PENDING_VERIFICATION
    is_active: bool = True
    failed_login_attempts: int = 0
    locked_until: datetime | None = None
    last_login_at: datetime | None = None
    last_login_ip: str | None = None
    profile: UserProfile | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    def __post_init__(self):
        """Validate user after creation."""
        if not self.id or not self.id.strip():
            from .exceptions import AuthValidationError

            raise AuthValidationError("User ID cannot be empty")
        if not self.email or not self.email.strip():
            from .exceptions import AuthValidationError

            raise AuthValidationError("Email cannot be empty")
        if self.failed_login_attempts < 0:
            from .exceptions import AuthValidationError

            raise AuthValidationError("Failed login attempts cannot be negative")

    @property
    def name(self) -> str:
        if not self.profile:
            return ""
        return f"{self.profile.first_name} {self.profile.last_name or ''}".strip()

    def is_locked(self, now: datetime) -> bool:
        """Check if the lockout window is still open at ``now``."""
        return self.locked_until is not None and self.locked_until > now

    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass
class TokenRecord:
    """Ledger entry for an issued token. Holds the hash, never the token."""

    id: str
    user_id: str
    token_hash: str
    type: TokenType
    expires_at: datetime
    created_at: datetime = field(default_factory=utcnow)
    revoked_at: datetime | None = None
    revoked_reason: str | None = None
    device_info: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    deleted_at: datetime | None = None

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_live(self, now: datetime) -> bool:
        """A token is live iff it is neither revoked nor expired."""
        return not self.is_revoked() and not self.is_expired(now)


@dataclass(frozen=True)
class RequestContext:
    """Per-request provenance passed explicitly through orchestrator calls."""

    request_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    device_info: str | None = None


@dataclass(frozen=True)
class IssuedToken:
    """A freshly signed token together with its ledger record."""

    value: str
    record: TokenRecord


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginResult:
    """User fields plus the issued token pair returned by a login."""

    id: str
    name: str
    first_name: str
    last_name: str
    email: str
    role: Role
    access_token: str
    refresh_token: str

    @classmethod
    def from_user(cls, user: User, tokens: TokenPair) -> "LoginResult":
        profile = user.profile
        return cls(
            id=user.id,
            name=user.name,
            first_name=profile.first_name if profile else "",
            last_name=(profile.last_name or "") if profile else "",
            email=user.email,
            role=user.role,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """Result of authenticating an access token for a request."""

    user: User
    claims: dict[str, Any]

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def role(self) -> Role:
        return self.user.role


@dataclass
class LoginHistoryEntry:
    """One login session as seen by the history store."""

    id: str
    user_id: str
    ip_address: str | None = None
    user_agent: str | None = None
    login_at: datetime = field(default_factory=utcnow)
    logout_at: datetime | None = None


@dataclass
class AuditEvent:
    """Represents an audit event."""

    id: str
    action: AuditAction
    entity_type: str
    entity_id: str | None = None
    user_id: str | None = None
    performed_by_id: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    changes: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        """Validate audit event after creation."""
        if not self.id or not self.id.strip():
            from .exceptions import AuthValidationError

            raise AuthValidationError("Audit event ID cannot be empty")


@dataclass(frozen=True)
class PolicyDecision:
    """Result of a policy evaluation."""

    allowed: bool
    reason: str
    rule: Any = None
