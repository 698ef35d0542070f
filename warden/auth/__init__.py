"""
Warden authentication core.

This package provides the credential validator, token ledger, policy engine
and the orchestrator that composes them, plus the interfaces that storage
and crypto backends implement.
"""

from .audit import AuditRecorder, calculate_changes
from .audit_sink import AuditSink
from .background import BackgroundTasks, run_quietly
from .credential_validator import CredentialValidator
from .exceptions import (
    AccountDeactivatedError,
    AccountLockedError,
    AuthenticationError,
    AuthError,
    AuthorizationError,
    AuthValidationError,
    ConfigurationError,
    ConflictError,
    InternalError,
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
    handle_error,
)
from .factory import AuthSystem, BackendLoader, create_auth_system
from .login_history import LoginHistoryStore
from .orchestrator import AuthOrchestrator
from .password_hasher import PasswordHasher
from .policy_engine import ROLE_RULES, Action, PolicyEngine, Subject
from .registration import UserRegistrar
from .requests import LoginRequest, RegistrationRequest
from .token_ledger import TokenLedger
from .token_repository import TokenFilter, TokenRepository
from .token_signer import TokenSigner
from .types import (
    AuditAction,
    AuditEvent,
    AuthenticatedPrincipal,
    IssuedToken,
    LoginHistoryEntry,
    LoginResult,
    PolicyDecision,
    RequestContext,
    Role,
    TokenPair,
    TokenRecord,
    TokenType,
    User,
    UserProfile,
    UserStatus,
)
from .user_store import UserStore
from .utils import hash_token, parse_duration

__all__ = [
    # Data types
    "AuditAction",
    "AuditEvent",
    "AuthenticatedPrincipal",
    "IssuedToken",
    "LoginHistoryEntry",
    "LoginResult",
    "PolicyDecision",
    "RequestContext",
    "Role",
    "TokenPair",
    "TokenRecord",
    "TokenType",
    "User",
    "UserProfile",
    "UserStatus",
    "LoginRequest",
    "RegistrationRequest",
    # Interfaces
    "AuditSink",
    "LoginHistoryStore",
    "PasswordHasher",
    "TokenRepository",
    "TokenFilter",
    "TokenSigner",
    "UserStore",
    # Core components
    "AuditRecorder",
    "AuthOrchestrator",
    "BackgroundTasks",
    "CredentialValidator",
    "PolicyEngine",
    "Action",
    "Subject",
    "ROLE_RULES",
    "TokenLedger",
    "UserRegistrar",
    # Configuration and factory
    "AuthSystem",
    "BackendLoader",
    "create_auth_system",
    # Exceptions
    "AuthError",
    "AuthenticationError",
    "AuthorizationError",
    "AuthValidationError",
    "AccountDeactivatedError",
    "AccountLockedError",
    "ConfigurationError",
    "ConflictError",
    "InternalError",
    "InvalidCredentialsError",
    "NotFoundError",
    "PermissionDeniedError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenRevokedError",
    "handle_error",
    # Utilities
    "calculate_changes",
    "hash_token",
    "parse_duration",
    "run_quietly",
]
