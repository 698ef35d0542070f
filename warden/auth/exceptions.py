"""Exception classes for the authentication system."""

import logging
from typing import NoReturn

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Base exception for all authentication-related errors."""

    code = "auth_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthenticationError(AuthError):
    """Raised when authentication fails."""

    code = "authentication_failed"


class AuthorizationError(AuthError):
    """Raised when authorization fails (user lacks required permissions)."""

    code = "authorization_failed"


class InvalidCredentialsError(AuthenticationError):
    """Raised when the email is unknown or the password does not match.

    Both cases share one message so callers cannot tell them apart.
    """

    code = "invalid_credentials"

    def __init__(self, message: str = "Invalid credentials", details: dict | None = None):
        super().__init__(message, details)


class AccountLockedError(AuthenticationError):
    """Raised when login is attempted while the account lockout is active."""

    code = "account_locked"

    def __init__(
        self,
        message: str = "Account is temporarily locked due to too many failed login attempts",
        details: dict | None = None,
    ):
        super().__init__(message, details)


class AccountDeactivatedError(AuthenticationError):
    """Raised when the account exists but has been deactivated."""

    code = "account_deactivated"

    def __init__(self, message: str = "Account is deactivated", details: dict | None = None):
        super().__init__(message, details)


class TokenInvalidError(AuthenticationError):
    """Raised when a token cannot be decoded, has a bad signature or wrong type."""

    code = "token_invalid"

    def __init__(self, message: str = "Invalid token", details: dict | None = None):
        super().__init__(message, details)


class TokenExpiredError(TokenInvalidError):
    """Raised when a token's signature is intact but its expiry has passed."""

    code = "token_expired"

    def __init__(self, message: str = "Token has expired", details: dict | None = None):
        super().__init__(message, details)


class TokenRevokedError(AuthenticationError):
    """Raised when a token has been revoked in the ledger."""

    code = "token_revoked"

    def __init__(self, message: str = "Token has been revoked", details: dict | None = None):
        super().__init__(message, details)


class PermissionDeniedError(AuthorizationError):
    """Raised when a role lacks the ability for an action on a subject."""

    code = "permission_denied"

    def __init__(
        self, action: str, subject: str | None = None, details: dict | None = None
    ):
        self.action = action
        self.subject = subject

        if subject:
            message = f"Permission denied: '{action}' on '{subject}'"
        else:
            message = f"Permission denied: '{action}'"

        super().__init__(message, details)


class ConflictError(AuthError):
    """Raised when a unique value (email, phone number) is already in use."""

    code = "conflict"


class NotFoundError(AuthError):
    """Raised when a referenced user or record does not exist."""

    code = "not_found"


class InternalError(AuthError):
    """Raised for unexpected storage or signing failures.

    The message is always generic; the original exception is kept as
    ``__cause__`` for logs only.
    """

    code = "internal_error"

    def __init__(self, message: str = "Something went wrong.", details: dict | None = None):
        super().__init__(message, details)


class AuthValidationError(AuthError):
    """Raised when auth data validation fails."""

    code = "validation_failed"


class ConfigurationError(AuthError):
    """Raised when auth configuration is invalid."""

    code = "configuration_error"


def handle_error(error: Exception, context_message: str = "Something went wrong.") -> NoReturn:
    """Re-raise domain errors verbatim, wrap anything else in InternalError.

    Must be called from inside an ``except`` block so the original traceback
    is chained onto the InternalError.
    """
    if isinstance(error, AuthError):
        raise error

    logger.error(f"Unexpected error wrapped as internal error: {error!r}")
    raise InternalError(context_message) from error
