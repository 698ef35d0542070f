"""Test cases for auth exceptions."""

import pytest

from warden.auth.exceptions import (
    AccountDeactivatedError,
    AccountLockedError,
    AuthenticationError,
    AuthError,
    AuthorizationError,
    ConflictError,
    InternalError,
    InvalidCredentialsError,
    PermissionDeniedError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
    handle_error,
)


class TestAuthExceptions:
    """Test auth exception hierarchy and functionality."""

    def test_base_auth_error(self):
        error = AuthError("Test error", {"code": 123})

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.details == {"code": 123}

    def test_auth_error_without_details(self):
        error = AuthError("Test error")

        assert error.details == {}

    def test_credential_errors_share_generic_message(self):
        """Unknown email and wrong password must be indistinguishable."""
        assert str(InvalidCredentialsError()) == "Invalid credentials"
        assert isinstance(InvalidCredentialsError(), AuthenticationError)

    def test_lockout_and_deactivation_messages(self):
        assert str(AccountLockedError()) == (
            "Account is temporarily locked due to too many failed login attempts"
        )
        assert str(AccountDeactivatedError()) == "Account is deactivated"

    def test_token_error_hierarchy(self):
        assert isinstance(TokenExpiredError(), TokenInvalidError)
        assert str(TokenExpiredError()) == "Token has expired"
        assert str(TokenRevokedError()) == "Token has been revoked"
        assert not isinstance(TokenRevokedError(), TokenInvalidError)

    def test_permission_denied_error_with_subject(self):
        error = PermissionDeniedError("delete", "User", {"reason": "excluded"})

        assert isinstance(error, AuthorizationError)
        assert error.action == "delete"
        assert error.subject == "User"
        assert "Permission denied: 'delete' on 'User'" in str(error)
        assert error.details == {"reason": "excluded"}

    def test_permission_denied_error_without_subject(self):
        error = PermissionDeniedError("export")

        assert str(error) == "Permission denied: 'export'"
        assert error.subject is None

    def test_error_codes_are_distinct(self):
        classes = [
            InvalidCredentialsError,
            AccountLockedError,
            AccountDeactivatedError,
            TokenInvalidError,
            TokenExpiredError,
            TokenRevokedError,
            ConflictError,
            InternalError,
        ]
        codes = [cls.code for cls in classes]
        assert len(set(codes)) == len(codes)


class TestHandleError:
    def test_domain_errors_propagate_verbatim(self):
        original = ConflictError("Email already in use.")

        with pytest.raises(ConflictError) as exc_info:
            try:
                raise original
            except Exception as e:
                handle_error(e)

        assert exc_info.value is original

    def test_unexpected_errors_become_internal_errors(self):
        with pytest.raises(InternalError) as exc_info:
            try:
                raise RuntimeError("database connection reset")
            except Exception as e:
                handle_error(e, "Something went wrong.")

        assert str(exc_info.value) == "Something went wrong."
        assert "database" not in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
