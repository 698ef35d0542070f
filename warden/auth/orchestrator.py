"""
Authentication orchestrator.

Composes the credential validator, token ledger, policy engine and user
store into the session flows:

    Anonymous --login--> Authenticated --refresh--> Authenticated (rotated)
    Authenticated --logout / revoke-all--> LoggedOut

Primary effects (credential checks, token writes) are awaited and their
failures reach the caller. Secondary effects (login history, audit events)
are dispatched through BackgroundTasks and can never fail a flow.

Error policy: AuthError subclasses propagate verbatim; anything else is
logged and raised as a generic InternalError.
"""

import logging
from collections.abc import Mapping
from typing import Any

from .audit import AuditRecorder
from .background import BackgroundTasks
from .credential_validator import CredentialValidator
from .exceptions import (
    AccountDeactivatedError,
    NotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
    handle_error,
)
from .login_history import LoginHistoryStore
from .policy_engine import Action, PolicyEngine, Subject
from .registration import UserRegistrar, parse_request
from .requests import LoginRequest, RegistrationRequest
from .token_ledger import TokenLedger
from .types import (
    AuditAction,
    AuthenticatedPrincipal,
    LoginHistoryEntry,
    LoginResult,
    PolicyDecision,
    RequestContext,
    Role,
    TokenPair,
    TokenRecord,
    TokenType,
    User,
)
from .user_store import UserStore
from .utils import Clock, hash_token, utcnow

logger = logging.getLogger(__name__)

LOGOUT_REASON = "User logout"
LOGOUT_OTHERS_REASON = "Logged out from other sessions"


class AuthOrchestrator:
    """Entry point for login, refresh, logout, revocation and request auth."""

    def __init__(
        self,
        validator: CredentialValidator,
        ledger: TokenLedger,
        policy: PolicyEngine,
        user_store: UserStore,
        registrar: UserRegistrar,
        audit: AuditRecorder,
        login_history: LoginHistoryStore,
        background: BackgroundTasks,
        clock: Clock = utcnow,
    ):
        self.validator = validator
        self.ledger = ledger
        self.policy = policy
        self.user_store = user_store
        self.registrar = registrar
        self.audit = audit
        self.login_history = login_history
        self.background = background
        self.clock = clock

    async def register(
        self,
        request: RegistrationRequest | Mapping[str, Any],
        context: RequestContext | None = None,
    ) -> User:
        return await self.registrar.register(request, context)

    async def login(
        self,
        credentials: LoginRequest | Mapping[str, Any],
        context: RequestContext | None = None,
    ) -> LoginResult:
        """
        Authenticate credentials and open a session.

        Args:
            credentials: Email and password
            context: Request provenance, stored on the tokens and history

        Returns:
            User fields plus a fresh access/refresh token pair

        Raises:
            InvalidCredentialsError, AccountLockedError, AccountDeactivatedError,
            AuthValidationError, or InternalError for storage failures
        """
        context = context or RequestContext()

        try:
            credentials = parse_request(LoginRequest, credentials)
            user = await self.validator.validate(
                credentials.email, credentials.password, context
            )
            tokens = await self.ledger.issue_pair(user.id, user.role, context)
        except Exception as e:
            handle_error(e, "Something went wrong.")

        login_at = self.clock()
        self.background.spawn(
            lambda: self.login_history.record_login(
                user.id, context.ip_address, context.user_agent, login_at
            ),
            f"login_history:{user.id}",
        )
        self.audit.record(
            AuditAction.LOGIN,
            "User",
            entity_id=user.id,
            user_id=user.id,
            performed_by_id=user.id,
            context=context,
        )

        logger.info(f"User {user.id} logged in")
        return LoginResult.from_user(user, tokens)

    async def refresh(
        self, refresh_token: str, context: RequestContext | None = None
    ) -> TokenPair:
        """
        Redeem a refresh token for a new pair. The old token is revoked.

        Raises:
            TokenRevokedError: Revoked in the ledger, or redeemed concurrently
            TokenExpiredError: Signature intact but expired
            TokenInvalidError: Undecodable, wrong type, or unknown user
        """
        try:
            claims = self._decode(refresh_token, TokenType.REFRESH)

            if not await self.ledger.verify(refresh_token):
                logger.warning("Refresh rejected: token revoked")
                raise TokenRevokedError()

            user = await self.user_store.find_by_id(claims["user_id"])
            if user is None:
                logger.warning("Refresh rejected: token owner does not exist")
                raise TokenInvalidError("Invalid refresh token")
            if not user.is_active:
                raise AccountDeactivatedError()

            tokens = await self.ledger.rotate(refresh_token, user.id, user.role, context)
        except Exception as e:
            handle_error(e, "Something went wrong.")

        logger.info(f"Rotated refresh token for user {user.id}")
        return tokens

    async def logout(self, user_id: str, context: RequestContext | None = None) -> int:
        """
        End every session of ``user_id``.

        Returns:
            Number of tokens revoked
        """
        context = context or RequestContext()

        try:
            count = await self.ledger.revoke_all(user_id, LOGOUT_REASON)
        except Exception as e:
            handle_error(e, "Something went wrong.")

        logout_at = self.clock()
        self.background.spawn(
            lambda: self.login_history.record_logout(user_id, context.user_agent, logout_at),
            f"logout_history:{user_id}",
        )
        self.audit.record(
            AuditAction.LOGOUT,
            "User",
            entity_id=user_id,
            user_id=user_id,
            performed_by_id=user_id,
            context=context,
        )

        logger.info(f"User {user_id} logged out ({count} tokens revoked)")
        return count

    async def logout_other_sessions(
        self,
        user_id: str,
        current_token: str,
        context: RequestContext | None = None,
    ) -> int:
        """Revoke every token of ``user_id`` except ``current_token``."""
        try:
            count = await self.ledger.revoke_all(
                user_id, LOGOUT_OTHERS_REASON, exclude_hash=hash_token(current_token)
            )
        except Exception as e:
            handle_error(e, "Something went wrong.")

        self.audit.record_token_action(
            AuditAction.TOKEN_REVOKE,
            user_id=user_id,
            performed_by_id=user_id,
            metadata={"reason": LOGOUT_OTHERS_REASON, "revokedCount": count},
            context=context,
        )
        return count

    async def revoke_all_tokens(
        self,
        user_id: str,
        performed_by_id: str,
        reason: str | None = None,
        context: RequestContext | None = None,
    ) -> int:
        """
        Force-logout ``user_id`` from every device.

        Args:
            user_id: Owner of the tokens
            performed_by_id: Administrator (or the user) performing the action
            reason: Stored on each revoked record

        Returns:
            Number of tokens revoked
        """
        try:
            count = await self.ledger.revoke_all(user_id, reason)
        except Exception as e:
            handle_error(e, "Something went wrong.")

        self.audit.record_token_action(
            AuditAction.TOKEN_REVOKE,
            user_id=user_id,
            performed_by_id=performed_by_id,
            metadata={"reason": reason, "revokedCount": count},
            context=context,
        )
        return count

    async def authenticate(self, access_token: str) -> AuthenticatedPrincipal:
        """
        Resolve an access token to the acting user.

        Raises:
            TokenExpiredError / TokenInvalidError: Signature, expiry or type
            TokenRevokedError: Revoked in the ledger
            NotFoundError: The token's user no longer exists
            AccountDeactivatedError: The user is deactivated
        """
        try:
            claims = self._decode(access_token, TokenType.ACCESS)

            if not await self.ledger.verify(access_token):
                raise TokenRevokedError()

            user = await self.user_store.find_by_id(claims["user_id"])
            if user is None:
                raise NotFoundError("User not found")
            if not user.is_active:
                raise AccountDeactivatedError()
        except Exception as e:
            handle_error(e, "Something went wrong.")

        return AuthenticatedPrincipal(user=user, claims=claims)

    def authorize(
        self,
        role: Role | str,
        action: Action | str,
        subject: Subject | str,
        record: Any | None = None,
        actor_id: str | None = None,
    ) -> bool:
        return self.policy.authorize(role, action, subject, record, actor_id)

    def enforce(
        self,
        principal: AuthenticatedPrincipal,
        action: Action | str,
        subject: Subject | str,
        record: Any | None = None,
    ) -> PolicyDecision:
        """Raise PermissionDeniedError unless ``principal`` may act on ``record``."""
        return self.policy.enforce(
            principal.role, action, subject, record, actor_id=principal.user_id
        )

    async def list_sessions(self, user_id: str) -> list[TokenRecord]:
        return await self.ledger.active_tokens(user_id)

    async def list_login_history(self, user_id: str) -> list[LoginHistoryEntry]:
        return await self.login_history.list_for_user(user_id)

    async def cleanup_expired_tokens(self) -> int:
        return await self.ledger.cleanup_expired()

    async def shutdown(self) -> None:
        """Wait for pending background writes."""
        await self.background.drain()

    def _decode(self, token: str, expected_type: TokenType) -> dict[str, Any]:
        claims = self.ledger.signer.decode(token)
        if claims is None:
            unverified = self.ledger.signer.inspect(token)
            exp = unverified.get("exp") if unverified else None
            if isinstance(exp, (int, float)) and exp <= self.clock().timestamp():
                raise TokenExpiredError()
            raise TokenInvalidError()

        if claims.get("type") != expected_type.value.lower():
            raise TokenInvalidError(f"Expected a {expected_type.value.lower()} token")
        if not claims.get("user_id"):
            raise TokenInvalidError()

        return claims
