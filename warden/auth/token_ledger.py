"""
Token ledger: issuance, hashed storage, verification, revocation, rotation.

The ledger stores a SHA-256 hash of every token it issues and never the raw
value. Signature and expiry checks belong to the TokenSigner; the ledger
answers only "has this token been revoked or expired in storage?".

Security considerations:
- Revocation is append-only: ``revoked_at`` is set once and never cleared
- Revoking an already revoked token is a no-op, not an error
- Rotation revokes before issuing, so a crash in between leaves the session
  with no valid refresh token (forcing re-login) rather than two
"""

import asyncio
import logging
import uuid
from datetime import UTC, datetime, timedelta

from .background import run_quietly
from .exceptions import ConflictError, InternalError, TokenRevokedError
from .token_repository import TokenFilter, TokenRepository
from .token_signer import TokenSigner
from .types import IssuedToken, RequestContext, Role, TokenPair, TokenRecord, TokenType
from .utils import Clock, hash_token, token_fingerprint, utcnow

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_TTL = timedelta(days=1)
DEFAULT_REFRESH_TTL = timedelta(days=7)

REFRESH_ROTATION_REASON = "Token refreshed"
REVOKE_ALL_REASON = "All tokens revoked"
REVOKE_REFRESH_REASON = "Refresh tokens revoked"


class TokenLedger:
    """Issues, verifies, revokes and rotates bearer tokens."""

    def __init__(
        self,
        signer: TokenSigner,
        repository: TokenRepository,
        access_ttl: timedelta = DEFAULT_ACCESS_TTL,
        refresh_ttl: timedelta = DEFAULT_REFRESH_TTL,
        clock: Clock = utcnow,
    ):
        if access_ttl <= timedelta(0) or refresh_ttl <= timedelta(0):
            raise ValueError("Token lifetimes must be positive")

        self.signer = signer
        self.repository = repository
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock = clock

    def ttl_for(self, token_type: TokenType) -> timedelta:
        return self.refresh_ttl if token_type == TokenType.REFRESH else self.access_ttl

    async def issue(
        self,
        user_id: str,
        role: Role | str,
        token_type: TokenType,
        ttl: timedelta | None = None,
        provenance: RequestContext | None = None,
    ) -> IssuedToken:
        """
        Sign a token and persist its hashed ledger record.

        The ``jti`` claim makes every token unique, so two tokens issued for
        the same user in the same second still hash differently.

        Args:
            user_id: Owner of the token
            role: Role claim embedded in the token
            token_type: ACCESS or REFRESH
            ttl: Lifetime; defaults to the configured lifetime for the type
            provenance: IP, user agent and device recorded on the record

        Returns:
            The signed token and its stored record
        """
        ttl = ttl or self.ttl_for(token_type)
        provenance = provenance or RequestContext()
        issued_at = self.clock()

        claims = {
            "user_id": user_id,
            "role": role.value if isinstance(role, Role) else str(role),
            "type": token_type.value.lower(),
            "jti": str(uuid.uuid4()),
        }
        value = self.signer.sign(claims, ttl)

        record = TokenRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            token_hash=hash_token(value),
            type=token_type,
            expires_at=issued_at + ttl,
            created_at=issued_at,
            device_info=provenance.device_info,
            ip_address=provenance.ip_address,
            user_agent=provenance.user_agent,
        )
        await self.repository.create(record)

        logger.debug(f"Issued {token_type.value} token {token_fingerprint(value)} for user {user_id}")
        return IssuedToken(value=value, record=record)

    async def issue_pair(
        self,
        user_id: str,
        role: Role | str,
        provenance: RequestContext | None = None,
    ) -> TokenPair:
        """
        Issue an access and a refresh token concurrently.

        Both must be stored before this returns. If either fails the pair is
        unusable, so the failure is raised as InternalError and any token
        that did get stored is revoked.
        """
        results = await asyncio.gather(
            self.issue(user_id, role, TokenType.ACCESS, provenance=provenance),
            self.issue(user_id, role, TokenType.REFRESH, provenance=provenance),
            return_exceptions=True,
        )

        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            for result in results:
                if isinstance(result, IssuedToken):
                    await run_quietly(
                        lambda token=result.value: self.revoke(token, "Partial token pair issuance"),
                        f"revoke_partial_pair:{user_id}",
                    )
            logger.error(
                f"Token pair issuance failed for user {user_id}: "
                + "; ".join(repr(failure) for failure in failures)
            )
            raise InternalError() from failures[0]

        access, refresh = results
        return TokenPair(access_token=access.value, refresh_token=refresh.value)

    async def verify(self, raw_token: str) -> bool:
        """
        Check a token against the ledger.

        A token with no ledger record is accepted: it may predate the ledger.
        Callers must still verify signature and expiry with the signer.
        """
        record = await self.repository.find_by_hash(hash_token(raw_token))
        if record is None:
            return True

        return record.is_live(self.clock())

    async def find(self, raw_token: str) -> TokenRecord | None:
        return await self.repository.find_by_hash(hash_token(raw_token))

    async def revoke(self, raw_token: str, reason: str | None = None) -> bool:
        """
        Revoke a single token. Idempotent.

        Returns:
            True if this call revoked the token, False if it was unknown or
            already revoked
        """
        count = await self.repository.update_many(
            TokenFilter(token_hash=hash_token(raw_token), revoked=False),
            revoked_at=self.clock(),
            revoked_reason=reason,
        )
        logger.info(f"Token revoked. Reason: {reason or 'No reason provided'}")
        return count > 0

    async def revoke_all(
        self,
        user_id: str,
        reason: str | None = None,
        exclude_hash: str | None = None,
    ) -> int:
        """
        Revoke every non-revoked token of a user.

        Args:
            user_id: Owner whose tokens are revoked
            reason: Stored on each record
            exclude_hash: Hash of one token to keep (the caller's own session)

        Returns:
            Number of tokens revoked
        """
        reason = reason or REVOKE_ALL_REASON
        count = await self.repository.update_many(
            TokenFilter(user_id=user_id, revoked=False, exclude_hash=exclude_hash),
            revoked_at=self.clock(),
            revoked_reason=reason,
        )
        logger.info(f"Revoked {count} tokens for user {user_id}. Reason: {reason}")
        return count

    async def revoke_all_refresh(self, user_id: str, reason: str | None = None) -> int:
        """Revoke every non-revoked refresh token of a user."""
        return await self.repository.update_many(
            TokenFilter(user_id=user_id, type=TokenType.REFRESH, revoked=False),
            revoked_at=self.clock(),
            revoked_reason=reason or REVOKE_REFRESH_REASON,
        )

    async def rotate(
        self,
        raw_refresh_token: str,
        user_id: str,
        role: Role | str,
        provenance: RequestContext | None = None,
    ) -> TokenPair:
        """
        Redeem a refresh token: revoke it, then issue a fresh pair.

        If the revocation changes nothing, another request redeemed (or
        revoked) the same token first and this one is a replay. A token with
        no ledger record is recorded as revoked on redemption, so it cannot be
        redeemed twice either.

        Raises:
            TokenRevokedError: The token was already revoked
        """
        if not await self.revoke(raw_refresh_token, REFRESH_ROTATION_REASON):
            if await self.find(raw_refresh_token) is not None:
                logger.warning(f"Refresh token replay rejected for user {user_id}")
                raise TokenRevokedError()
            await self._record_redeemed(raw_refresh_token, user_id)

        return await self.issue_pair(user_id, role, provenance)

    async def _record_redeemed(self, raw_refresh_token: str, user_id: str) -> None:
        now = self.clock()
        claims = self.signer.inspect(raw_refresh_token) or {}
        exp = claims.get("exp")
        if isinstance(exp, (int, float)):
            expires_at = datetime.fromtimestamp(exp, UTC)
        else:
            expires_at = now + self.refresh_ttl

        record = TokenRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            token_hash=hash_token(raw_refresh_token),
            type=TokenType.REFRESH,
            expires_at=expires_at,
            created_at=now,
            revoked_at=now,
            revoked_reason=REFRESH_ROTATION_REASON,
        )
        try:
            await self.repository.create(record)
        except ConflictError:
            # A concurrent redemption recorded it first
            logger.warning(f"Refresh token replay rejected for user {user_id}")
            raise TokenRevokedError() from None
        logger.info(f"Recorded unledgered refresh token as redeemed for user {user_id}")

    async def active_tokens(
        self, user_id: str, token_type: TokenType | None = None
    ) -> list[TokenRecord]:
        """List live, non-deleted tokens of a user, newest first."""
        return await self.repository.find_many(
            TokenFilter(
                user_id=user_id,
                type=token_type,
                revoked=False,
                deleted=False,
                live_at=self.clock(),
            )
        )

    async def cleanup_expired(self) -> int:
        """
        Stamp ``deleted_at`` on expired records.

        A retention sweep, not a security boundary: expired tokens already
        fail ``verify``.
        """
        now = self.clock()
        count = await self.repository.update_many(
            TokenFilter(expired_before=now, deleted=False),
            deleted_at=now,
        )
        logger.info(f"Cleaned up {count} expired tokens")
        return count
