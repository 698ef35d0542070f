"""
Tests for the token ledger: issuance, verification, revocation, rotation.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from warden.auth import TokenLedger
from warden.auth.exceptions import InternalError, TokenRevokedError
from warden.auth.token_ledger import REFRESH_ROTATION_REASON, REVOKE_ALL_REASON
from warden.auth.types import RequestContext, Role, TokenType
from warden.auth.utils import hash_token


class TestIssue:
    @pytest.mark.asyncio
    async def test_stores_hash_never_raw_token(self, ledger, token_repository):
        issued = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)

        record = await token_repository.find_by_hash(hash_token(issued.value))
        assert record is not None
        assert record.token_hash == hash_token(issued.value)
        assert issued.value not in vars(record).values()

    @pytest.mark.asyncio
    async def test_claims_and_expiry(self, ledger, signer, clock):
        issued = await ledger.issue("user-1", Role.ADMIN, TokenType.REFRESH)

        claims = signer.decode(issued.value)
        assert claims["user_id"] == "user-1"
        assert claims["role"] == "ADMIN"
        assert claims["type"] == "refresh"
        assert issued.record.expires_at == clock.now + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_default_access_ttl_is_one_day(self, ledger, clock):
        issued = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)

        assert issued.record.expires_at == clock.now + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_tokens_issued_together_are_unique(self, ledger):
        first = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)
        second = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)

        assert first.value != second.value
        assert first.record.token_hash != second.record.token_hash

    @pytest.mark.asyncio
    async def test_provenance_is_recorded(self, ledger):
        context = RequestContext(ip_address="10.0.0.2", user_agent="pytest", device_info="ci")

        issued = await ledger.issue("user-1", Role.USER, TokenType.ACCESS, provenance=context)

        assert issued.record.ip_address == "10.0.0.2"
        assert issued.record.user_agent == "pytest"
        assert issued.record.device_info == "ci"


class TestIssuePair:
    @pytest.mark.asyncio
    async def test_issues_access_and_refresh(self, ledger, signer):
        pair = await ledger.issue_pair("user-1", Role.USER)

        assert signer.decode(pair.access_token)["type"] == "access"
        assert signer.decode(pair.refresh_token)["type"] == "refresh"
        assert await ledger.verify(pair.access_token)
        assert await ledger.verify(pair.refresh_token)

    @pytest.mark.asyncio
    async def test_partial_failure_is_an_internal_error(self, signer, token_repository, clock):
        original_create = token_repository.create
        calls = 0

        async def flaky_create(record):
            nonlocal calls
            calls += 1
            if record.type == TokenType.REFRESH:
                raise RuntimeError("disk full")
            return await original_create(record)

        token_repository.create = flaky_create
        ledger = TokenLedger(signer, token_repository, clock=clock)

        with pytest.raises(InternalError):
            await ledger.issue_pair("user-1", Role.USER)

        assert calls == 2
        assert await ledger.active_tokens("user-1") == []


class TestVerify:
    @pytest.mark.asyncio
    async def test_unknown_token_is_accepted(self, ledger):
        assert await ledger.verify("never-issued") is True

    @pytest.mark.asyncio
    async def test_revoked_token_fails(self, ledger):
        issued = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)

        await ledger.revoke(issued.value, "test")

        assert await ledger.verify(issued.value) is False

    @pytest.mark.asyncio
    async def test_expired_record_fails(self, ledger, clock):
        issued = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)

        clock.advance(days=1)

        assert await ledger.verify(issued.value) is False


class TestRevoke:
    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, ledger, clock):
        issued = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)

        assert await ledger.revoke(issued.value, "first") is True
        first_revoked_at = (await ledger.find(issued.value)).revoked_at
        clock.advance(minutes=1)
        assert await ledger.revoke(issued.value, "second") is False

        record = await ledger.find(issued.value)
        assert record.revoked_at == first_revoked_at
        assert record.revoked_reason == "first"

    @pytest.mark.asyncio
    async def test_revoke_unknown_token(self, ledger):
        assert await ledger.revoke("never-issued") is False

    @pytest.mark.asyncio
    async def test_revoke_all_counts_and_reason(self, ledger):
        await ledger.issue_pair("user-1", Role.USER)
        await ledger.issue_pair("user-1", Role.USER)
        other = await ledger.issue_pair("user-2", Role.USER)

        count = await ledger.revoke_all("user-1")

        assert count == 4
        assert await ledger.active_tokens("user-1") == []
        assert await ledger.verify(other.access_token)
        assert await ledger.revoke_all("user-1") == 0

    @pytest.mark.asyncio
    async def test_revoke_all_default_reason(self, ledger):
        pair = await ledger.issue_pair("user-1", Role.USER)

        await ledger.revoke_all("user-1")

        record = await ledger.find(pair.access_token)
        assert record.revoked_reason == REVOKE_ALL_REASON

    @pytest.mark.asyncio
    async def test_revoke_all_with_exclusion(self, ledger):
        keep = await ledger.issue_pair("user-1", Role.USER)
        drop = await ledger.issue_pair("user-1", Role.USER)

        count = await ledger.revoke_all(
            "user-1", "other sessions", exclude_hash=hash_token(keep.access_token)
        )

        assert count == 3
        assert await ledger.verify(keep.access_token)
        assert not await ledger.verify(keep.refresh_token)
        assert not await ledger.verify(drop.access_token)

    @pytest.mark.asyncio
    async def test_revoke_all_refresh_keeps_access_tokens(self, ledger):
        pair = await ledger.issue_pair("user-1", Role.USER)

        assert await ledger.revoke_all_refresh("user-1") == 1

        assert await ledger.verify(pair.access_token)
        assert not await ledger.verify(pair.refresh_token)
        record = await ledger.find(pair.refresh_token)
        assert record.revoked_reason == "Refresh tokens revoked"


class TestRotate:
    @pytest.mark.asyncio
    async def test_rotation_revokes_old_refresh_token(self, ledger):
        pair = await ledger.issue_pair("user-1", Role.USER)

        new_pair = await ledger.rotate(pair.refresh_token, "user-1", Role.USER)

        old = await ledger.find(pair.refresh_token)
        assert old.revoked_reason == REFRESH_ROTATION_REASON
        assert await ledger.verify(new_pair.refresh_token)
        assert new_pair.refresh_token != pair.refresh_token

    @pytest.mark.asyncio
    async def test_second_rotation_of_same_token_fails(self, ledger):
        pair = await ledger.issue_pair("user-1", Role.USER)
        await ledger.rotate(pair.refresh_token, "user-1", Role.USER)

        with pytest.raises(TokenRevokedError):
            await ledger.rotate(pair.refresh_token, "user-1", Role.USER)

    @pytest.mark.asyncio
    async def test_concurrent_rotation_has_one_winner(self, ledger):
        pair = await ledger.issue_pair("user-1", Role.USER)

        results = await asyncio.gather(
            ledger.rotate(pair.refresh_token, "user-1", Role.USER),
            ledger.rotate(pair.refresh_token, "user-1", Role.USER),
            return_exceptions=True,
        )

        errors = [result for result in results if isinstance(result, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], TokenRevokedError)

    @pytest.mark.asyncio
    async def test_unrecorded_token_is_recorded_as_redeemed(self, ledger, signer):
        token = signer.sign({"user_id": "user-1", "role": "USER", "type": "refresh"}, timedelta(days=7))
        assert await ledger.verify(token)

        await ledger.rotate(token, "user-1", Role.USER)

        record = await ledger.find(token)
        assert record.type == TokenType.REFRESH
        assert record.revoked_reason == REFRESH_ROTATION_REASON
        assert record.expires_at == datetime.fromtimestamp(signer.inspect(token)["exp"], UTC)
        assert not await ledger.verify(token)

    @pytest.mark.asyncio
    async def test_unrecorded_token_cannot_be_redeemed_twice(self, ledger, signer):
        token = signer.sign({"user_id": "user-1", "role": "USER", "type": "refresh"}, timedelta(days=7))
        await ledger.rotate(token, "user-1", Role.USER)

        with pytest.raises(TokenRevokedError):
            await ledger.rotate(token, "user-1", Role.USER)

    @pytest.mark.asyncio
    async def test_concurrent_redemption_of_unrecorded_token_has_one_winner(self, ledger, signer):
        token = signer.sign({"user_id": "user-1", "role": "USER", "type": "refresh"}, timedelta(days=7))

        results = await asyncio.gather(
            ledger.rotate(token, "user-1", Role.USER),
            ledger.rotate(token, "user-1", Role.USER),
            return_exceptions=True,
        )

        errors = [result for result in results if isinstance(result, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], TokenRevokedError)


class TestActiveTokensAndCleanup:
    @pytest.mark.asyncio
    async def test_active_tokens_newest_first(self, ledger, clock):
        first = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)
        clock.advance(seconds=5)
        second = await ledger.issue("user-1", Role.USER, TokenType.ACCESS)

        active = await ledger.active_tokens("user-1")

        assert [record.id for record in active] == [second.record.id, first.record.id]

    @pytest.mark.asyncio
    async def test_active_tokens_by_type(self, ledger):
        await ledger.issue_pair("user-1", Role.USER)

        refresh = await ledger.active_tokens("user-1", TokenType.REFRESH)

        assert [record.type for record in refresh] == [TokenType.REFRESH]

    @pytest.mark.asyncio
    async def test_cleanup_marks_only_expired_records(self, ledger, clock):
        pair = await ledger.issue_pair("user-1", Role.USER)

        clock.advance(days=2)
        assert await ledger.cleanup_expired() == 1
        assert await ledger.cleanup_expired() == 0

        access = await ledger.find(pair.access_token)
        refresh = await ledger.find(pair.refresh_token)
        assert access.deleted_at == clock.now
        assert refresh.deleted_at is None

    @pytest.mark.asyncio
    async def test_repository_failure_propagates_from_revoke(self, ledger, token_repository):
        token_repository.update_many = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await ledger.revoke("anything")


def test_ttls_must_be_positive(signer, token_repository):
    with pytest.raises(ValueError):
        TokenLedger(signer, token_repository, access_ttl=timedelta(0))
