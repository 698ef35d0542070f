"""
TokenRepository interface for the Warden authentication core.

Token records are append-only with respect to revocation: once
``revoked_at`` is set it is never cleared, and rows are never physically
deleted (the retention sweep only stamps ``deleted_at``).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .types import TokenRecord, TokenType


@dataclass(frozen=True)
class TokenFilter:
    """
    Selection criteria for bulk token queries and updates.

    ``None`` means "don't care" for every field. ``revoked=False`` selects
    records whose ``revoked_at`` is null; ``deleted=False`` does the same for
    ``deleted_at``. ``expired_before`` selects records whose ``expires_at`` is
    strictly earlier, ``live_at`` records whose ``expires_at`` is later.
    """

    user_id: str | None = None
    token_hash: str | None = None
    exclude_hash: str | None = None
    type: TokenType | None = None
    revoked: bool | None = None
    deleted: bool | None = None
    expired_before: datetime | None = None
    live_at: datetime | None = None

    def matches(self, record: TokenRecord) -> bool:
        if self.user_id is not None and record.user_id != self.user_id:
            return False
        if self.token_hash is not None and record.token_hash != self.token_hash:
            return False
        if self.exclude_hash is not None and record.token_hash == self.exclude_hash:
            return False
        if self.type is not None and record.type != self.type:
            return False
        if self.revoked is not None and record.is_revoked() != self.revoked:
            return False
        if self.deleted is not None and (record.deleted_at is not None) != self.deleted:
            return False
        if self.expired_before is not None and not record.expires_at < self.expired_before:
            return False
        if self.live_at is not None and not record.expires_at > self.live_at:
            return False
        return True


class TokenRepository(ABC):
    """Abstract base class for token record storage."""

    @abstractmethod
    async def create(self, record: TokenRecord) -> TokenRecord:
        """
        Persist a new token record.

        Raises:
            ConflictError: If a record with the same hash already exists
        """
        pass

    @abstractmethod
    async def find_by_hash(self, token_hash: str) -> TokenRecord | None:
        pass

    @abstractmethod
    async def find_many(self, token_filter: TokenFilter) -> list[TokenRecord]:
        """Return matching records, newest first."""
        pass

    @abstractmethod
    async def update_many(self, token_filter: TokenFilter, **patch: Any) -> int:
        """
        Apply ``patch`` to every matching record.

        The filter and the write must be evaluated together so that a
        ``revoked=False`` filter never overwrites an existing revocation.

        Returns:
            Number of records updated
        """
        pass
