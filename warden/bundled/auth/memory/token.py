"""Memory-based token repository."""

import logging
from typing import Any

from warden.auth.exceptions import ConflictError
from warden.auth.token_repository import TokenFilter, TokenRepository
from warden.auth.types import TokenRecord

from .store import MemoryStore

logger = logging.getLogger(__name__)

_TOKENS = "tokens"
_PATCHABLE = frozenset({"revoked_at", "revoked_reason", "deleted_at"})


class MemoryTokenRepository(TokenRepository):
    """Token records keyed by hash.

    ``update_many`` runs under the store lock, so concurrent revocations of
    one token see exactly one winner.
    """

    def __init__(self, store: MemoryStore | None = None):
        self.store = store or MemoryStore()

    async def create(self, record: TokenRecord) -> TokenRecord:
        with self.store.locked():
            if self.store.exists(_TOKENS, record.token_hash):
                raise ConflictError("Token hash already recorded")
            self.store.set(_TOKENS, record.token_hash, record)
        return record

    async def find_by_hash(self, token_hash: str) -> TokenRecord | None:
        return self.store.get(_TOKENS, token_hash)

    async def find_many(self, token_filter: TokenFilter) -> list[TokenRecord]:
        records = self.store.find(_TOKENS, token_filter.matches)
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    async def update_many(self, token_filter: TokenFilter, **patch: Any) -> int:
        unknown = set(patch) - _PATCHABLE
        if unknown:
            raise ValueError(f"Token fields are not patchable: {', '.join(sorted(unknown))}")

        def apply(record: TokenRecord) -> None:
            for key, value in patch.items():
                setattr(record, key, value)

        return self.store.update_where(_TOKENS, token_filter.matches, apply)
