"""Memory-based login history store."""

import uuid
from datetime import datetime

from warden.auth.login_history import LoginHistoryStore
from warden.auth.types import LoginHistoryEntry

from .store import MemoryStore

_HISTORY = "login_history"


class MemoryLoginHistoryStore(LoginHistoryStore):
    def __init__(self, store: MemoryStore | None = None):
        self.store = store or MemoryStore()

    async def record_login(
        self,
        user_id: str,
        ip_address: str | None,
        user_agent: str | None,
        at: datetime,
    ) -> LoginHistoryEntry:
        entry = LoginHistoryEntry(
            id=str(uuid.uuid4()),
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            login_at=at,
        )
        self.store.set(_HISTORY, entry.id, entry)
        return entry

    async def record_logout(
        self, user_id: str, user_agent: str | None, at: datetime
    ) -> int:
        def is_open_session(entry: LoginHistoryEntry) -> bool:
            return (
                entry.user_id == user_id
                and entry.user_agent == user_agent
                and entry.logout_at is None
            )

        def close(entry: LoginHistoryEntry) -> None:
            entry.logout_at = at

        return self.store.update_where(_HISTORY, is_open_session, close)

    async def list_for_user(self, user_id: str) -> list[LoginHistoryEntry]:
        entries = self.store.find(_HISTORY, lambda entry: entry.user_id == user_id)
        return sorted(entries, key=lambda entry: entry.login_at, reverse=True)
