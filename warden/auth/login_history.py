"""LoginHistoryStore interface: one entry per login, closed on logout."""

from abc import ABC, abstractmethod
from datetime import datetime

from .types import LoginHistoryEntry


class LoginHistoryStore(ABC):
    """Abstract base class for login history storage."""

    @abstractmethod
    async def record_login(
        self,
        user_id: str,
        ip_address: str | None,
        user_agent: str | None,
        at: datetime,
    ) -> LoginHistoryEntry:
        pass

    @abstractmethod
    async def record_logout(
        self, user_id: str, user_agent: str | None, at: datetime
    ) -> int:
        """
        Close every open entry of ``user_id`` that matches ``user_agent``.

        Returns:
            Number of entries closed
        """
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[LoginHistoryEntry]:
        pass
