"""
UserStore interface for the Warden authentication core.

The store is the single owner of user records. Lookups never return
soft-deleted users and return None when nothing matches.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from .types import Role, User


class UserStore(ABC):
    """
    Abstract base class for user repositories.

    Emails are unique and case-insensitive. Implementations must normalize
    them before comparing.

    ``increment_failed_attempts`` is a read-modify-write on shared per-user
    state. Concurrent failed attempts may race and undercount; callers accept
    that rather than relying on locking semantics the store does not promise.
    """

    @abstractmethod
    async def find_by_email(self, email: str) -> User | None:
        pass

    @abstractmethod
    async def find_by_id(self, user_id: str) -> User | None:
        pass

    @abstractmethod
    async def find_by_phone_number(self, phone_number: str) -> User | None:
        pass

    @abstractmethod
    async def create(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str | None = None,
        phone_number: str | None = None,
        role: Role = Role.USER,
    ) -> User:
        """
        Create a user together with its profile.

        Raises:
            ConflictError: If the email or phone number is already taken
        """
        pass

    @abstractmethod
    async def update(self, user_id: str, **changes: Any) -> User | None:
        """
        Apply a partial update to a user.

        Returns:
            The updated user, or None if no such user exists
        """
        pass

    @abstractmethod
    async def increment_failed_attempts(self, user_id: str) -> int:
        """
        Add one to the user's failed login counter.

        Returns:
            The new counter value, or 0 if the user does not exist
        """
        pass

    @abstractmethod
    async def set_last_login(
        self, user_id: str, ip_address: str | None, at: datetime
    ) -> None:
        """Record a successful login and reset the lockout state."""
        pass

    @abstractmethod
    async def soft_delete(self, user_id: str) -> User | None:
        pass

    @abstractmethod
    async def restore(self, user_id: str) -> User | None:
        pass
