"""Memory-based user store."""

import logging
import uuid
from dataclasses import fields
from datetime import datetime
from typing import Any

from warden.auth.exceptions import ConflictError
from warden.auth.types import Role, User, UserProfile, UserStatus
from warden.auth.user_store import UserStore
from warden.auth.utils import Clock, utcnow

from .store import MemoryStore

logger = logging.getLogger(__name__)

_USERS = "users"
_USER_FIELDS = frozenset(f.name for f in fields(User)) - {"id", "created_at"}
_PROFILE_FIELDS = frozenset({"first_name", "last_name", "phone_number"})


def normalize_email(email: str) -> str:
    return email.strip().lower()


class MemoryUserStore(UserStore):
    """User store backed by MemoryStore.

    Emails are matched case-insensitively. Soft-deleted users are invisible
    to lookups but keep their email and phone number reserved.
    """

    def __init__(self, store: MemoryStore | None = None, clock: Clock = utcnow):
        self.store = store or MemoryStore()
        self.clock = clock

    async def find_by_email(self, email: str) -> User | None:
        email = normalize_email(email)
        return self.store.find_one(
            _USERS, lambda user: user.email == email and not user.is_deleted()
        )

    async def find_by_id(self, user_id: str) -> User | None:
        user = self.store.get(_USERS, user_id)
        if user is None or user.is_deleted():
            return None
        return user

    async def find_by_phone_number(self, phone_number: str) -> User | None:
        return self.store.find_one(
            _USERS,
            lambda user: user.profile is not None
            and user.profile.phone_number == phone_number
            and not user.is_deleted(),
        )

    async def create(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str | None = None,
        phone_number: str | None = None,
        role: Role = Role.USER,
    ) -> User:
        email = normalize_email(email)
        user_id = str(uuid.uuid4())

        with self.store.locked():
            if self.store.find_one(_USERS, lambda user: user.email == email):
                raise ConflictError("Email already in use.")
            if phone_number and self.store.find_one(
                _USERS,
                lambda user: user.profile is not None
                and user.profile.phone_number == phone_number,
            ):
                raise ConflictError("Phone number already in use.")

            user = User(
                id=user_id,
                email=email,
                password_hash=password_hash,
                role=role,
                status=UserStatus.PENDING_VERIFICATION,
                profile=UserProfile(
                    user_id=user_id,
                    first_name=first_name,
                    last_name=last_name,
                    phone_number=phone_number,
                ),
                created_at=self.clock(),
            )
            self.store.set(_USERS, user_id, user)

        logger.debug(f"Created user {user_id}")
        return self.store.get(_USERS, user_id)

    async def update(self, user_id: str, **changes: Any) -> User | None:
        unknown = set(changes) - _USER_FIELDS - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {', '.join(sorted(unknown))}")

        def apply(user: User) -> None:
            for key, value in changes.items():
                if key in _PROFILE_FIELDS and user.profile is not None:
                    setattr(user.profile, key, value)
                elif key in _USER_FIELDS:
                    setattr(user, key, value)
            user.updated_at = self.clock()

        updated = self.store.update_where(_USERS, lambda user: user.id == user_id, apply)
        return self.store.get(_USERS, user_id) if updated else None

    async def increment_failed_attempts(self, user_id: str) -> int:
        with self.store.locked():

            def bump(user: User) -> None:
                user.failed_login_attempts += 1

            if not self.store.update_where(_USERS, lambda user: user.id == user_id, bump):
                return 0
            return self.store.get(_USERS, user_id).failed_login_attempts

    async def set_last_login(
        self, user_id: str, ip_address: str | None, at: datetime
    ) -> None:
        def apply(user: User) -> None:
            user.last_login_at = at
            user.last_login_ip = ip_address
            user.failed_login_attempts = 0
            user.locked_until = None

        self.store.update_where(_USERS, lambda user: user.id == user_id, apply)

    async def soft_delete(self, user_id: str) -> User | None:
        return await self._set_deleted(user_id, self.clock())

    async def restore(self, user_id: str) -> User | None:
        return await self._set_deleted(user_id, None)

    async def _set_deleted(self, user_id: str, deleted_at: datetime | None) -> User | None:
        def apply(user: User) -> None:
            user.deleted_at = deleted_at
            if user.profile is not None:
                user.profile.deleted_at = deleted_at

        if not self.store.update_where(_USERS, lambda user: user.id == user_id, apply):
            return None
        return self.store.get(_USERS, user_id)
