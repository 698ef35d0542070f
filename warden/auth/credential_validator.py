"""
Credential validation and account lockout.

State machine per account, driven by ``failed_login_attempts`` and
``locked_until`` on the user record:

    open --(mismatch, count < threshold)--> open
    open --(mismatch, count >= threshold)--> locked
    locked --(now >= locked_until)--> open (counter untouched)
    open --(success)--> open (counter reset, lock cleared)

The lock is checked before the password, so a locked account never reveals
whether the submitted password was right. Because the counter is not reset
when a lock expires, one more mismatch after expiry locks the account again.
"""

import logging
from datetime import timedelta

from .background import run_quietly
from .exceptions import (
    AccountDeactivatedError,
    AccountLockedError,
    InvalidCredentialsError,
)
from .password_hasher import PasswordHasher
from .types import RequestContext, User
from .user_store import UserStore
from .utils import Clock, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_FAILED_ATTEMPTS = 5
DEFAULT_LOCKOUT_DURATION = timedelta(minutes=15)


class CredentialValidator:
    """
    Validates email/password pairs against the user store.

    Security considerations:
    - Unknown email and wrong password raise the same InvalidCredentialsError
    - Unknown emails still pay for one hash comparison against a dummy digest
    - The failed-attempt increment is a side effect of a failing call and
      happens before the error is raised
    - The counter update is a read-modify-write; concurrent failures on one
      account may undercount, which is an accepted limitation
    """

    def __init__(
        self,
        user_store: UserStore,
        hasher: PasswordHasher,
        max_failed_attempts: int = DEFAULT_MAX_FAILED_ATTEMPTS,
        lockout_duration: timedelta = DEFAULT_LOCKOUT_DURATION,
        clock: Clock = utcnow,
    ):
        if max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        if lockout_duration <= timedelta(0):
            raise ValueError("lockout_duration must be positive")

        self.user_store = user_store
        self.hasher = hasher
        self.max_failed_attempts = max_failed_attempts
        self.lockout_duration = lockout_duration
        self.clock = clock
        self._dummy_digest: str | None = None

    async def validate(
        self, email: str, password: str, context: RequestContext | None = None
    ) -> User:
        """
        Validate credentials and return the matching user.

        Args:
            email: Login email (case-insensitive)
            password: Plaintext password
            context: Request provenance; the IP is recorded on success

        Returns:
            The authenticated user

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountLockedError: Lockout window still open
            AccountDeactivatedError: Account is deactivated
        """
        user = await self.user_store.find_by_email(email)
        if user is None:
            self._equalize_timing(password)
            logger.warning("Login failed: unknown email")
            raise InvalidCredentialsError()

        now = self.clock()
        if user.is_locked(now):
            logger.warning(f"Login rejected for locked user {user.id}")
            raise AccountLockedError(details={"locked_until": user.locked_until.isoformat()})

        if not user.is_active:
            logger.warning(f"Login rejected for deactivated user {user.id}")
            raise AccountDeactivatedError()

        if not self.hasher.compare(password, user.password_hash):
            await self._register_failure(user)
            raise InvalidCredentialsError()

        ip_address = context.ip_address if context else None
        await run_quietly(
            lambda: self.user_store.set_last_login(user.id, ip_address, now),
            f"set_last_login:{user.id}",
        )
        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login_at = now
        user.last_login_ip = ip_address
        return user

    async def _register_failure(self, user: User) -> None:
        attempts = await self.user_store.increment_failed_attempts(user.id)
        logger.warning(f"Login failed for user {user.id}: invalid password (attempt {attempts})")

        if attempts >= self.max_failed_attempts:
            locked_until = self.clock() + self.lockout_duration
            await self.user_store.update(user.id, locked_until=locked_until)
            logger.info(f"User {user.id} locked until {locked_until.isoformat()}")

    def _equalize_timing(self, password: str) -> None:
        if self._dummy_digest is None:
            self._dummy_digest = self.hasher.hash("warden-timing-equalizer")
        self.hasher.compare(password, self._dummy_digest)
