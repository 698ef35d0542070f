"""Argon2id-based PasswordHasher implementation."""

import logging

import argon2

from warden.auth.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)


class Argon2PasswordHasher(PasswordHasher):
    """Password hasher using argon2-cffi with secure defaults."""

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 1,
        hash_len: int = 32,
        salt_len: int = 16,
    ):
        self.hasher = argon2.PasswordHasher(
            time_cost=time_cost,  # Number of iterations
            memory_cost=memory_cost,  # Memory usage in KiB
            parallelism=parallelism,
            hash_len=hash_len,
            salt_len=salt_len,
        )

    def hash(self, plaintext: str) -> str:
        return self.hasher.hash(plaintext)

    def compare(self, plaintext: str, digest: str) -> bool:
        if not digest:
            return False

        try:
            return self.hasher.verify(digest, plaintext)
        except argon2.exceptions.VerifyMismatchError:
            return False
        except (argon2.exceptions.InvalidHashError, argon2.exceptions.VerificationError):
            logger.warning("Stored argon2 digest could not be verified")
            return False

    def needs_rehash(self, digest: str) -> bool:
        """True when ``digest`` was produced with weaker parameters than ours."""
        return self.hasher.check_needs_rehash(digest)
