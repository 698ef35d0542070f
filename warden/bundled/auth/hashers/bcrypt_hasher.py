"""
Bcrypt-based PasswordHasher implementation.

Security features:
- bcrypt password hashing with configurable rounds
- Automatic salt generation for each password
- Constant-time verification via ``bcrypt.checkpw``
"""

import logging

import bcrypt

from warden.auth.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)


class BcryptPasswordHasher(PasswordHasher):
    """
    Password hasher using bcrypt.

    Security considerations:
    - bcrypt only reads the first 72 bytes of a password; longer inputs are
      truncated by the library
    - Malformed stored digests verify as False rather than raising
    """

    def __init__(self, rounds: int = 12):
        """
        Initialize bcrypt hasher.

        Args:
            rounds: bcrypt work factor (4-31, higher = more secure/slower)
        """
        if rounds < 4 or rounds > 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")

        self.rounds = rounds
        logger.info(f"Bcrypt password hasher initialized with {rounds} rounds")

    def hash(self, plaintext: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8")[:72], salt).decode("utf-8")

    def compare(self, plaintext: str, digest: str) -> bool:
        if not digest:
            return False

        try:
            return bcrypt.checkpw(plaintext.encode("utf-8")[:72], digest.encode("utf-8"))
        except ValueError:
            logger.warning("Stored bcrypt digest is malformed")
            return False
