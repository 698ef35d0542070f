"""
PasswordHasher interface for the Warden authentication core.

Security considerations:
- Hashes must be one-way and salted
- Comparison must be constant-time with respect to the stored digest
- Plaintext passwords must never be logged or persisted
"""

from abc import ABC, abstractmethod


class PasswordHasher(ABC):
    """
    Abstract base class for password hashing primitives.

    Implementations wrap a vetted library (bcrypt, argon2) and expose only
    the two operations the credential validator and registrar need.

    Security requirements:
    - ``hash`` MUST generate a fresh salt per call
    - ``compare`` MUST return False (not raise) for malformed digests
    - ``compare`` MUST use the library's constant-time verification
    """

    @abstractmethod
    def hash(self, plaintext: str) -> str:
        """
        Hash a plaintext password.

        Args:
            plaintext: Password as entered by the user

        Returns:
            Encoded digest suitable for storage
        """
        pass

    @abstractmethod
    def compare(self, plaintext: str, digest: str) -> bool:
        """
        Check a plaintext password against a stored digest.

        Args:
            plaintext: Password to verify
            digest: Digest previously produced by ``hash``

        Returns:
            True if the password matches, False otherwise
        """
        pass
