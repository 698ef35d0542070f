"""
TokenSigner interface for the Warden authentication core.

The signer owns signature and expiry verification. The ledger only tracks
revocation state, so both layers must be consulted before trusting a token.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any


class TokenSigner(ABC):
    """
    Abstract base class for bearer token signers.

    Security requirements:
    - ``sign`` MUST embed an expiry exactly ``ttl`` after issuance
    - ``decode`` MUST verify signature and expiry and return None on any failure
    - ``inspect`` MUST NOT be used for trust decisions
    """

    @abstractmethod
    def sign(self, claims: dict[str, Any], ttl: timedelta) -> str:
        """
        Sign a claim set into an opaque bearer token.

        Args:
            claims: Claims to embed (user id, role, token type, ...)
            ttl: Lifetime of the token from now

        Returns:
            Encoded token string
        """
        pass

    @abstractmethod
    def decode(self, token: str) -> dict[str, Any] | None:
        """
        Verify and decode a token.

        Returns:
            Claims if the signature and expiry are valid, None otherwise
        """
        pass

    @abstractmethod
    def inspect(self, token: str) -> dict[str, Any] | None:
        """
        Decode a token without verifying it.

        Used to explain a rejection (e.g. expired vs. tampered). Never use the
        result to grant access.
        """
        pass
