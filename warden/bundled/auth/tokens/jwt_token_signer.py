"""
JWT-based token signer implementation.

Provides HMAC-signed JSON Web Tokens with configurable algorithm, issuer
and audience. Expiry is enforced by PyJWT at decode time.
"""

import logging
from datetime import timedelta
from typing import Any

import jwt

from warden.auth.token_signer import TokenSigner
from warden.auth.utils import Clock, utcnow

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")


class JwtTokenSigner(TokenSigner):
    """JWT-based token signer."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        audience: str | None = None,
        clock: Clock = utcnow,
    ):
        """
        Initialize JWT token signer.

        Args:
            secret_key: Secret key for JWT signing (required)
            algorithm: JWT algorithm (default: HS256)
            issuer: Token issuer, checked on decode when set
            audience: Token audience, checked on decode when set
            clock: Source of the ``iat`` and ``exp`` timestamps
        """
        if not secret_key:
            raise ValueError("JWT token signer requires a secret key")

        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported JWT algorithm: {algorithm}")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.clock = clock

    def sign(self, claims: dict[str, Any], ttl: timedelta) -> str:
        issued_at = self.clock()
        payload = {
            **claims,
            "iat": int(issued_at.timestamp()),  # Issued at
            "exp": int((issued_at + ttl).timestamp()),  # Expires at
        }

        if self.issuer:
            payload["iss"] = self.issuer
        if self.audience:
            payload["aud"] = self.audience

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode(self, token: str) -> dict[str, Any] | None:
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("JWT rejected: expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug(f"JWT rejected: {e}")
            return None

    def inspect(self, token: str) -> dict[str, Any] | None:
        try:
            return jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False, "verify_aud": False},
            )
        except jwt.InvalidTokenError:
            return None

