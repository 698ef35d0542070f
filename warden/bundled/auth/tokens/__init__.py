"""Bundled token signer implementations."""

from .jwt_token_signer import JwtTokenSigner

__all__ = ["JwtTokenSigner"]
