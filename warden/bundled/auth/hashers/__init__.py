"""Bundled password hasher implementations."""

from .argon2_hasher import Argon2PasswordHasher
from .bcrypt_hasher import BcryptPasswordHasher

__all__ = ["Argon2PasswordHasher", "BcryptPasswordHasher"]
