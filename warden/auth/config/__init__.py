"""Configuration system for authentication."""

from .loader import AuthConfigLoader
from .schema import (
    AuthSettings,
    LockoutConfig,
    PasswordConfig,
    StorageConfig,
)

__all__ = [
    # Schema models
    "AuthSettings",
    "LockoutConfig",
    "PasswordConfig",
    "StorageConfig",
    # Loading
    "AuthConfigLoader",
]
