"""
Security utilities for the Warden authentication core.

This module provides token hashing, duration parsing and masking helpers
shared by the ledger, validator and orchestrator.

Security considerations:
- Token hashes must be deterministic so they can be used as lookup keys
- Raw tokens and passwords must never reach the logs
"""

import hashlib
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

Clock = Callable[[], datetime]

DEFAULT_DURATION = timedelta(days=1)

_DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$")
_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "password_hash",
        "confirm_password",
        "token",
        "access_token",
        "refresh_token",
        "secret",
        "jwt_secret",
    }
)


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def hash_token(token: str) -> str:
    """
    Return the SHA-256 hex digest of a raw token.

    The digest is what the ledger stores and looks up; the raw token value
    is never persisted. SHA-256 is deterministic and collision resistant, so
    equal digests imply equal tokens for lookup purposes.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def parse_duration(value: str | int | timedelta) -> timedelta:
    """
    Convert a duration such as ``"15m"`` or ``"7d"`` into a timedelta.

    Integers are taken as seconds. Strings that do not match
    ``<digits><s|m|h|d>`` fall back to one day.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)

    match = _DURATION_PATTERN.match(value.strip())
    if not match:
        return DEFAULT_DURATION

    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def mask_sensitive_data(data: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of ``data`` with secret-bearing values replaced.

    Nested dictionaries are masked recursively. Used before audit payloads
    and log lines leave the core.
    """
    masked: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in SENSITIVE_KEYS:
            masked[key] = "***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        else:
            masked[key] = value
    return masked


def token_fingerprint(token: str) -> str:
    """Short, non-reversible identifier for a token, safe to log."""
    return hash_token(token)[:12]
