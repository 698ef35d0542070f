"""Warden: credential validation, token ledger and role-based policies."""

__version__ = "0.1.0"
