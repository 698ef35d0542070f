"""
Test suite for the Warden authentication core.

Covers the credential lockout state machine, the token ledger, the policy
engine, the orchestrated session flows, the bundled backends and the
configuration layer.
"""
