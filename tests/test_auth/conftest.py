"""
Pytest configuration and shared fixtures for auth tests.
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from warden.auth import (
    AuditRecorder,
    AuthOrchestrator,
    BackgroundTasks,
    CredentialValidator,
    PolicyEngine,
    TokenLedger,
    UserRegistrar,
)
from warden.auth.utils import utcnow
from warden.bundled.auth.hashers import BcryptPasswordHasher
from warden.bundled.auth.memory import (
    MemoryAuditSink,
    MemoryLoginHistoryStore,
    MemoryStore,
    MemoryTokenRepository,
    MemoryUserStore,
)
from warden.bundled.auth.tokens import JwtTokenSigner

TEST_SECRET = "test-secret-key-must-be-long-enough-for-hs256"
STRONG_PASSWORD = "Strong@123"


class FakeClock:
    """Controllable clock. Starts at the real current time."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope="session")
def hasher():
    # Minimum work factor keeps the suite fast
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def user_store(store, clock):
    return MemoryUserStore(store, clock)


@pytest.fixture
def token_repository(store):
    return MemoryTokenRepository(store)


@pytest.fixture
def audit_sink(store):
    return MemoryAuditSink(store)


@pytest.fixture
def login_history(store):
    return MemoryLoginHistoryStore(store)


@pytest.fixture
def signer():
    return JwtTokenSigner(TEST_SECRET)


@pytest.fixture
def background():
    return BackgroundTasks()


@pytest.fixture
def ledger(signer, token_repository, clock):
    return TokenLedger(signer, token_repository, clock=clock)


@pytest.fixture
def validator(user_store, hasher, clock):
    return CredentialValidator(user_store, hasher, clock=clock)


@pytest.fixture
def audit(audit_sink, background, clock):
    return AuditRecorder(audit_sink, background, clock=clock)


@pytest.fixture
def registrar(user_store, hasher, audit):
    return UserRegistrar(user_store, hasher, audit)


@pytest.fixture
def orchestrator(validator, ledger, user_store, registrar, audit, login_history, background, clock):
    return AuthOrchestrator(
        validator=validator,
        ledger=ledger,
        policy=PolicyEngine(),
        user_store=user_store,
        registrar=registrar,
        audit=audit,
        login_history=login_history,
        background=background,
        clock=clock,
    )


@pytest_asyncio.fixture
async def alice(user_store, hasher):
    """An active user with a known password."""
    return await user_store.create(
        email="alice@example.com",
        password_hash=hasher.hash(STRONG_PASSWORD),
        first_name="Alice",
        last_name="Liddell",
    )


@pytest.fixture
def password():
    return STRONG_PASSWORD


@pytest.fixture
def make_registration():
    """Build a camelCase registration payload with overrides."""

    def build(**overrides):
        payload = {
            "firstName": "John",
            "lastName": "Doe",
            "email": "johndoe@example.com",
            "password": STRONG_PASSWORD,
            "confirmPassword": STRONG_PASSWORD,
        }
        payload.update(overrides)
        return payload

    return build
