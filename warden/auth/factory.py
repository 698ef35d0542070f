"""
Auth system factory.

Builds a fully wired AuthSystem from AuthSettings. Backends are either
bundled names ("memory", "bcrypt", "argon2") or import paths in the form
``module.path:ClassName``; custom classes are instantiated with no
arguments and must implement the matching interface.
"""

import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from .audit import AuditRecorder
from .audit_sink import AuditSink
from .background import BackgroundTasks
from .config.schema import AuthSettings
from .credential_validator import CredentialValidator
from .exceptions import ConfigurationError
from .login_history import LoginHistoryStore
from .orchestrator import AuthOrchestrator
from .password_hasher import PasswordHasher
from .policy_engine import PolicyEngine
from .registration import UserRegistrar
from .token_ledger import TokenLedger
from .token_repository import TokenRepository
from .user_store import UserStore
from .utils import Clock, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackendLoader:
    """Loads backend classes from module paths."""

    @staticmethod
    def load_class(module_path: str) -> type:
        """
        Load a class from a module path like 'module.path:ClassName'.

        Raises:
            ConfigurationError: If the module or class cannot be loaded
        """
        if ":" not in module_path:
            raise ConfigurationError(
                f"Invalid module path format: {module_path}. Expected 'module:class'"
            )

        module_name, class_name = module_path.rsplit(":", 1)
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ConfigurationError(f"Could not import module '{module_name}': {e}") from e

        try:
            return getattr(module, class_name)
        except AttributeError as e:
            raise ConfigurationError(
                f"Class '{class_name}' not found in module '{module_name}'"
            ) from e

    @classmethod
    def instantiate(cls, module_path: str, interface: type[T]) -> T:
        backend_class = cls.load_class(module_path)
        if not isinstance(backend_class, type) or not issubclass(backend_class, interface):
            raise ConfigurationError(f"Class {backend_class} is not a {interface.__name__}")
        return backend_class()


@dataclass
class AuthSystem:
    """Every component of a wired auth system."""

    settings: AuthSettings
    hasher: PasswordHasher
    users: UserStore
    tokens: TokenRepository
    audit_sink: AuditSink
    login_history: LoginHistoryStore
    background: BackgroundTasks
    ledger: TokenLedger
    validator: CredentialValidator
    policy: PolicyEngine
    registrar: UserRegistrar
    orchestrator: AuthOrchestrator


def create_password_hasher(settings: AuthSettings) -> PasswordHasher:
    hasher = settings.password.hasher
    if hasher == "bcrypt":
        from warden.bundled.auth.hashers import BcryptPasswordHasher

        return BcryptPasswordHasher(rounds=settings.password.bcrypt_rounds)
    if hasher == "argon2":
        from warden.bundled.auth.hashers import Argon2PasswordHasher

        return Argon2PasswordHasher(
            time_cost=settings.password.argon2_time_cost,
            memory_cost=settings.password.argon2_memory_cost,
        )
    if ":" in hasher:
        return BackendLoader.instantiate(hasher, PasswordHasher)
    raise ConfigurationError(f"Unknown password hasher: {hasher}")


def _create_backend(
    name: str, bundled: dict[str, Callable[[], T]], interface: type[T]
) -> T:
    if ":" in name:
        return BackendLoader.instantiate(name, interface)
    if name in bundled:
        return bundled[name]()
    raise ConfigurationError(f"Unknown {interface.__name__} backend: {name}")


def create_auth_system(
    settings: AuthSettings,
    clock: Clock = utcnow,
    background: BackgroundTasks | None = None,
) -> AuthSystem:
    """
    Wire every component from settings by explicit constructor composition.

    Memory backends share a single MemoryStore so one process sees a
    consistent view of users and tokens.

    Args:
        settings: Validated configuration
        clock: Time source for lockouts, token records and audit events
        background: Dispatcher for secondary effects; a new one by default

    Raises:
        ConfigurationError: If a backend cannot be loaded
    """
    from warden.bundled.auth.memory import (
        MemoryAuditSink,
        MemoryLoginHistoryStore,
        MemoryStore,
        MemoryTokenRepository,
        MemoryUserStore,
    )
    from warden.bundled.auth.tokens import JwtTokenSigner

    store = MemoryStore()
    storage = settings.storage

    users = _create_backend(
        storage.users, {"memory": lambda: MemoryUserStore(store, clock)}, UserStore
    )
    tokens = _create_backend(
        storage.tokens, {"memory": lambda: MemoryTokenRepository(store)}, TokenRepository
    )
    audit_sink = _create_backend(
        storage.audit, {"memory": lambda: MemoryAuditSink(store)}, AuditSink
    )
    login_history = _create_backend(
        storage.login_history,
        {"memory": lambda: MemoryLoginHistoryStore(store)},
        LoginHistoryStore,
    )

    hasher = create_password_hasher(settings)
    background = background or BackgroundTasks()

    signer = JwtTokenSigner(
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        issuer=settings.issuer,
        audience=settings.audience,
    )
    ledger = TokenLedger(
        signer,
        tokens,
        access_ttl=settings.access_ttl,
        refresh_ttl=settings.refresh_ttl,
        clock=clock,
    )
    validator = CredentialValidator(
        users,
        hasher,
        max_failed_attempts=settings.lockout.max_failed_attempts,
        lockout_duration=settings.lockout.duration_delta,
        clock=clock,
    )
    policy = PolicyEngine()
    audit = AuditRecorder(audit_sink, background, clock=clock)
    registrar = UserRegistrar(users, hasher, audit)

    orchestrator = AuthOrchestrator(
        validator=validator,
        ledger=ledger,
        policy=policy,
        user_store=users,
        registrar=registrar,
        audit=audit,
        login_history=login_history,
        background=background,
        clock=clock,
    )

    logger.info(
        f"Auth system created (hasher={settings.password.hasher}, "
        f"algorithm={settings.jwt_algorithm}, storage={storage.users}/{storage.tokens})"
    )
    return AuthSystem(
        settings=settings,
        hasher=hasher,
        users=users,
        tokens=tokens,
        audit_sink=audit_sink,
        login_history=login_history,
        background=background,
        ledger=ledger,
        validator=validator,
        policy=policy,
        registrar=registrar,
        orchestrator=orchestrator,
    )
