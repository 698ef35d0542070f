"""Memory-based backends for the authentication core.

Suitable for development, testing and single-process deployments. All
backends can share one MemoryStore.
"""

from .audit import MemoryAuditSink
from .login_history import MemoryLoginHistoryStore
from .store import MemoryStore
from .token import MemoryTokenRepository
from .user import MemoryUserStore

__all__ = [
    "MemoryStore",
    "MemoryUserStore",
    "MemoryTokenRepository",
    "MemoryAuditSink",
    "MemoryLoginHistoryStore",
]
