"""
AuditSink interface for the Warden authentication core.

The core only produces AuditEvent payloads. Storage, retention and retry
belong to the sink. Sinks are called from detached tasks; whatever they
raise is logged by the dispatcher and never reaches the caller of the
primary operation.
"""

from abc import ABC, abstractmethod

from .types import AuditEvent


class AuditSink(ABC):
    """Abstract base class for audit event consumers."""

    @abstractmethod
    async def record(self, event: AuditEvent) -> None:
        """
        Accept an audit event.

        Args:
            event: Fully populated audit event
        """
        pass
