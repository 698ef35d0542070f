"""Memory-based audit sink."""

import logging
from datetime import datetime

from warden.auth.audit_sink import AuditSink
from warden.auth.types import AuditAction, AuditEvent

from .store import MemoryStore

logger = logging.getLogger(__name__)

_AUDIT = "audit_events"


class MemoryAuditSink(AuditSink):
    """Keeps audit events in memory, queryable by user, action and time."""

    def __init__(self, store: MemoryStore | None = None):
        self.store = store or MemoryStore()

    async def record(self, event: AuditEvent) -> None:
        self.store.set(_AUDIT, event.id, event)
        logger.debug(f"Audit event stored: {event.action.value} {event.entity_type}")

    def query(
        self,
        user_id: str | None = None,
        action: AuditAction | None = None,
        entity_type: str | None = None,
        since: datetime | None = None,
    ) -> list[AuditEvent]:
        """Return matching events, oldest first."""

        def matches(event: AuditEvent) -> bool:
            if user_id is not None and event.user_id != user_id:
                return False
            if action is not None and event.action != action:
                return False
            if entity_type is not None and event.entity_type != entity_type:
                return False
            if since is not None and event.created_at < since:
                return False
            return True

        return sorted(self.store.find(_AUDIT, matches), key=lambda event: event.created_at)

