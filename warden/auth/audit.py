"""
Audit payload construction for the Warden authentication core.

The recorder builds AuditEvent objects and hands them to the configured
AuditSink through BackgroundTasks. Recording never blocks and never raises
into the caller.
"""

import logging
import uuid
from typing import Any

from .audit_sink import AuditSink
from .background import BackgroundTasks
from .types import AuditAction, AuditEvent, RequestContext
from .utils import Clock, mask_sensitive_data, utcnow

logger = logging.getLogger(__name__)


def calculate_changes(
    old_values: dict[str, Any] | None, new_values: dict[str, Any] | None
) -> dict[str, dict[str, Any]] | None:
    """
    Diff two value maps key by key.

    Returns:
        ``{key: {"old": ..., "new": ...}}`` for keys whose values differ,
        or None when either side is missing or nothing changed
    """
    if not old_values or not new_values:
        return None

    changes = {}
    for key in sorted(set(old_values) | set(new_values)):
        old, new = old_values.get(key), new_values.get(key)
        if old != new:
            changes[key] = {"old": old, "new": new}

    return changes or None


class AuditRecorder:
    """Builds audit events and dispatches them fire-and-forget."""

    def __init__(
        self,
        sink: AuditSink,
        background: BackgroundTasks,
        clock: Clock = utcnow,
    ):
        self.sink = sink
        self.background = background
        self.clock = clock

    def record(
        self,
        action: AuditAction,
        entity_type: str,
        *,
        entity_id: str | None = None,
        user_id: str | None = None,
        performed_by_id: str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        changes: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> AuditEvent:
        """
        Build an event and dispatch it to the sink in the background.

        Value maps are masked before they leave the core. The event is
        returned so callers (and tests) can see what was emitted.
        """
        context = context or RequestContext()
        event = AuditEvent(
            id=str(uuid.uuid4()),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            performed_by_id=performed_by_id,
            old_values=mask_sensitive_data(old_values) if old_values else None,
            new_values=mask_sensitive_data(new_values) if new_values else None,
            changes=changes,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            request_id=context.request_id,
            metadata=metadata or {},
            created_at=self.clock(),
        )

        self.background.spawn(
            lambda: self.sink.record(event), f"audit:{action.value}:{entity_type}"
        )
        logger.debug(f"Dispatched audit event {action.value} for {entity_type} {entity_id}")
        return event

    def record_user_action(
        self,
        action: AuditAction,
        user_id: str,
        performed_by_id: str,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> AuditEvent:
        return self.record(
            action,
            "User",
            entity_id=user_id,
            user_id=user_id,
            performed_by_id=performed_by_id,
            old_values=old_values,
            new_values=new_values,
            changes=calculate_changes(old_values, new_values),
            context=context,
        )

    def record_token_action(
        self,
        action: AuditAction,
        user_id: str,
        performed_by_id: str,
        token_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> AuditEvent:
        return self.record(
            action,
            "Token",
            entity_id=token_id,
            user_id=user_id,
            performed_by_id=performed_by_id,
            metadata=metadata,
            context=context,
        )
