"""
Structured Audit Logging Utility.

Every accepted mutation of the Entity Store or the auth session is
logged as one structured JSON line.  The payload is validated by a
Pydantic model before it reaches the logger.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from budget_tracker.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event"]

# Flat scalar values only; nested structures do not belong in an audit line.
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Schema-validated representation of a single audit trail entry."""

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    actor_id: Optional[str] = None
    details: dict[str, DetailValue] = Field(default_factory=dict)


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    actor_id: Optional[str] = None,
    details: Optional[dict[str, DetailValue]] = None,
) -> AuditEvent:
    """Log a structured JSON audit event and return it.

    Args:
        logger: The logger instance to write to.
        action: What happened (e.g. ``"CREATE"``, ``"UPDATE"``,
            ``"DELETE"``, ``"LOGIN"``).
        entity_type: ``"User"``, ``"Expense"`` or ``"Session"``.
        entity_id: Primary key of the affected entity.
        actor_id: ID of the signed-in user, when there is one.
        details: Optional additional context (e.g. changed field names).
    """
    event = AuditEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        details=details or {},
    )
    logger.info("AUDIT: %s", json.dumps(event.model_dump(), default=str))
    return event
