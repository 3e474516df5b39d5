"""
Base Service Class.

Shared logger and audit plumbing for the state services.  Services
extend this and add their own repository dependencies via __init__.
"""

from __future__ import annotations

from typing import Callable, Optional

from budget_tracker.logger import StructuredLogger
from budget_tracker.utils.audit import DetailValue, log_audit_event

# Returns the id of the signed-in user, if any.
ActorProvider = Callable[[], Optional[str]]


class BaseService:
    """Base class for all service classes.

    ``actor`` names whoever is signed in at the time of an audit event;
    the composition root wires it to the session.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        actor: Optional[ActorProvider] = None,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._actor: ActorProvider = actor or (lambda: None)

    def _audit(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        details: Optional[dict[str, DetailValue]] = None,
    ) -> None:
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=self._actor(),
            details=details,
        )
