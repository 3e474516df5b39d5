"""
Business Logic Services Package.

State services for the budget tracker core.  Services depend on the
Repository layer for data access and on the ``SessionManager`` for the
signed-in identity.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that ``BudgetStore`` consumes without knowing the
internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from budget_tracker.auth import SessionManager
from budget_tracker.config import AppConfig
from budget_tracker.database import DatabaseManager
from budget_tracker.logger import get_logger
from budget_tracker.repositories.expense_repository import ExpenseRepository
from budget_tracker.repositories.slice_repository import SliceRepository
from budget_tracker.repositories.user_repository import UserRepository
from budget_tracker.services.auth_service import AuthService
from budget_tracker.services.credentials import CredentialVerifier, create_credential_verifier
from budget_tracker.services.entity_store import EntityStore
from budget_tracker.services.persistence import PersistenceGateway
from budget_tracker.services.selectors import SelectorCache
from budget_tracker.services.ui_state import UIStateService


class ServiceContainer(TypedDict):
    """Typed container for the wired repositories and services."""

    # --- Entity Store collections ---
    user_repository: UserRepository
    expense_repository: ExpenseRepository

    # --- Services ---
    session: SessionManager
    credentials: CredentialVerifier
    entity_store: EntityStore
    auth_service: AuthService
    ui_state_service: UIStateService
    selector_cache: SelectorCache

    # --- Infrastructure ---
    persistence: PersistenceGateway


def create_services(
    config: AppConfig,
    db: Optional[DatabaseManager] = None,
    session: Optional[SessionManager] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    bootstrap calls this once at startup and hands the result to
    ``BudgetStore``.

    Args:
        config: Application configuration.
        db: Open DatabaseManager backing persistence.  ``None`` runs
            fully in memory with persistence disabled.
        session: Auth slice holder; a fresh one is created if omitted.

    Returns:
        ServiceContainer mapping names to fully-wired instances.
    """
    logger = get_logger("budget_tracker.services")
    session = session or SessionManager()

    def current_actor() -> Optional[str]:
        user = session.get_current_user()
        return user.id if user is not None else None

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    user_repo = UserRepository(logger=logger)
    expense_repo = ExpenseRepository(logger=logger)
    slice_repo = SliceRepository(db=db, logger=logger) if db is not None else None

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    credentials = create_credential_verifier(config, logger)
    ui_state_service = UIStateService(
        logger=logger,
        default_report_range=config.DEFAULT_REPORT_RANGE,
        default_toast_duration_ms=config.TOAST_DEFAULT_DURATION_MS,
    )
    persistence = PersistenceGateway(
        slice_repo=slice_repo,
        logger=logger,
        enabled=slice_repo is not None,
    )

    # ------------------------------------------------------------------
    # 3. Orchestration services
    # ------------------------------------------------------------------
    entity_store = EntityStore(
        user_repo=user_repo,
        expense_repo=expense_repo,
        credentials=credentials,
        logger=logger,
        min_password_length=config.MIN_PASSWORD_LENGTH,
        actor=current_actor,
    )
    auth_service = AuthService(
        session=session,
        entity_store=entity_store,
        user_repo=user_repo,
        credentials=credentials,
        logger=logger,
        min_password_length=config.MIN_PASSWORD_LENGTH,
    )

    return ServiceContainer(
        user_repository=user_repo,
        expense_repository=expense_repo,
        session=session,
        credentials=credentials,
        entity_store=entity_store,
        auth_service=auth_service,
        ui_state_service=ui_state_service,
        selector_cache=SelectorCache(),
        persistence=persistence,
    )
