"""
Budget Store.

The single owned state container for the application.  Every UI
collaborator reaches state through one ``BudgetStore`` instance passed
to it (no module-level global), and every mutation goes through one of
its command methods.

Commands
    Serialized behind one ``RLock``.  Each returns a
    :class:`ServiceResult`; domain failures are reported in the result,
    never raised.  After an accepted mutation, the slices whose version
    moved are serialized and handed to the persistence writer.

Queries
    Read consistent snapshots under the same lock.  Selector results
    are memoized per collection version.

Subscribers
    Called after every command, outside the lock, with no arguments.
    They read whatever they need through the query methods.
"""

from __future__ import annotations

import threading
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from budget_tracker.auth import SessionManager
from budget_tracker.database import DatabaseManager
from budget_tracker.exceptions import BudgetTrackerError
from budget_tracker.logger import StructuredLogger
from budget_tracker.models.app_state import AppState
from budget_tracker.models.auth_models import AuthSession, PasswordResetConfirmation
from budget_tracker.models.enums import ErrorKind, ReportRange, ToastKind
from budget_tracker.models.expense import Expense
from budget_tracker.models.persisted import AuthSlice, ExpensesSlice, UsersSlice
from budget_tracker.models.service_models import (
    ExpenseDraft,
    ExpensePatch,
    ServiceResult,
    SignUpRequest,
    UserDraft,
    UserPatch,
)
from budget_tracker.models.ui_state import Toast, UIState
from budget_tracker.models.user import User
from budget_tracker.services import ServiceContainer
from budget_tracker.services import selectors
from budget_tracker.services.persistence import (
    AUTH_SLICE,
    EXPENSES_SLICE,
    USERS_SLICE,
    RestoredState,
)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

Listener = Callable[[], None]
Payload = Union[BaseModel, Mapping[str, Any]]


def _coerce(model: type[M], payload: Payload) -> M:
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    return model.model_validate(payload)


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "input"
    return f"{location}: {first.get('msg', 'invalid value')}"


class BudgetStore:
    """Command/query facade over the wired services.

    Parameters
    ----------
    services:
        Output of :func:`budget_tracker.services.create_services`.
    logger:
        Structured JSON logger.
    db:
        Database closed by :meth:`close`, if the store owns one.
    """

    def __init__(
        self,
        services: ServiceContainer,
        logger: StructuredLogger,
        db: Optional[DatabaseManager] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._logger = logger
        self._db = db

        self._users = services["user_repository"]
        self._expenses = services["expense_repository"]
        self._session: SessionManager = services["session"]
        self._entity_store = services["entity_store"]
        self._auth = services["auth_service"]
        self._ui = services["ui_state_service"]
        self._cache = services["selector_cache"]
        self._persistence = services["persistence"]

        self._listeners: list[Listener] = []
        self._persisted_versions: dict[str, int] = {}
        self._closed = False

    # ==================================================================
    # Startup
    # ==================================================================

    def hydrate(
        self,
        restored: RestoredState,
        default_users: tuple[User, ...] = (),
    ) -> None:
        """Load restored slices, falling back to defaults per slice.

        Must run before the first command.  Rehydration itself is not
        written back to storage.
        """
        with self._lock:
            users = restored.users.users if restored.users is not None else default_users
            expenses = restored.expenses.expenses if restored.expenses is not None else ()
            self._entity_store.load(users, expenses)
            self._session.restore(restored.auth.user if restored.auth is not None else None)
            self._cache.clear()
            self._persisted_versions = self._slice_versions()
        self._logger.info(
            "Store hydrated: %d user(s), %d expense(s), authenticated=%s.",
            len(self._users),
            len(self._expenses),
            self._session.is_authenticated,
        )

    def start(self) -> None:
        self._persistence.start()

    def flush(self) -> None:
        """Wait until every queued slice write has reached storage."""
        self._persistence.flush()

    def close(self) -> None:
        """Flush pending writes, stop the writer and close the database."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._persistence.close()
        if self._db is not None:
            self._db.close()

    # ==================================================================
    # Subscriptions
    # ==================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ==================================================================
    # Auth commands
    # ==================================================================

    def sign_up(self, request: Payload) -> ServiceResult[User]:
        return self._dispatch(
            "sign_up", lambda: self._auth.sign_up(_coerce(SignUpRequest, request)),
        )

    def login(self, email: str, password: str) -> ServiceResult[User]:
        return self._dispatch("login", lambda: self._auth.login(email, password))

    def logout(self) -> ServiceResult[None]:
        return self._dispatch("logout", self._auth.logout)

    def forgot_password(self, email: str) -> ServiceResult[PasswordResetConfirmation]:
        return self._dispatch("forgot_password", lambda: self._auth.forgot_password(email))

    def clear_auth_error(self) -> ServiceResult[None]:
        return self._dispatch("clear_auth_error", self._auth.clear_error)

    # ==================================================================
    # Entity commands
    # ==================================================================

    def add_expense(self, draft: Payload) -> ServiceResult[Expense]:
        return self._dispatch(
            "add_expense", lambda: self._entity_store.add_expense(_coerce(ExpenseDraft, draft)),
        )

    def update_expense(self, expense_id: str, patch: Payload) -> ServiceResult[Expense]:
        """Merge *patch* into the expense.  Unknown ids succeed with no data."""
        return self._dispatch(
            "update_expense",
            lambda: self._entity_store.update_expense(expense_id, _coerce(ExpensePatch, patch)),
        )

    def remove_expense(self, expense_id: str) -> ServiceResult[bool]:
        return self._dispatch(
            "remove_expense", lambda: self._entity_store.remove_expense(expense_id),
        )

    def add_user(self, draft: Payload) -> ServiceResult[User]:
        return self._dispatch(
            "add_user", lambda: self._entity_store.add_user(_coerce(UserDraft, draft)),
        )

    def update_user(self, user_id: str, patch: Payload) -> ServiceResult[User]:
        """Merge *patch* into the user.  Unknown ids succeed with no data."""
        return self._dispatch(
            "update_user",
            lambda: self._entity_store.update_user(user_id, _coerce(UserPatch, patch)),
        )

    def delete_user(self, user_id: str) -> ServiceResult[bool]:
        return self._dispatch("delete_user", lambda: self._entity_store.delete_user(user_id))

    # ==================================================================
    # UI commands
    # ==================================================================

    def set_selected_date(self, date_iso: str) -> ServiceResult[UIState]:
        return self._dispatch("set_selected_date", lambda: self._ui.set_selected_date(date_iso))

    def set_report_range(self, report_range: Union[ReportRange, str]) -> ServiceResult[UIState]:
        return self._dispatch(
            "set_report_range", lambda: self._ui.set_report_range(report_range),
        )

    def add_toast(
        self,
        message: str,
        kind: Union[ToastKind, str] = ToastKind.INFO,
        duration_ms: Optional[int] = None,
    ) -> ServiceResult[Toast]:
        return self._dispatch(
            "add_toast", lambda: self._ui.add_toast(message, kind, duration_ms),
        )

    def remove_toast(self, toast_id: str) -> ServiceResult[bool]:
        return self._dispatch("remove_toast", lambda: self._ui.remove_toast(toast_id))

    def clear_toasts(self) -> ServiceResult[int]:
        return self._dispatch("clear_toasts", self._ui.clear_toasts)

    def expire_toasts(self, now: Optional[datetime] = None) -> ServiceResult[int]:
        return self._dispatch("expire_toasts", lambda: self._ui.expire_toasts(now))

    # ==================================================================
    # Selectors
    # ==================================================================

    def expenses_by_month(self, user_id: str, year: int, month: int) -> list[Expense]:
        """Raises ``ValueError`` for a month outside ``1..12``."""
        with self._lock:
            return list(self._cache.get_or_compute(
                "expenses_by_month",
                self._expenses.version,
                (user_id, year, month),
                lambda: tuple(selectors.expenses_by_month(
                    self._expenses.get_all(), user_id, year, month,
                )),
            ))

    @staticmethod
    def monthly_total(expenses: list[Expense]) -> float:
        return selectors.monthly_total(expenses)

    @staticmethod
    def is_over_budget(total: float, budget_limit: Optional[float]) -> bool:
        return selectors.is_over_budget(total, budget_limit)

    @staticmethod
    def budget_usage_percent(total: float, budget_limit: Optional[float]) -> float:
        return selectors.budget_usage_percent(total, budget_limit)

    def user_expenses(self, user_id: str) -> list[Expense]:
        with self._lock:
            return list(self._cache.get_or_compute(
                "user_expenses",
                self._expenses.version,
                (user_id,),
                lambda: tuple(selectors.user_expenses(self._expenses.get_all(), user_id)),
            ))

    def expense_by_id(self, expense_id: str) -> Optional[Expense]:
        with self._lock:
            return selectors.expense_by_id(self._expenses.get_all(), expense_id)

    def monthly_series(
        self,
        user_id: str,
        months: Optional[int] = None,
        today: Optional[date] = None,
    ) -> list[tuple[str, float]]:
        """Per-month totals; *months* defaults to the selected report range."""
        with self._lock:
            span = months if months is not None else self._ui.snapshot().report_range.months
            expenses = self._expenses.get_all()
        return selectors.monthly_series(expenses, user_id, span, today)

    # ==================================================================
    # Accessors
    # ==================================================================

    def all_users(self) -> tuple[User, ...]:
        with self._lock:
            return self._users.get_all()

    def all_expenses(self) -> tuple[Expense, ...]:
        with self._lock:
            return self._expenses.get_all()

    def user_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get_by_id(user_id)

    def current_user(self) -> Optional[User]:
        return self._session.get_current_user()

    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    def auth_session(self) -> AuthSession:
        return self._session.snapshot()

    def ui_state(self) -> UIState:
        return self._ui.snapshot()

    def get_state(self) -> AppState:
        with self._lock:
            return AppState(
                auth=self._session.snapshot(),
                users=self._users.get_all(),
                expenses=self._expenses.get_all(),
                ui=self._ui.snapshot(),
            )

    # ==================================================================
    # Internals
    # ==================================================================

    def _dispatch(self, command: str, action: Callable[[], T]) -> ServiceResult[T]:
        with self._lock:
            try:
                result: ServiceResult = ServiceResult.ok(action())
            except BudgetTrackerError as exc:
                self._logger.info(
                    "%s rejected: %s",
                    command,
                    exc.message,
                    extra={"command": command, "error_kind": str(exc.kind)},
                )
                result = ServiceResult.fail(exc.kind, exc.message)
            except ValidationError as exc:
                message = _describe_validation_error(exc)
                self._logger.info(
                    "%s rejected: %s",
                    command,
                    message,
                    extra={"command": command, "error_kind": str(ErrorKind.VALIDATION_ERROR)},
                )
                result = ServiceResult.fail(ErrorKind.VALIDATION_ERROR, message)
            self._persist_changed_slices()
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener()
            except Exception:
                self._logger.error(
                    "Store listener raised after %s.", command, exc_info=True,
                )
        return result

    def _slice_versions(self) -> dict[str, int]:
        return {
            AUTH_SLICE: self._session.version,
            EXPENSES_SLICE: self._expenses.version,
            USERS_SLICE: self._users.version,
        }

    def _persist_changed_slices(self) -> None:
        for key, version in self._slice_versions().items():
            if self._persisted_versions.get(key) == version:
                continue
            self._persistence.schedule(key, self._slice_blob(key))
            self._persisted_versions[key] = version

    def _slice_blob(self, key: str) -> BaseModel:
        if key == AUTH_SLICE:
            user = self._session.get_current_user()
            return AuthSlice(user=user, is_authenticated=user is not None)
        if key == EXPENSES_SLICE:
            return ExpensesSlice(expenses=list(self._expenses.get_all()))
        return UsersSlice(users=list(self._users.get_all()))
