"""Pydantic models for the budget tracker state core."""

from budget_tracker.models.app_state import AppState
from budget_tracker.models.auth_models import (
    AuthSession,
    PasswordResetConfirmation,
    ValidationResult,
)
from budget_tracker.models.enums import (
    AuthStatus,
    ErrorKind,
    ExpenseSortKey,
    ReportRange,
    ToastKind,
    UserRole,
)
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

__all__ = [
    "AppState",
    "AuthSession",
    "AuthSlice",
    "AuthStatus",
    "ErrorKind",
    "Expense",
    "ExpenseDraft",
    "ExpensePatch",
    "ExpenseSortKey",
    "ExpensesSlice",
    "PasswordResetConfirmation",
    "ReportRange",
    "ServiceResult",
    "SignUpRequest",
    "Toast",
    "ToastKind",
    "UIState",
    "User",
    "UserDraft",
    "UserPatch",
    "UserRole",
    "UsersSlice",
    "ValidationResult",
]
