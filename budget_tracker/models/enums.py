"""
Shared Enumerations for Budget Tracker Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents,
so persisted values like ``"Admin"`` validate directly.
"""

from __future__ import annotations
from enum import StrEnum


class UserRole(StrEnum):
    """Roles a managed user can hold."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    USER = "User"


class AuthStatus(StrEnum):
    """Auth session state machine.

    ``ANONYMOUS -> AUTHENTICATING -> AUTHENTICATED`` on success and
    ``AUTHENTICATING -> ANONYMOUS`` on failure.
    """

    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class ReportRange(StrEnum):
    """Analytics report window."""

    ONE_MONTH = "1m"
    SIX_MONTHS = "6m"
    TWELVE_MONTHS = "12m"

    @property
    def months(self) -> int:
        return int(self.value[:-1])


class ToastKind(StrEnum):
    """Visual category of a transient notification."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


class ExpenseSortKey(StrEnum):
    """Sort options offered on the expenses list."""

    ALL = "all"
    NAME = "name"
    AMOUNT = "amount"
    DATE = "date"


class ErrorKind(StrEnum):
    """Structured failure categories returned by store commands."""

    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_AMOUNT = "invalid_amount"
    EMAIL_EXISTS = "email_exists"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_NOT_FOUND = "account_not_found"
    MALFORMED_PERSISTED_STATE = "malformed_persisted_state"
    INVALID_EXPENSE = "invalid_expense"
    VALIDATION_ERROR = "validation_error"
    INVALID_REPORT_RANGE = "invalid_report_range"
