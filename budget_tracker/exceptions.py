"""
Domain Exceptions.

Services raise these internally; the store converts them into
``ServiceResult`` failures so no domain error escapes a command.
Each subclass carries the :class:`ErrorKind` it maps to.
"""

from __future__ import annotations

from budget_tracker.models.enums import ErrorKind


class BudgetTrackerError(Exception):
    """Base class for every recoverable domain failure."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message


class DuplicateEmailError(BudgetTrackerError):
    kind = ErrorKind.DUPLICATE_EMAIL


class InvalidAmountError(BudgetTrackerError):
    kind = ErrorKind.INVALID_AMOUNT


class InvalidExpenseError(BudgetTrackerError):
    kind = ErrorKind.INVALID_EXPENSE


class EmailExistsError(BudgetTrackerError):
    kind = ErrorKind.EMAIL_EXISTS


class InvalidCredentialsError(BudgetTrackerError):
    kind = ErrorKind.INVALID_CREDENTIALS


class AccountNotFoundError(BudgetTrackerError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND


class InvalidReportRangeError(BudgetTrackerError):
    kind = ErrorKind.INVALID_REPORT_RANGE


class FieldValidationError(BudgetTrackerError):
    """A form-level field failed validation (name, email, password...)."""

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field: str = field


class MalformedPersistedStateError(BudgetTrackerError):
    """A stored slice could not be decoded.  Always recovered locally."""

    kind = ErrorKind.MALFORMED_PERSISTED_STATE

    def __init__(self, slice_key: str, message: str) -> None:
        super().__init__(message)
        self.slice_key: str = slice_key
