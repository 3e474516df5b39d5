"""
Entity Store Service.

Owns every mutation of the Users and Expenses collections: id and
timestamp generation, field validation, email uniqueness, amount
parsing and password digesting.  Methods raise
:class:`~budget_tracker.exceptions.BudgetTrackerError` subclasses; the
store turns them into ``ServiceResult`` failures.

Update and delete of an unknown id are no-ops, not errors.  Deleting a
user leaves that user's expenses in place (weak ``user_id`` reference).
"""

from __future__ import annotations

import math
import uuid
from typing import Iterable, Optional

from budget_tracker.exceptions import (
    DuplicateEmailError,
    FieldValidationError,
    InvalidAmountError,
    InvalidExpenseError,
)
from budget_tracker.logger import StructuredLogger
from budget_tracker.models.auth_models import ValidationResult
from budget_tracker.models.expense import Expense
from budget_tracker.models.service_models import (
    ExpenseDraft,
    ExpensePatch,
    RawAmount,
    UserDraft,
    UserPatch,
)
from budget_tracker.models.user import User, normalize_email
from budget_tracker.repositories.expense_repository import ExpenseRepository
from budget_tracker.repositories.user_repository import UserRepository
from budget_tracker.services.base_service import ActorProvider, BaseService
from budget_tracker.services.credentials import CredentialVerifier
from budget_tracker.utils.dates import try_parse_iso_datetime
from budget_tracker.utils.validation import (
    validate_email,
    validate_name,
    validate_password,
    validate_phone,
)


def parse_amount(value: Optional[RawAmount]) -> float:
    """Parse a user-entered amount into a finite, non-negative float.

    Raises:
        InvalidAmountError: For booleans, blanks, non-numeric strings,
            NaN, infinities and negative values.
    """
    if value is None:
        raise InvalidAmountError("Amount is required.")
    if isinstance(value, bool):
        raise InvalidAmountError("Please enter a valid amount.")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidAmountError("Amount is required.")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidAmountError(f"'{value}' is not a valid amount.") from None
    if math.isnan(amount) or math.isinf(amount):
        raise InvalidAmountError("Amount must be a finite number.")
    if amount < 0:
        raise InvalidAmountError("Amount must not be negative.")
    return amount


def _require(field: str, result: ValidationResult) -> None:
    if not result.is_valid:
        raise FieldValidationError(field, result.error_message or f"Invalid {field}.")


class EntityStore(BaseService):
    """Service layer for the normalized Users and Expenses collections.

    Parameters
    ----------
    user_repo, expense_repo:
        The in-memory collections this service owns.
    credentials:
        Digest scheme for passwords supplied through ``add_user`` /
        ``update_user``.
    min_password_length:
        Password policy applied to those passwords.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        expense_repo: ExpenseRepository,
        credentials: CredentialVerifier,
        logger: StructuredLogger,
        min_password_length: int = 6,
        actor: Optional[ActorProvider] = None,
    ) -> None:
        super().__init__(logger, actor)
        self._users = user_repo
        self._expenses = expense_repo
        self._credentials = credentials
        self._min_password_length = min_password_length

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def add_user(self, draft: UserDraft, password_digest: Optional[str] = None) -> User:
        """Insert a new user.

        *password_digest* lets the signup flow pass an already derived
        digest; otherwise ``draft.password`` (if any) is digested here.

        Raises:
            FieldValidationError: Blank names, bad email or phone, or a
                password below the policy length.
            DuplicateEmailError: Another user already holds the email.
        """
        _require("first_name", validate_name(draft.first_name, "First name"))
        _require("last_name", validate_name(draft.last_name, "Last name"))
        _require("email", validate_email(draft.email))
        _require("phone", validate_phone(draft.phone))

        if self._users.email_taken(draft.email):
            raise DuplicateEmailError(
                f"A user with email {normalize_email(draft.email)} already exists."
            )

        digest = password_digest
        if digest is None and draft.password:
            _require("password", validate_password(draft.password, self._min_password_length))
            digest = self._credentials.digest(draft.password)

        user = User(
            id=str(uuid.uuid4()),
            first_name=draft.first_name.strip(),
            last_name=draft.last_name.strip(),
            email=draft.email,
            phone=draft.phone.strip(),
            role=draft.role,
            password_hash=digest,
            budget_limit=draft.budget_limit,
        )
        self._users.insert(user)
        self._audit("CREATE", "User", user.id, {"email": user.email, "role": str(user.role)})
        return user

    def update_user(self, user_id: str, patch: UserPatch) -> Optional[User]:
        """Merge *patch* into the user.  Returns ``None`` if *user_id* is unknown.

        Raises:
            FieldValidationError: A provided field fails validation.
            DuplicateEmailError: The new email belongs to another user.
        """
        existing = self._users.get_by_id(user_id)
        if existing is None:
            self._logger.info("update_user: no user %s; no-op.", user_id)
            return None

        # budget_limit is the only field that may be cleared with None.
        changes = {
            key: value
            for key, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or key == "budget_limit"
        }
        password = changes.pop("password", None)

        if "first_name" in changes:
            _require("first_name", validate_name(changes["first_name"], "First name"))
            changes["first_name"] = changes["first_name"].strip()
        if "last_name" in changes:
            _require("last_name", validate_name(changes["last_name"], "Last name"))
            changes["last_name"] = changes["last_name"].strip()
        if "email" in changes:
            _require("email", validate_email(changes["email"]))
            if self._users.email_taken(changes["email"], exclude_id=user_id):
                raise DuplicateEmailError(
                    f"A user with email {normalize_email(changes['email'])} already exists."
                )
        if "phone" in changes:
            _require("phone", validate_phone(changes["phone"] or ""))
        if password:
            _require("password", validate_password(password, self._min_password_length))
            changes["password_hash"] = self._credentials.digest(password)

        updated = User.model_validate({**existing.model_dump(), **changes})
        self._users.replace(updated)
        self._audit(
            "UPDATE",
            "User",
            user_id,
            {"fields": ",".join(sorted(changes)) or "none"},
        )
        return updated

    def delete_user(self, user_id: str) -> bool:
        """Remove the user.  Returns ``False`` (no-op) if unknown."""
        if not self._users.delete(user_id):
            self._logger.info("delete_user: no user %s; no-op.", user_id)
            return False
        self._audit(
            "DELETE",
            "User",
            user_id,
            {"orphaned_expenses": self._expenses.count_for_user(user_id)},
        )
        return True

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def add_expense(self, draft: ExpenseDraft) -> Expense:
        """Insert a new expense.

        Raises:
            InvalidAmountError: The amount is not a finite, non-negative number.
            InvalidExpenseError: Blank name or unparseable date.
        """
        amount = parse_amount(draft.amount)
        name = self._clean_name(draft.name)
        date_iso = self._clean_date(draft.date_iso)

        expense = Expense(
            id=str(uuid.uuid4()),
            user_id=draft.user_id,
            name=name,
            amount=amount,
            date_iso=date_iso,
        )
        self._expenses.insert(expense)
        self._audit(
            "CREATE",
            "Expense",
            expense.id,
            {"user_id": expense.user_id, "amount": expense.amount},
        )
        return expense

    def update_expense(self, expense_id: str, patch: ExpensePatch) -> Optional[Expense]:
        """Merge *patch* into the expense.  ``id`` and ``user_id`` never
        change.  Returns ``None`` if *expense_id* is unknown.

        Raises:
            InvalidAmountError, InvalidExpenseError: As for ``add_expense``.
        """
        existing = self._expenses.get_by_id(expense_id)
        if existing is None:
            self._logger.info("update_expense: no expense %s; no-op.", expense_id)
            return None

        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        if "amount" in changes:
            changes["amount"] = parse_amount(changes["amount"])
        if "name" in changes:
            changes["name"] = self._clean_name(changes["name"])
        if "date_iso" in changes:
            changes["date_iso"] = self._clean_date(changes["date_iso"])

        updated = Expense.model_validate({**existing.model_dump(), **changes})
        self._expenses.replace(updated)
        self._audit(
            "UPDATE",
            "Expense",
            expense_id,
            {"fields": ",".join(sorted(changes)) or "none"},
        )
        return updated

    def remove_expense(self, expense_id: str) -> bool:
        """Remove the expense.  Returns ``False`` (no-op) if unknown."""
        if not self._expenses.delete(expense_id):
            self._logger.info("remove_expense: no expense %s; no-op.", expense_id)
            return False
        self._audit("DELETE", "Expense", expense_id)
        return True

    # ------------------------------------------------------------------
    # Rehydration
    # ------------------------------------------------------------------

    def load(self, users: Iterable[User], expenses: Iterable[Expense]) -> None:
        self._users.load(users)
        self._expenses.load(expenses)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        stripped = (name or "").strip()
        if not stripped:
            raise InvalidExpenseError("Expense name is required.")
        return stripped

    @staticmethod
    def _clean_date(date_iso: Optional[str]) -> str:
        if not date_iso or try_parse_iso_datetime(date_iso) is None:
            raise InvalidExpenseError(f"'{date_iso}' is not a valid ISO-8601 date.")
        return date_iso.strip()
