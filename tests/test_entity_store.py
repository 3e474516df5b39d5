"""
Tests for the Entity Store service.

Users and expenses collections: validation, email uniqueness, no-op
semantics for unknown ids and copy-on-write versioning.
"""

import hashlib

import pytest

from budget_tracker.exceptions import (
    DuplicateEmailError,
    FieldValidationError,
    InvalidAmountError,
    InvalidExpenseError,
)
from budget_tracker.models import ExpenseDraft, ExpensePatch, UserDraft, UserPatch, UserRole
from budget_tracker.services.entity_store import parse_amount


def _draft(email="ada@example.com", **overrides) -> UserDraft:
    fields = {"first_name": "Ada", "last_name": "Lovelace", "email": email}
    fields.update(overrides)
    return UserDraft(**fields)


def _expense(user_id="u1", name="Coffee", amount=3.5, date_iso="2024-03-05T00:00:00Z"):
    return ExpenseDraft(user_id=user_id, name=name, amount=amount, date_iso=date_iso)


class TestParseAmount:
    """User-entered amounts."""

    @pytest.mark.parametrize(
        "raw, expected",
        [(3.5, 3.5), (0, 0.0), ("12", 12.0), (" 4.25 ", 4.25), (7, 7.0)],
    )
    def test_valid(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize(
        "raw", [None, "", "   ", "abc", "-1", -0.5, "nan", "inf", float("inf"), True],
    )
    def test_invalid(self, raw):
        with pytest.raises(InvalidAmountError):
            parse_amount(raw)


class TestUsers:
    """User management."""

    def test_add_user_assigns_id_and_timestamp(self, entity_store, user_repo):
        user = entity_store.add_user(_draft())
        assert user.id
        assert user.created_at is not None
        assert user_repo.get_by_id(user.id) == user

    def test_duplicate_email_leaves_collection_unchanged(self, entity_store, user_repo):
        entity_store.add_user(_draft())
        before = user_repo.get_all()
        with pytest.raises(DuplicateEmailError):
            entity_store.add_user(_draft(email="ADA@example.com "))
        assert user_repo.get_all() == before
        assert len(user_repo) == 1

    def test_password_is_digested(self, entity_store):
        user = entity_store.add_user(_draft(password="secret1"))
        assert user.password_hash == hashlib.sha256(b"secret1").hexdigest()
        assert "secret1" not in user.model_dump_json()

    def test_short_password_rejected(self, entity_store, user_repo):
        with pytest.raises(FieldValidationError) as excinfo:
            entity_store.add_user(_draft(password="123"))
        assert excinfo.value.field == "password"
        assert len(user_repo) == 0

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"first_name": "  "}, "first_name"),
            ({"last_name": "Bad\nName"}, "last_name"),
            ({"email": "not-an-email"}, "email"),
            ({"phone": "call me"}, "phone"),
        ],
    )
    def test_field_validation(self, entity_store, overrides, field):
        fields = {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com"}
        fields.update(overrides)
        with pytest.raises(FieldValidationError) as excinfo:
            entity_store.add_user(UserDraft(**fields))
        assert excinfo.value.field == field

    def test_update_user_merges(self, entity_store):
        user = entity_store.add_user(_draft(phone="+1 (555) 123-4567"))
        updated = entity_store.update_user(user.id, UserPatch(role=UserRole.MANAGER, last_name="King"))
        assert updated.role is UserRole.MANAGER
        assert updated.last_name == "King"
        assert updated.first_name == "Ada"
        assert updated.phone == "+1 (555) 123-4567"
        assert updated.id == user.id
        assert updated.created_at == user.created_at

    def test_update_unknown_user_is_noop(self, entity_store, user_repo):
        version = user_repo.version
        assert entity_store.update_user("missing", UserPatch(first_name="X")) is None
        assert user_repo.version == version

    def test_update_email_onto_other_user_rejected(self, entity_store):
        entity_store.add_user(_draft())
        other = entity_store.add_user(_draft(email="grace@example.com"))
        with pytest.raises(DuplicateEmailError):
            entity_store.update_user(other.id, UserPatch(email="ada@example.com"))

    def test_update_keeping_own_email_allowed(self, entity_store):
        user = entity_store.add_user(_draft())
        updated = entity_store.update_user(user.id, UserPatch(email="Ada@Example.com"))
        assert updated.email == "ada@example.com"

    def test_update_password_redigests(self, entity_store):
        user = entity_store.add_user(_draft(password="secret1"))
        updated = entity_store.update_user(user.id, UserPatch(password="secret2"))
        assert updated.password_hash == hashlib.sha256(b"secret2").hexdigest()

    def test_delete_user_keeps_expenses(self, entity_store, expense_repo):
        user = entity_store.add_user(_draft())
        expense = entity_store.add_expense(_expense(user_id=user.id))
        assert entity_store.delete_user(user.id) is True
        assert expense_repo.get_by_id(expense.id) == expense

    def test_delete_unknown_user_is_noop(self, entity_store):
        assert entity_store.delete_user("missing") is False


class TestExpenses:
    """Expense mutations."""

    def test_add_expense(self, entity_store, expense_repo):
        expense = entity_store.add_expense(_expense(amount="3.50"))
        assert expense.amount == 3.5
        assert expense.name == "Coffee"
        assert expense_repo.get_all() == (expense,)

    def test_invalid_amount_leaves_collection_unchanged(self, entity_store, expense_repo):
        with pytest.raises(InvalidAmountError):
            entity_store.add_expense(_expense(amount="abc"))
        assert len(expense_repo) == 0

    def test_blank_name_rejected(self, entity_store):
        with pytest.raises(InvalidExpenseError):
            entity_store.add_expense(_expense(name="   "))

    def test_bad_date_rejected(self, entity_store):
        with pytest.raises(InvalidExpenseError):
            entity_store.add_expense(_expense(date_iso="31/12/2024"))

    def test_update_expense_keeps_identity(self, entity_store):
        expense = entity_store.add_expense(_expense())
        patch = ExpensePatch.model_validate({"amount": "5", "userId": "intruder", "id": "other"})
        updated = entity_store.update_expense(expense.id, patch)
        assert updated.amount == 5.0
        assert updated.id == expense.id
        assert updated.user_id == "u1"
        assert updated.name == "Coffee"

    def test_update_expense_validates(self, entity_store):
        expense = entity_store.add_expense(_expense())
        with pytest.raises(InvalidAmountError):
            entity_store.update_expense(expense.id, ExpensePatch(amount=-2))

    def test_update_unknown_expense_is_noop(self, entity_store):
        assert entity_store.update_expense("missing", ExpensePatch(name="X")) is None

    def test_remove_expense(self, entity_store, expense_repo):
        expense = entity_store.add_expense(_expense())
        assert entity_store.remove_expense(expense.id) is True
        assert entity_store.remove_expense(expense.id) is False
        assert len(expense_repo) == 0

    def test_insertion_order_preserved(self, entity_store, expense_repo):
        names = ["c", "a", "b"]
        for name in names:
            entity_store.add_expense(_expense(name=name))
        assert [e.name for e in expense_repo.get_all()] == names

    def test_snapshot_is_not_mutated(self, entity_store, expense_repo):
        entity_store.add_expense(_expense(name="first"))
        snapshot = expense_repo.get_all()
        version = expense_repo.version
        entity_store.add_expense(_expense(name="second"))
        assert len(snapshot) == 1
        assert expense_repo.version == version + 1
