"""
Service Layer Data Transfer Objects.

Pydantic models for validated input/output at the store boundary.
Command payloads accept snake_case or the camelCase keys of the persisted blobs.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from budget_tracker.models.enums import ErrorKind, UserRole

T = TypeVar("T")

__all__ = [
    "ExpenseDraft",
    "ExpensePatch",
    "ServiceResult",
    "SignUpRequest",
    "UserDraft",
    "UserPatch",
]

_INPUT_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)

# Raw amount exactly as the form sent it.  Not coerced here: the entity
# store rejects booleans and non-numeric values itself.
RawAmount = Any


# ---------------------------------------------------------------------------
# Expense payloads
# ---------------------------------------------------------------------------

class ExpenseDraft(BaseModel):
    """Payload for ``add_expense``."""

    model_config = _INPUT_CONFIG

    user_id: str
    name: str
    amount: Optional[RawAmount] = None
    date_iso: str = Field(alias="dateISO")


class ExpensePatch(BaseModel):
    """Partial payload for ``update_expense``.

    There is no ``id`` or ``user_id`` field: both are immutable, and
    extra keys are ignored.
    """

    model_config = _INPUT_CONFIG

    name: Optional[str] = None
    amount: Optional[RawAmount] = None
    date_iso: Optional[str] = Field(default=None, alias="dateISO")


# ---------------------------------------------------------------------------
# User payloads
# ---------------------------------------------------------------------------

class UserDraft(BaseModel):
    """Payload for ``add_user``.  ``password`` is plaintext and is
    digested before anything is stored."""

    model_config = _INPUT_CONFIG

    first_name: str
    last_name: str
    email: str
    phone: str = ""
    role: UserRole = UserRole.USER
    password: Optional[str] = None
    budget_limit: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class UserPatch(BaseModel):
    """Partial payload for ``update_user``."""

    model_config = _INPUT_CONFIG

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None
    password: Optional[str] = None
    budget_limit: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class SignUpRequest(BaseModel):
    """Signup form fields."""

    model_config = _INPUT_CONFIG

    first_name: str
    last_name: str
    email: str
    password: str
    confirm_password: Optional[str] = None
    phone: str = ""
    budget_limit: Optional[float] = Field(default=None, allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Generic service models
# ---------------------------------------------------------------------------

class ServiceResult(BaseModel, Generic[T]):
    """
    Standard command return envelope.

    Every store command returns this, giving the UI one contract for
    surfacing failures (e.g. as a toast).  ``error_kind`` is ``None``
    on success.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ServiceResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "ServiceResult[T]":
        return cls(success=False, error=message, error_kind=kind)
