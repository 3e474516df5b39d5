"""
Persisted Slice Blobs.

The whitelisted projections written to local storage.  Each blob is
keyed by slice name and carries its own format ``version``; any field
not declared here (loading flags, errors, toasts) is never serialized.

Layout::

    auth     -> {"version": 1, "user": User | null, "isAuthenticated": bool}
    expenses -> {"version": 1, "expenses": [Expense, ...]}
    users    -> {"version": 1, "users": [User, ...]}
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from budget_tracker.models.expense import Expense
from budget_tracker.models.user import User

SLICE_FORMAT_VERSION: int = 1

_BLOB_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="forbid",
)


class AuthSlice(BaseModel):
    model_config = _BLOB_CONFIG

    version: Literal[1] = SLICE_FORMAT_VERSION
    user: Optional[User] = None
    is_authenticated: bool = False

    @model_validator(mode="after")
    def _check_identity(self) -> "AuthSlice":
        if self.is_authenticated != (self.user is not None):
            raise ValueError("isAuthenticated must be true iff user is set.")
        return self


class ExpensesSlice(BaseModel):
    model_config = _BLOB_CONFIG

    version: Literal[1] = SLICE_FORMAT_VERSION
    expenses: list[Expense] = []


class UsersSlice(BaseModel):
    model_config = _BLOB_CONFIG

    version: Literal[1] = SLICE_FORMAT_VERSION
    users: list[User] = []
