"""
User Model.

A managed user record in the Entity Store.  Field names are snake_case
in Python and camelCase on the persisted blob (``firstName``,
``passwordHash`` ...), matching the stored ``users`` slice layout.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from budget_tracker.models.enums import UserRole


def normalize_email(email: str) -> str:
    """Normalise an email address: strip whitespace and lowercase."""
    return email.strip().lower()


class User(BaseModel):
    """Represents a user account.

    ``password_hash`` holds a credential digest, never plaintext, and is
    absent for users created through user management without a password.
    ``budget_limit`` is captured at signup and drives the over-budget
    and budget-usage projections.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        from_attributes=True,
    )

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str = ""
    role: UserRole = UserRole.USER
    password_hash: Optional[str] = None
    budget_limit: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def without_credentials(self) -> "User":
        """Return a copy with ``password_hash`` stripped (session copy)."""
        return self.model_copy(update={"password_hash": None})
