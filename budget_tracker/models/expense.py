"""
Expense Model.

``user_id`` is a weak reference: it names a User without owning it, and
a dangling reference (deleted user) is a valid state.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from budget_tracker.utils.dates import parse_iso_datetime


class Expense(BaseModel):
    """A single spending entry.

    ``date_iso`` is kept as the ISO-8601 string the caller supplied; it
    is parsed on demand by the month selectors.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        from_attributes=True,
    )

    id: str
    user_id: str
    name: str
    amount: float = Field(ge=0, allow_inf_nan=False)
    date_iso: str = Field(alias="dateISO")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Expense name must not be empty.")
        return stripped

    @field_validator("date_iso")
    @classmethod
    def _check_date(cls, value: str) -> str:
        parse_iso_datetime(value)
        return value.strip()
