"""
List helpers for the expenses and users tables.

Search, sort and pagination as applied by the list views.  These run
on snapshots the caller already holds; nothing here touches the store.
"""

from __future__ import annotations

import math
from typing import Generic, Sequence, TypeVar, Union

from pydantic import BaseModel, ConfigDict

from budget_tracker.models.enums import ExpenseSortKey
from budget_tracker.models.expense import Expense
from budget_tracker.models.user import User
from budget_tracker.utils.dates import try_parse_iso_datetime

T = TypeVar("T")

_UNDATED: float = float("-inf")

# Rows per page on the expense and user list views.
DEFAULT_PER_PAGE: int = 8

__all__ = [
    "DEFAULT_PER_PAGE",
    "Page",
    "paginate",
    "search_expenses",
    "search_users",
    "sort_expenses",
]


class Page(BaseModel, Generic[T]):
    """One page of a list view.  ``page`` is 1-based."""

    model_config = ConfigDict(frozen=True)

    items: list[T]
    page: int
    per_page: int
    total_items: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def search_expenses(expenses: Sequence[Expense], query: str) -> list[Expense]:
    """Case-insensitive substring match on the expense name."""
    needle = (query or "").strip().casefold()
    if not needle:
        return list(expenses)
    return [expense for expense in expenses if needle in expense.name.casefold()]


def sort_expenses(
    expenses: Sequence[Expense], key: Union[ExpenseSortKey, str] = ExpenseSortKey.ALL,
) -> list[Expense]:
    """Order expenses for display.

    ``all`` keeps insertion order, ``name`` is A to Z, ``amount`` is
    highest first and ``date`` is newest first.  Ties keep insertion
    order.

    Raises:
        ValueError: Unknown sort key.
    """
    sort_key = ExpenseSortKey(key)
    if sort_key is ExpenseSortKey.NAME:
        return sorted(expenses, key=lambda e: e.name.casefold())
    if sort_key is ExpenseSortKey.AMOUNT:
        return sorted(expenses, key=lambda e: e.amount, reverse=True)
    if sort_key is ExpenseSortKey.DATE:
        return sorted(expenses, key=_timestamp, reverse=True)
    return list(expenses)


def _timestamp(expense: Expense) -> float:
    # Unparseable dates sort last.
    moment = try_parse_iso_datetime(expense.date_iso)
    return moment.timestamp() if moment is not None else _UNDATED


def search_users(users: Sequence[User], query: str) -> list[User]:
    """Case-insensitive substring match on name, email or role."""
    needle = (query or "").strip().casefold()
    if not needle:
        return list(users)
    return [
        user
        for user in users
        if any(
            needle in field.casefold()
            for field in (user.first_name, user.last_name, user.full_name, user.email, str(user.role))
        )
    ]


def paginate(items: Sequence[T], page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> Page[T]:
    """Slice *items* into a page.  Out-of-range pages are clamped.

    Raises:
        ValueError: *per_page* is below 1.
    """
    if per_page < 1:
        raise ValueError("per_page must be at least 1.")
    total_items = len(items)
    total_pages = max(1, math.ceil(total_items / per_page))
    current = min(max(1, page), total_pages)
    start = (current - 1) * per_page
    return Page(
        items=list(items[start:start + per_page]),
        page=current,
        per_page=per_page,
        total_items=total_items,
        total_pages=total_pages,
    )
