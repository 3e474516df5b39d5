"""
Derived View Selectors.

Pure projections over the Entity Store collections.  None of these
functions mutate their input or reorder it: results keep the
collection's insertion order.

:class:`SelectorCache` memoizes selector results per collection
version, so repeated reads between mutations do no recomputation.
"""

from __future__ import annotations

import threading
from datetime import date, datetime, timezone
from typing import Callable, Hashable, Iterable, Optional, Sequence, TypeVar, Union

from budget_tracker.models.enums import ReportRange
from budget_tracker.models.expense import Expense
from budget_tracker.utils.dates import month_bounds, shift_month, try_parse_iso_datetime

R = TypeVar("R")


def expenses_by_month(
    expenses: Iterable[Expense], user_id: str, year: int, month: int,
) -> list[Expense]:
    """Expenses of *user_id* dated inside the given calendar month (UTC, inclusive).

    Expenses whose date cannot be parsed never match.
    """
    start, end = month_bounds(year, month)
    result = []
    for expense in expenses:
        if expense.user_id != user_id:
            continue
        moment = try_parse_iso_datetime(expense.date_iso)
        if moment is not None and start <= moment <= end:
            result.append(expense)
    return result


def monthly_total(expenses: Iterable[Expense]) -> float:
    return sum((expense.amount for expense in expenses), 0.0)


def is_over_budget(total: float, budget_limit: Optional[float]) -> bool:
    """``total > budget_limit``; a missing limit counts as zero."""
    return total > (budget_limit or 0.0)


def user_expenses(expenses: Iterable[Expense], user_id: str) -> list[Expense]:
    return [expense for expense in expenses if expense.user_id == user_id]


def expense_by_id(expenses: Iterable[Expense], expense_id: str) -> Optional[Expense]:
    return next((expense for expense in expenses if expense.id == expense_id), None)


def budget_usage_percent(total: float, budget_limit: Optional[float]) -> float:
    """Share of the budget spent, clamped to ``0..100``.

    With no positive limit any spending counts as fully used.
    """
    if not budget_limit or budget_limit <= 0:
        return 100.0 if total > 0 else 0.0
    return max(0.0, min(100.0, total / budget_limit * 100.0))


def report_range_months(report_range: Union[ReportRange, str]) -> int:
    """Number of months covered by a report range.

    Raises:
        ValueError: *report_range* is not a known range.
    """
    return ReportRange(report_range).months


def monthly_series(
    expenses: Sequence[Expense],
    user_id: str,
    months: int,
    today: Optional[date] = None,
) -> list[tuple[str, float]]:
    """Per-month totals for the analytics chart, oldest first.

    Each entry is ``("YYYY-MM", total)``; months without expenses are
    ``0.0``.  The current month is the last entry.
    """
    if months < 1:
        return []
    current = today or datetime.now(timezone.utc).date()
    series = []
    for offset in range(months - 1, -1, -1):
        year, month = shift_month(current.year, current.month, -offset)
        total = monthly_total(expenses_by_month(expenses, user_id, year, month))
        series.append((f"{year:04d}-{month:02d}", total))
    return series


class SelectorCache:
    """Memoizes selector results keyed by ``(name, version, params)``.

    ``version`` is the combined version of whatever collections the
    selector reads.  When a lookup arrives with a new version every
    cached entry is dropped, since all of them were computed from the
    older state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._version: Optional[Hashable] = None
        self._entries: dict[tuple[str, Hashable], object] = {}
        self.hits: int = 0
        self.misses: int = 0

    def get_or_compute(
        self,
        name: str,
        version: Hashable,
        params: Hashable,
        compute: Callable[[], R],
    ) -> R:
        key = (name, params)
        with self._lock:
            if version != self._version:
                self._entries.clear()
                self._version = version
            if key in self._entries:
                self.hits += 1
                return self._entries[key]  # type: ignore[return-value]

        value = compute()
        with self._lock:
            if version == self._version:
                self._entries[key] = value
            self.misses += 1
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._version = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
