"""
Expense Repository.

In-memory Expenses collection of the Entity Store.  Filtering and
aggregation live in :mod:`budget_tracker.services.selectors`; this
class only stores and replaces records.
"""

from __future__ import annotations

from budget_tracker.logger import StructuredLogger
from budget_tracker.models.expense import Expense
from budget_tracker.repositories.base_repository import BaseRepository


class ExpenseRepository(BaseRepository[Expense]):
    """Data access for Expense records."""

    ENTITY = "Expense"

    def __init__(self, logger: StructuredLogger) -> None:
        super().__init__(logger)

    def count_for_user(self, user_id: str) -> int:
        return sum(1 for expense in self._items if expense.user_id == user_id)
