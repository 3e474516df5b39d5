"""
Repository Layer Package.

In-memory Entity Store collections (users, expenses) and the SQLite
slice store used by the persistence gateway.  Services never touch the
collections or the database directly.
"""

from budget_tracker.repositories.base_repository import BaseRepository
from budget_tracker.repositories.expense_repository import ExpenseRepository
from budget_tracker.repositories.slice_repository import SliceRepository, StoredSlice
from budget_tracker.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "ExpenseRepository",
    "SliceRepository",
    "StoredSlice",
    "UserRepository",
]
