"""
User Repository.

In-memory Users collection of the Entity Store.  Emails are stored
normalized (stripped, lowercased), so lookups normalize their input the
same way.
"""

from __future__ import annotations

from typing import Optional

from budget_tracker.logger import StructuredLogger
from budget_tracker.models.user import User, normalize_email
from budget_tracker.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Data access for User records.

    Deleting a user never touches expenses; the ``user_id`` on an
    expense is a weak reference.
    """

    ENTITY = "User"

    def __init__(self, logger: StructuredLogger) -> None:
        super().__init__(logger)

    def get_by_email(self, email: str) -> Optional[User]:
        """Fetch a user by email address (case-insensitive)."""
        normalized_email = normalize_email(email)
        return self.find_first(lambda user: user.email == normalized_email)

    def email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        """``True`` when another user already holds *email*."""
        existing = self.get_by_email(email)
        return existing is not None and existing.id != exclude_id
