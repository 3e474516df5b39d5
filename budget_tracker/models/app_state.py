"""Whole-store snapshot returned by ``BudgetStore.get_state()``."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from budget_tracker.models.auth_models import AuthSession
from budget_tracker.models.expense import Expense
from budget_tracker.models.ui_state import UIState
from budget_tracker.models.user import User


class AppState(BaseModel):
    """One consistent view of every slice, taken under the store lock."""

    model_config = ConfigDict(frozen=True)

    auth: AuthSession
    users: tuple[User, ...] = ()
    expenses: tuple[Expense, ...] = ()
    ui: UIState
