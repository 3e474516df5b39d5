"""
Authentication Models.

Pydantic models for the auth session snapshot and the small
request/response contracts between ``AuthService`` and its callers.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from budget_tracker.models.enums import AuthStatus
from budget_tracker.models.user import User


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a single field validation check.

    Attributes
    ----------
    is_valid:
        ``True`` when the value passes the validation rule.
    error_message:
        Human-readable description of the failure, or ``None`` on success.
    """

    is_valid: bool
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Session snapshot
# ---------------------------------------------------------------------------

class AuthSession(BaseModel):
    """Immutable view of the auth slice.

    ``user`` is a copy of the Entity Store record with the password
    digest stripped, so later edits to the store never leak into the
    session and the digest never leaves the store.

    Invariant: ``is_authenticated`` is ``True`` iff ``user`` is set.
    """

    model_config = ConfigDict(frozen=True)

    user: Optional[User] = None
    is_authenticated: bool = False
    status: AuthStatus = AuthStatus.ANONYMOUS
    loading: bool = False
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_identity(self) -> "AuthSession":
        if self.is_authenticated != (self.user is not None):
            raise ValueError("is_authenticated must be true iff user is set.")
        return self


class PasswordResetConfirmation(BaseModel):
    """Mocked forgot-password response.  Nothing is actually sent."""

    email: str
    message: str = "Password reset link sent to your email"
