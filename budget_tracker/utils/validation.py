"""Form-field validation rules shared by signup and user management.

Each rule returns a :class:`ValidationResult` instead of raising, so
callers can collect or surface messages as they see fit.
"""

from __future__ import annotations

import re
from typing import Optional

from budget_tracker.models.auth_models import ValidationResult

__all__ = [
    "validate_budget_limit",
    "validate_email",
    "validate_name",
    "validate_password",
    "validate_password_confirmation",
    "validate_phone",
]

_EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

# Optional leading "+", then up to 16 digits with no leading zero.
_PHONE_RE: re.Pattern[str] = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_SEPARATORS_RE: re.Pattern[str] = re.compile(r"[\s\-()]")

# C0 controls, DEL and C1 controls.
_CONTROL_CHAR_RE: re.Pattern[str] = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def validate_email(email: str) -> ValidationResult:
    """Validate an email address against a simplified RFC 5322 regex."""
    if not email or not email.strip():
        return ValidationResult(is_valid=False, error_message="Email is required.")
    if not _EMAIL_RE.match(email.strip()):
        return ValidationResult(
            is_valid=False,
            error_message="Please enter a valid email address.",
        )
    return ValidationResult(is_valid=True)


def validate_password(password: str, min_length: int) -> ValidationResult:
    """Require a password of at least *min_length* characters."""
    if not password:
        return ValidationResult(is_valid=False, error_message="Password is required.")
    if len(password) < min_length:
        return ValidationResult(
            is_valid=False,
            error_message=f"Password must be at least {min_length} characters.",
        )
    return ValidationResult(is_valid=True)


def validate_password_confirmation(
    password: str, confirm_password: Optional[str],
) -> ValidationResult:
    """A ``None`` confirmation means the form did not ask for one."""
    if confirm_password is not None and confirm_password != password:
        return ValidationResult(is_valid=False, error_message="Passwords do not match.")
    return ValidationResult(is_valid=True)


def validate_name(name: str, field_label: str) -> ValidationResult:
    """Validate a first or last name.

    Rejects blank values and control characters (newlines, tabs ...)
    to keep log lines and rendered labels intact.
    """
    stripped = (name or "").strip()
    if not stripped:
        return ValidationResult(
            is_valid=False,
            error_message=f"{field_label} is required.",
        )
    if _CONTROL_CHAR_RE.search(stripped):
        return ValidationResult(
            is_valid=False,
            error_message=(
                f"{field_label} contains invalid characters. "
                "Only printable characters are allowed."
            ),
        )
    return ValidationResult(is_valid=True)


def validate_phone(phone: str) -> ValidationResult:
    """Empty is allowed; otherwise digits with optional ``+`` and
    separators (spaces, dashes, parentheses)."""
    if not phone or not phone.strip():
        return ValidationResult(is_valid=True)
    compact = _PHONE_SEPARATORS_RE.sub("", phone)
    if not _PHONE_RE.match(compact):
        return ValidationResult(
            is_valid=False,
            error_message="Please enter a valid phone number.",
        )
    return ValidationResult(is_valid=True)


def validate_budget_limit(budget_limit: Optional[float]) -> ValidationResult:
    """``None`` means no limit was given; a given limit must be positive."""
    if budget_limit is not None and budget_limit <= 0:
        return ValidationResult(
            is_valid=False,
            error_message="Please enter a valid budget limit.",
        )
    return ValidationResult(is_valid=True)
