"""Shared utility functions for the budget tracker.

Convenience re-exports so consumers can import directly from
``budget_tracker.utils``; full module imports remain supported.
"""

from budget_tracker.utils.audit import AuditEvent, log_audit_event
from budget_tracker.utils.dates import (
    month_bounds,
    parse_iso_datetime,
    shift_month,
    today_iso,
    try_parse_iso_datetime,
)

__all__ = [
    "AuditEvent",
    "log_audit_event",
    "month_bounds",
    "parse_iso_datetime",
    "shift_month",
    "today_iso",
    "try_parse_iso_datetime",
]
