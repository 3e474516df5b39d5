"""
UI Ephemeral State Models.

View state owned by the presentation layer.  Never persisted.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field

from budget_tracker.models.enums import ReportRange, ToastKind


class Toast(BaseModel):
    """A transient notification.  Expires ``duration_ms`` after creation
    unless dismissed earlier; ``duration_ms == 0`` means sticky."""

    model_config = ConfigDict(frozen=True)

    id: str
    message: str
    kind: ToastKind = ToastKind.INFO
    duration_ms: int = Field(default=5000, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def expires_at(self) -> datetime | None:
        if self.duration_ms == 0:
            return None
        return self.created_at + timedelta(milliseconds=self.duration_ms)

    def is_expired(self, now: datetime) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and now >= expires_at


class UIState(BaseModel):
    """Selected date, report range and the insertion-ordered toast queue."""

    model_config = ConfigDict(frozen=True)

    selected_date_iso: str
    report_range: ReportRange = ReportRange.SIX_MONTHS
    toasts: tuple[Toast, ...] = ()
