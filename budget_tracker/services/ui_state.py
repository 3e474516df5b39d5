"""
UI Ephemeral State Service.

Selected date, analytics report range and the toast queue.  This state
lives only in memory: it is never written by the persistence gateway
and starts from defaults on every launch.
"""

from __future__ import annotations

import threading
import uuid
from datetime import date, datetime, timezone
from typing import Optional, Union

from budget_tracker.exceptions import FieldValidationError, InvalidReportRangeError
from budget_tracker.logger import StructuredLogger
from budget_tracker.models.enums import ReportRange, ToastKind
from budget_tracker.models.ui_state import Toast, UIState
from budget_tracker.utils.dates import today_iso, try_parse_iso_datetime


class UIStateService:
    """Holds the UI slice as an immutable :class:`UIState` snapshot.

    Every change swaps in a new snapshot, so ``snapshot()`` is always
    consistent without copying.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        default_report_range: Union[ReportRange, str] = ReportRange.SIX_MONTHS,
        default_toast_duration_ms: int = 5000,
        today: Optional[date] = None,
    ) -> None:
        self._logger = logger
        self._lock = threading.RLock()
        self._default_toast_duration_ms = default_toast_duration_ms
        self._state = UIState(
            selected_date_iso=today_iso(today),
            report_range=ReportRange(default_report_range),
        )

    def snapshot(self) -> UIState:
        with self._lock:
            return self._state

    # ------------------------------------------------------------------
    # Date & range
    # ------------------------------------------------------------------

    def set_selected_date(self, date_iso: str) -> UIState:
        """Raises:
            FieldValidationError: *date_iso* is not an ISO-8601 date.
        """
        cleaned = date_iso.strip() if isinstance(date_iso, str) else ""
        if try_parse_iso_datetime(cleaned) is None:
            raise FieldValidationError("selected_date", f"'{date_iso}' is not a valid date.")
        with self._lock:
            self._state = self._state.model_copy(update={"selected_date_iso": cleaned})
            return self._state

    def set_report_range(self, report_range: Union[ReportRange, str]) -> UIState:
        """Raises:
            InvalidReportRangeError: Not one of ``1m``, ``6m``, ``12m``.
        """
        try:
            parsed = ReportRange(report_range)
        except ValueError:
            allowed = ", ".join(r.value for r in ReportRange)
            raise InvalidReportRangeError(
                f"Unknown report range '{report_range}'. Expected one of: {allowed}."
            ) from None
        with self._lock:
            self._state = self._state.model_copy(update={"report_range": parsed})
            return self._state

    # ------------------------------------------------------------------
    # Toasts
    # ------------------------------------------------------------------

    def add_toast(
        self,
        message: str,
        kind: Union[ToastKind, str] = ToastKind.INFO,
        duration_ms: Optional[int] = None,
    ) -> Toast:
        """Append a toast to the queue and return it.

        ``duration_ms`` defaults to the configured duration; ``0`` makes
        the toast sticky until removed.

        Raises:
            FieldValidationError: Blank message, unknown kind or a
                duration that is not a non-negative integer.
        """
        if not isinstance(message, str) or not message.strip():
            raise FieldValidationError("message", "Toast message is required.")
        try:
            toast_kind = ToastKind(kind)
        except ValueError:
            raise FieldValidationError("kind", f"Unknown toast kind '{kind}'.") from None
        duration = self._default_toast_duration_ms if duration_ms is None else duration_ms
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise FieldValidationError(
                "duration_ms", f"'{duration}' is not a whole number of milliseconds.",
            )
        if duration < 0:
            raise FieldValidationError("duration_ms", "Toast duration must not be negative.")

        toast = Toast(
            id=str(uuid.uuid4()),
            message=message.strip(),
            kind=toast_kind,
            duration_ms=duration,
        )
        with self._lock:
            self._state = self._state.model_copy(
                update={"toasts": self._state.toasts + (toast,)}
            )
        return toast

    def remove_toast(self, toast_id: str) -> bool:
        """Dismiss one toast.  Unknown ids are a no-op (``False``)."""
        with self._lock:
            remaining = tuple(t for t in self._state.toasts if t.id != toast_id)
            if len(remaining) == len(self._state.toasts):
                return False
            self._state = self._state.model_copy(update={"toasts": remaining})
            return True

    def clear_toasts(self) -> int:
        with self._lock:
            removed = len(self._state.toasts)
            self._state = self._state.model_copy(update={"toasts": ()})
            return removed

    def expire_toasts(self, now: Optional[datetime] = None) -> int:
        """Drop every toast whose duration has elapsed at *now*.

        Returns the number of toasts removed.
        """
        moment = now or datetime.now(timezone.utc)
        with self._lock:
            remaining = tuple(t for t in self._state.toasts if not t.is_expired(moment))
            removed = len(self._state.toasts) - len(remaining)
            if removed:
                self._state = self._state.model_copy(update={"toasts": remaining})
                self._logger.debug("Expired %d toast(s).", removed)
            return removed
