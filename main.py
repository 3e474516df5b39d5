"""
Budget Tracker Entry Point.

Builds the store through the composition root, restores persisted
state and logs a summary of what was loaded.  A UI layer would take the
returned store and subscribe to it instead of logging.

Usage::

    python main.py
"""

from __future__ import annotations

import atexit
import sys
from datetime import datetime, timezone

from budget_tracker.bootstrap import create_store
from budget_tracker.config import get_config
from budget_tracker.logger import StructuredLogger, get_logger
from budget_tracker.services.selectors import monthly_total


def main() -> None:
    """Application entry point: wire dependencies and report state."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting Budget Tracker...")

    config = get_config()
    store = create_store(config)

    # Flushes pending writes even on an unclean interpreter exit.
    # BudgetStore.close() is idempotent.
    atexit.register(store.close)

    try:
        state = store.get_state()
        logger.info(
            "Loaded %d user(s) and %d expense(s); report range %s; selected date %s.",
            len(state.users),
            len(state.expenses),
            state.ui.report_range,
            state.ui.selected_date_iso,
        )

        user = state.auth.user
        if user is None:
            logger.info("No signed-in user.")
        else:
            now = datetime.now(timezone.utc)
            total = monthly_total(store.expenses_by_month(user.id, now.year, now.month))
            logger.info(
                "Signed in as %s: %.2f spent this month (%.0f%% of budget, over=%s).",
                user.email,
                total,
                store.budget_usage_percent(total, user.budget_limit),
                store.is_over_budget(total, user.budget_limit),
            )
    finally:
        store.close()
        logger.info("Budget Tracker shut down.")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        sys.stderr.write(f"FATAL: {type(exc).__name__}: {exc}\n")
        sys.exit(1)
