"""Tests for configuration loading, JSON logging and audit events."""

import io
import json
import logging
import sys

import pytest
from pydantic import ValidationError

from budget_tracker.config import AppConfig, get_config, reset_config
from budget_tracker.logger import JSONFormatter, StructuredLogger
from budget_tracker.utils.audit import log_audit_event


class TestConfig:
    """Environment-driven settings."""

    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset_rereads_environment(self, monkeypatch):
        monkeypatch.setenv("MIN_PASSWORD_LENGTH", "10")
        reset_config()
        assert get_config().MIN_PASSWORD_LENGTH == 10

    def test_log_level_resolution(self):
        assert AppConfig(LOG_LEVEL="warning").log_level == logging.WARNING
        assert AppConfig(LOG_LEVEL="chatty").log_level == logging.INFO

    @pytest.mark.parametrize(
        "field, value",
        [("CREDENTIAL_SCHEME", "md5"), ("DEFAULT_REPORT_RANGE", "2y"), ("PBKDF2_ITERATIONS", 0)],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            AppConfig(**{field: value})

    def test_warns_when_persistence_disabled(self, caplog):
        with caplog.at_level(logging.WARNING, logger="budget_tracker.config"):
            AppConfig(PERSIST_ENABLED=False)
        assert "PERSIST_ENABLED is false" in caplog.text


class TestStructuredLogging:
    """JSON log lines."""

    def test_json_line_with_extra(self):
        stream = io.StringIO()
        log = StructuredLogger(name="budget_tracker.tests.json", stream=stream, log_file="")
        log.info("Expense added", extra={"expense_id": "e1"})
        entry = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert entry["message"] == "Expense added"
        assert entry["level"] == "INFO"
        assert entry["extra"]["expense_id"] == "e1"

    def test_exception_is_serialized(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.getLogger("x").makeRecord(
                "x", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info(),
            )
        entry = json.loads(formatter.format(record))
        assert "ValueError: boom" in entry["exception"]

    def test_unwritable_log_file_falls_back_to_console(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        stream = io.StringIO()
        StructuredLogger(
            name="budget_tracker.tests.nofile", stream=stream, log_file=str(blocker / "app.log"),
        )
        assert "logging to the console only" in stream.getvalue()


class TestAuditEvents:
    """Audit trail lines."""

    def test_event_is_logged_and_returned(self, logger, caplog):
        event = log_audit_event(
            logger, "CREATE", "Expense", "e1", actor_id="u1", details={"amount": 3.5},
        )
        assert event.actor_id == "u1"
        assert event.details == {"amount": 3.5}
        assert "AUDIT:" in caplog.text
        assert '"entity_id": "e1"' in caplog.text

    def test_store_mutations_are_audited(self, signed_up, caplog):
        store, user = signed_up
        store.add_expense({"userId": user.id, "name": "x", "amount": 1, "dateISO": "2024-01-05"})
        audit_lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("AUDIT:")]
        payload = json.loads(audit_lines[-1][len("AUDIT: "):])
        assert payload["action"] == "CREATE"
        assert payload["entity_type"] == "Expense"
        assert payload["actor_id"] == user.id
