"""
JSON Logging.

Every component logs through a :class:`StructuredLogger` handed to it
at construction.  Records are written as one JSON object per line to
the console and, when ``LOG_FILE`` is set, to a size-rotated file.
Audit events are ordinary INFO records whose message starts with
``AUDIT:`` (see :mod:`budget_tracker.utils.audit`).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO

# Attributes present on every LogRecord; anything else came in via ``extra``.
_RECORD_FIELDS: frozenset[str] = frozenset(
    vars(logging.makeLogRecord({}))
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line.

    Keys: ``timestamp`` (UTC ISO-8601), ``level``, ``logger_name``,
    ``message``, plus ``extra`` and ``exception`` when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }
        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_FIELDS}
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            entry["exception"] = record.exc_text
        return json.dumps(entry, ensure_ascii=False, default=str)


def _file_handler(path: str, max_bytes: int, backup_count: int) -> logging.Handler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(log_path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )


class StructuredLogger:
    """Injectable wrapper around a named ``logging.Logger``.

    Unset arguments come from :func:`budget_tracker.config.get_config`.
    Handlers are attached only the first time a name is configured, so
    building several loggers with one name does not duplicate output.
    An empty ``log_file`` keeps output on the console.
    """

    def __init__(
        self,
        name: str = "budget_tracker",
        level: Optional[int] = None,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        # config imports this module
        from budget_tracker.config import get_config
        cfg = get_config()

        resolved_level = cfg.log_level if level is None else level
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(resolved_level)
        if self._logger.handlers:
            return

        handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
        target = cfg.LOG_FILE if log_file is None else log_file
        file_error: Optional[OSError] = None
        if target:
            try:
                handlers.append(_file_handler(
                    target,
                    cfg.LOG_MAX_BYTES if max_bytes is None else max_bytes,
                    cfg.LOG_BACKUP_COUNT if backup_count is None else backup_count,
                ))
            except OSError as exc:
                file_error = exc

        formatter = JSONFormatter()
        for handler in handlers:
            handler.setLevel(resolved_level)
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

        if file_error is not None:
            self._logger.warning(
                "Log file %s is unavailable (%s); logging to the console only.",
                target,
                file_error,
            )

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)


def get_logger(name: str = "budget_tracker") -> StructuredLogger:
    """Shorthand for ``StructuredLogger(name=name)`` with config defaults."""
    return StructuredLogger(name=name)
