"""
Application Configuration.

Pydantic Settings model for the Budget Tracker state core.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Local storage ---
    STORAGE_PATH: str = "budget_tracker_local.db"
    PERSIST_ENABLED: bool = True

    # --- Seed data ---
    SEED_DEMO_USERS: bool = True

    # --- Credentials ---
    CREDENTIAL_SCHEME: Literal["pbkdf2", "sha256"] = "pbkdf2"
    PBKDF2_ITERATIONS: int = Field(default=600_000, ge=1)
    MIN_PASSWORD_LENGTH: int = Field(default=6, ge=1)

    # --- UI defaults ---
    DEFAULT_REPORT_RANGE: Literal["1m", "6m", "12m"] = "6m"
    TOAST_DEFAULT_DURATION_MS: int = Field(default=5000, ge=0)

    # --- Logging ---
    LOG_FILE: str = "budget_tracker.log"
    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when running without a ``.env`` file
        or with persistence switched off."""
        _log = logging.getLogger("budget_tracker.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.PERSIST_ENABLED:
            _log.warning(
                "PERSIST_ENABLED is false; state will not survive a restart."
            )

        if self.CREDENTIAL_SCHEME == "sha256":
            _log.warning(
                "CREDENTIAL_SCHEME=sha256 stores unsalted password digests. "
                "Use only for demos."
            )

        return self

    @property
    def log_level(self) -> int:
        """Numeric logging level resolved from ``LOG_LEVEL``."""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern to avoid the lock overhead on the
    fast path while remaining thread-safe during first initialisation.
    Prefer constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton so the next ``get_config()`` re-reads
    the environment."""
    global _config_instance
    with _config_lock:
        _config_instance = None
