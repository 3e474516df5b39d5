"""
Store Bootstrap.

Builds a ready-to-use :class:`BudgetStore`: opens local storage,
initialises the schema, wires the service container, restores the
persisted slices and starts the persistence writer.  Every subsystem is
constructed here and passed down explicitly.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from budget_tracker.config import AppConfig, get_config
from budget_tracker.database import DatabaseManager
from budget_tracker.logger import StructuredLogger, get_logger
from budget_tracker.models.enums import ErrorKind, UserRole
from budget_tracker.models.user import User
from budget_tracker.schema import initialize_schema
from budget_tracker.services import create_services
from budget_tracker.store import BudgetStore

# Demo directory shown on the users page of a fresh install.  These
# accounts carry no password, so nobody can sign in as them.
_SEED_CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)

DEMO_USERS: tuple[User, ...] = (
    User(
        id="user-1",
        first_name="Guy",
        last_name="Hawkins",
        email="guy.hawkins@example.com",
        phone="+1 (555) 123-4567",
        role=UserRole.ADMIN,
        created_at=_SEED_CREATED_AT,
    ),
    User(
        id="user-2",
        first_name="Wade",
        last_name="Warren",
        email="wade.warren@example.com",
        phone="+1 (555) 234-5678",
        role=UserRole.USER,
        created_at=_SEED_CREATED_AT,
    ),
    User(
        id="user-3",
        first_name="Jenny",
        last_name="Wilson",
        email="jenny.wilson@example.com",
        phone="+1 (555) 345-6789",
        role=UserRole.USER,
        created_at=_SEED_CREATED_AT,
    ),
    User(
        id="user-4",
        first_name="Robert",
        last_name="Fox",
        email="robert.fox@example.com",
        phone="+1 (555) 456-7890",
        role=UserRole.MANAGER,
        created_at=_SEED_CREATED_AT,
    ),
)


def create_store(config: Optional[AppConfig] = None) -> BudgetStore:
    """Wire and hydrate a store.

    With ``PERSIST_ENABLED`` false no database is opened and the store
    starts from defaults every time.

    A storage file that is not a readable database is moved aside and
    replaced; if that fails too the store runs without persistence.

    Raises:
        PermissionError: The storage file cannot be opened.
        sqlite3.OperationalError: The database is locked or unwritable.
    """
    config = config or get_config()
    logger: StructuredLogger = get_logger("budget_tracker.bootstrap")

    # ------------------------------------------------------------------
    # 1. Local storage + schema (idempotent)
    # ------------------------------------------------------------------
    db: Optional[DatabaseManager] = None
    if config.PERSIST_ENABLED:
        db = _open_storage(Path(config.STORAGE_PATH), logger)

    # ------------------------------------------------------------------
    # 2. Service container (single composition root)
    # ------------------------------------------------------------------
    services = create_services(config=config, db=db)
    store = BudgetStore(
        services=services,
        logger=get_logger("budget_tracker.store"),
        db=db,
    )

    # ------------------------------------------------------------------
    # 3. Restore persisted slices before accepting commands
    # ------------------------------------------------------------------
    restored = services["persistence"].restore()
    store.hydrate(
        restored,
        default_users=DEMO_USERS if config.SEED_DEMO_USERS else (),
    )
    if restored.malformed:
        logger.warning(
            "Fell back to defaults for malformed slice(s): %s.",
            ", ".join(restored.malformed),
        )

    # ------------------------------------------------------------------
    # 4. Background writer
    # ------------------------------------------------------------------
    store.start()
    logger.info(
        "Budget store ready (persistence=%s, credential scheme=%s).",
        "on" if services["persistence"].enabled else "off",
        services["credentials"].scheme,
    )
    return store


def _connect(path: Path) -> DatabaseManager:
    db = DatabaseManager(sqlite_path=path, logger=get_logger("budget_tracker.database"))
    try:
        initialize_schema(db.sqlite, get_logger("budget_tracker.schema"))
    except Exception:
        db.close()
        raise
    return db


def _open_storage(path: Path, logger: StructuredLogger) -> Optional[DatabaseManager]:
    """Open the storage file, recovering from one that is not a database.

    The unreadable file is renamed to ``<name>.corrupt`` and a fresh
    database is created in its place.  Returns ``None`` when recovery
    fails as well.
    """
    try:
        return _connect(path)
    except sqlite3.OperationalError:
        raise
    except sqlite3.DatabaseError as exc:
        logger.warning(
            "Storage file %s is not a readable database (%s); moving it aside.",
            path,
            exc,
            extra={"error_kind": ErrorKind.MALFORMED_PERSISTED_STATE.value},
        )

    aside = path.with_name(path.name + ".corrupt")
    try:
        path.replace(aside)
        return _connect(path)
    except (OSError, sqlite3.Error) as exc:
        logger.error(
            "Could not recreate storage at %s (%s); persistence is off for this run.",
            path,
            exc,
            extra={"error_kind": ErrorKind.MALFORMED_PERSISTED_STATE.value},
        )
        return None
