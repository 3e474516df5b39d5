"""
SQLite Schema Initialization.

Defines the local storage schema and a single entry-point,
:func:`initialize_schema`, that creates the required tables
idempotently.  A single-row ``schema_version`` table records the
applied version.

``persisted_slices`` is the key-value store for state snapshots::

    persisted_slices
    ├── key        TEXT PRIMARY KEY   ('auth' | 'expenses' | 'users')
    ├── version    INTEGER            blob format version
    ├── seq        INTEGER            per-slice write sequence
    ├── payload    TEXT               JSON snapshot
    └── updated_at TIMESTAMP

Usage::

    from budget_tracker.schema import initialize_schema

    initialize_schema(db.sqlite, StructuredLogger(name="budget_tracker.schema"))
"""

from __future__ import annotations

import sqlite3

from budget_tracker.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 1

_TABLE_DEFINITIONS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS persisted_slices (
        key TEXT PRIMARY KEY,
        version INTEGER NOT NULL,
        seq INTEGER NOT NULL,
        payload TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the current schema version, or ``0`` if unset."""
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return row[0] if row is not None else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Upsert the version tracker.  Does **not** commit."""
    conn.execute(
        """
        INSERT INTO schema_version (id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET version = excluded.version,
                                      applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the local database has every table at the current version.

    Safe to call on every startup.  The table creation and the version
    bump run in one transaction; on failure everything is rolled back
    and the error re-raised.
    """
    try:
        for ddl in _TABLE_DEFINITIONS:
            conn.execute(ddl)
        current: int = _get_schema_version(conn)
        if current < CURRENT_SCHEMA_VERSION:
            _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error("Schema initialisation failed; rolled back.")
        raise

    if current < CURRENT_SCHEMA_VERSION:
        logger.info(
            "Schema initialised at version %d (was %d).",
            CURRENT_SCHEMA_VERSION,
            current,
        )
    else:
        logger.info("Schema is up to date (version %d).", current)
