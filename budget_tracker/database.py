"""
Local Storage Connection Layer.

The budget tracker keeps its durable state in a single local SQLite
file.  SQLite plays the role of the browser's key-value storage: each
whitelisted state slice is one row, written by the persistence gateway
and read back once at startup.

Data access is performed through the Repository pattern.  This module
only manages the raw database *connection*; it contains no query logic.

Usage (dependency injection at app startup)::

    from budget_tracker.database import DatabaseManager
    from budget_tracker.logger import StructuredLogger

    db = DatabaseManager(
        sqlite_path=Path(config.STORAGE_PATH),
        logger=StructuredLogger(name="budget_tracker.database"),
    )
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from budget_tracker.logger import StructuredLogger


class DatabaseManager:
    """Owns the local SQLite connection and its write lock.

    The connection is opened with ``check_same_thread=False`` because
    the persistence writer thread and the main thread share it.  Every
    write must hold :pyattr:`write_lock`.

    Parameters
    ----------
    sqlite_path:
        Filesystem path for the SQLite database file.  Parent
        directories are created when missing.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    """

    def __init__(self, sqlite_path: Path, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger
        self._write_lock: threading.RLock = threading.RLock()
        self._closed: bool = False
        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(sqlite_path)

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Return the initialised SQLite connection."""
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Return the write lock for thread-safe SQLite operations.

        All code that performs SQLite writes should acquire this lock
        first::

            with db.write_lock:
                db.sqlite.execute("INSERT ...")
                db.sqlite.commit()
        """
        return self._write_lock

    @property
    def is_closed(self) -> bool:
        """``True`` once :meth:`close` has run."""
        return self._closed

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the SQLite connection.

        Safe to call multiple times; subsequent calls are no-ops.
        """
        with self._write_lock:
            if self._closed:
                return
            try:
                self._sqlite_conn.close()
                self._logger.info("SQLite connection closed.")
            except sqlite3.ProgrammingError:
                pass
            self._closed = True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect_sqlite(self, path: Path) -> sqlite3.Connection:
        """Open (or create) the SQLite database.

        Raises
        ------
        PermissionError
            If the OS denies access to the database file or its directory.
        sqlite3.DatabaseError
            If the file exists but is not a SQLite database.
        """
        try:
            if str(path) != ":memory:":
                path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            try:
                conn.execute("PRAGMA journal_mode=WAL;")
            except sqlite3.Error:
                conn.close()
                raise
            self._logger.info("SQLite database opened at %s", path)
            return conn
        except PermissionError as exc:
            msg = (
                f"Cannot open the local database at '{path}'. "
                "The file or its directory may be read-only or locked by "
                "another process.  Please check file permissions and try again."
            )
            self._logger.error(msg)
            raise PermissionError(msg) from exc
