"""
Slice Repository.

Key-value access to the ``persisted_slices`` table.  One row per
whitelisted state slice, written by the persistence writer thread and
read once at startup.

Writes are sequence-guarded: a row is only overwritten by a write with
a strictly higher ``seq``, so a stale write can never clobber a newer
snapshot even if it arrives late.
"""

from __future__ import annotations

import sqlite3
from typing import NamedTuple, Optional

from budget_tracker.database import DatabaseManager
from budget_tracker.logger import StructuredLogger


class StoredSlice(NamedTuple):
    key: str
    version: int
    seq: int
    payload: str


class SliceRepository:
    """Reads and writes persisted slice snapshots in local SQLite."""

    TABLE: str = "persisted_slices"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    def get(self, key: str) -> Optional[StoredSlice]:
        """Return the stored snapshot for *key*, or ``None`` if absent.

        Raises:
            sqlite3.Error: If the table cannot be read.
        """
        with self._db.write_lock:
            row = self._db.sqlite.execute(
                f"SELECT key, version, seq, payload FROM {self.TABLE} WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        return StoredSlice(
            key=row["key"],
            version=row["version"],
            seq=row["seq"],
            payload=row["payload"],
        )

    def put(self, key: str, version: int, seq: int, payload: str) -> bool:
        """Upsert the snapshot for *key* if *seq* is newer than the stored one.

        Returns ``True`` when the row was written, ``False`` when a newer
        snapshot was already present.

        Raises:
            sqlite3.Error: If the write fails.
        """
        with self._db.write_lock:
            cursor = self._db.sqlite.execute(
                f"""
                INSERT INTO {self.TABLE} (key, version, seq, payload)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    version    = excluded.version,
                    seq        = excluded.seq,
                    payload    = excluded.payload,
                    updated_at = CURRENT_TIMESTAMP
                WHERE excluded.seq > {self.TABLE}.seq
                """,
                (key, version, seq, payload),
            )
            self._db.sqlite.commit()
        written = cursor.rowcount > 0
        if not written:
            self._logger.debug(
                "Skipped stale write for slice %s (seq %d).", key, seq,
            )
        return written

    def latest_seq(self, key: str) -> int:
        """Highest stored sequence for *key* (``0`` when absent or unreadable)."""
        try:
            stored = self.get(key)
        except sqlite3.Error as exc:
            self._logger.warning("Could not read seq for slice %s: %s", key, exc)
            return 0
        return stored.seq if stored is not None else 0
