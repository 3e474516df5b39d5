"""
Persistence Gateway.

Writes the whitelisted state slices (``auth``, ``expenses``, ``users``)
to the local SQLite ``persisted_slices`` table and reads them back once
at startup.  UI state, loading flags, errors and toasts never reach
this module.

Writes are fire-and-forget: the store serializes a slice under its own
lock and hands the payload to :meth:`PersistenceGateway.schedule`, which
stamps it with the next per-slice sequence number and queues it.  A
single daemon writer thread drains the FIFO queue.  Because the upsert
in :class:`SliceRepository` only replaces a row holding a lower
sequence, an earlier snapshot can never overwrite a later one.

Restore never fails startup: an absent slice comes back as ``None``
and a malformed one (bad JSON, wrong shape, unknown blob version or a
broken ``isAuthenticated`` invariant) is logged as a warning and also
comes back as ``None``, so the store falls back to that slice's default.
"""

from __future__ import annotations

import queue
import sqlite3
import threading
from typing import NamedTuple, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from budget_tracker.exceptions import MalformedPersistedStateError
from budget_tracker.logger import StructuredLogger
from budget_tracker.models.persisted import (
    SLICE_FORMAT_VERSION,
    AuthSlice,
    ExpensesSlice,
    UsersSlice,
)
from budget_tracker.repositories.slice_repository import SliceRepository
from budget_tracker.services.base_service import BaseService

B = TypeVar("B", bound=BaseModel)

AUTH_SLICE: str = "auth"
EXPENSES_SLICE: str = "expenses"
USERS_SLICE: str = "users"

_SLICE_MODELS: dict[str, Type[BaseModel]] = {
    AUTH_SLICE: AuthSlice,
    EXPENSES_SLICE: ExpensesSlice,
    USERS_SLICE: UsersSlice,
}


class RestoredState(NamedTuple):
    """Slices read at startup.  ``None`` means "use the default"."""

    auth: Optional[AuthSlice]
    expenses: Optional[ExpensesSlice]
    users: Optional[UsersSlice]
    malformed: tuple[str, ...]


class _PendingWrite(NamedTuple):
    key: str
    seq: int
    payload: str


# Queue sentinel that tells the writer thread to exit.
_STOP = object()


class PersistenceGateway(BaseService):
    """Serializes whitelisted slices to local storage on a writer thread.

    Parameters
    ----------
    slice_repo:
        SQLite slice store.  May be ``None`` when ``enabled`` is false.
    logger:
        Structured JSON logger.
    enabled:
        When false every write is dropped and restore returns defaults.
    """

    SLICE_KEYS: tuple[str, ...] = (AUTH_SLICE, EXPENSES_SLICE, USERS_SLICE)

    def __init__(
        self,
        slice_repo: Optional[SliceRepository],
        logger: StructuredLogger,
        enabled: bool = True,
    ) -> None:
        super().__init__(logger)
        self._repo = slice_repo
        self._enabled = enabled and slice_repo is not None
        self._queue: queue.Queue = queue.Queue()
        self._seq: dict[str, int] = {}
        self._seq_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self.failed_writes: int = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def restore(self) -> RestoredState:
        """Read every whitelisted slice.  Never raises."""
        if not self._enabled:
            return RestoredState(None, None, None, ())

        malformed: list[str] = []
        restored: dict[str, Optional[BaseModel]] = {}
        for key in self.SLICE_KEYS:
            try:
                restored[key] = self.load_slice(key)
            except MalformedPersistedStateError as exc:
                malformed.append(key)
                restored[key] = None
                self._logger.warning(
                    "Discarding persisted slice %s: %s",
                    key,
                    exc.message,
                    extra={"event": "MALFORMED_PERSISTED_STATE", "slice": key},
                )

        self._logger.info(
            "Persisted state restored (%s).",
            ", ".join(
                f"{key}={'default' if restored[key] is None else 'stored'}"
                for key in self.SLICE_KEYS
            ),
        )
        return RestoredState(
            auth=restored[AUTH_SLICE],  # type: ignore[arg-type]
            expenses=restored[EXPENSES_SLICE],  # type: ignore[arg-type]
            users=restored[USERS_SLICE],  # type: ignore[arg-type]
            malformed=tuple(malformed),
        )

    def load_slice(self, key: str) -> Optional[BaseModel]:
        """Decode the stored snapshot for *key*; ``None`` when absent.

        Also primes the slice's sequence counter from storage.

        Raises:
            MalformedPersistedStateError: The stored snapshot cannot be
                read or does not match the current blob format.
        """
        model = _SLICE_MODELS[key]
        assert self._repo is not None
        try:
            stored = self._repo.get(key)
        except sqlite3.Error as exc:
            raise MalformedPersistedStateError(key, f"storage read failed: {exc}") from exc
        if stored is None:
            return None

        with self._seq_lock:
            self._seq[key] = max(self._seq.get(key, 0), stored.seq)

        if stored.version != SLICE_FORMAT_VERSION:
            raise MalformedPersistedStateError(
                key, f"unsupported blob version {stored.version}",
            )
        try:
            return model.model_validate_json(stored.payload)
        except ValidationError as exc:
            raise MalformedPersistedStateError(
                key, f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}",
            ) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def schedule(self, key: str, blob: BaseModel) -> Optional[int]:
        """Serialize *blob* now and queue it for writing.

        Returns the sequence number assigned, or ``None`` when
        persistence is disabled.  Never blocks on storage.
        """
        if not self._enabled:
            return None
        if key not in _SLICE_MODELS:
            raise KeyError(f"'{key}' is not a persisted slice.")

        payload = blob.model_dump_json(by_alias=True)
        seq = self._next_seq(key)
        self._queue.put(_PendingWrite(key=key, seq=seq, payload=payload))
        return seq

    def flush(self) -> None:
        """Block until every queued write has been attempted.

        Without a running writer the queue is drained on the calling
        thread.
        """
        if not self._enabled:
            return
        if self.is_running:
            self._queue.join()
            return
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            try:
                if item is not _STOP:
                    self._write(item)
            finally:
                self._queue.task_done()

    @property
    def pending_writes(self) -> int:
        return self._queue.unfinished_tasks

    # ------------------------------------------------------------------
    # Writer lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the writer on a daemon thread.  Idempotent."""
        if not self._enabled:
            return
        if self._thread is not None and self._thread.is_alive():
            self._logger.debug("Persistence writer already running.")
            return

        self._thread = threading.Thread(
            target=self._run_loop,
            name="PersistenceWriter",
            daemon=True,
        )
        self._thread.start()
        self._logger.info("Persistence writer started.")

    def stop(self) -> None:
        """Ask the writer to exit after the queued writes and wait up to 10 s."""
        if self._thread is None:
            return

        self._queue.put(_STOP)
        self._thread.join(timeout=10.0)

        if self._thread.is_alive():
            self._logger.warning(
                "Persistence writer did not terminate within 10 s."
            )
        else:
            self._logger.info("Persistence writer stopped.")

        self._thread = None

    def close(self) -> None:
        """Flush outstanding writes, then stop the writer."""
        self.flush()
        self.stop()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Writer loop
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._write(item)
            finally:
                self._queue.task_done()

    def _write(self, item: _PendingWrite) -> None:
        assert self._repo is not None
        try:
            self._repo.put(item.key, SLICE_FORMAT_VERSION, item.seq, item.payload)
        except Exception:
            self.failed_writes += 1
            self._logger.warning(
                "Failed to persist slice %s (seq %d); write dropped.",
                item.key,
                item.seq,
                exc_info=True,
            )

    def _next_seq(self, key: str) -> int:
        with self._seq_lock:
            if key not in self._seq:
                self._seq[key] = self._repo.latest_seq(key) if self._repo else 0
            self._seq[key] += 1
            return self._seq[key]
