"""
Base Repository.

Shared infrastructure for the in-memory Entity Store collections:

- An immutable, insertion-ordered tuple of records
- A monotonically increasing ``version`` bumped on every change
- Copy-on-write commits, so a reader holding a snapshot never sees
  a partially applied mutation
"""

from __future__ import annotations

from typing import Callable, Generic, Iterable, Optional, Protocol, TypeVar

from budget_tracker.logger import StructuredLogger


class _HasId(Protocol):
    @property
    def id(self) -> str: ...  # noqa: E704


T = TypeVar("T", bound=_HasId)


class BaseRepository(Generic[T]):
    """Base class for the collection repositories.

    Subclasses set ``ENTITY`` for log messages and add their own
    lookups.  All mutation paths go through :meth:`_commit`.
    """

    ENTITY: str = ""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger = logger
        self._items: tuple[T, ...] = ()
        self._version: int = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        """Bumped on every accepted change; selector caches key on it."""
        return self._version

    def get_all(self) -> tuple[T, ...]:
        """Return the current snapshot in insertion order."""
        return self._items

    def get_by_id(self, entity_id: str) -> Optional[T]:
        return self.find_first(lambda item: item.id == entity_id)

    def find_first(self, predicate: Callable[[T], bool]) -> Optional[T]:
        return next((item for item in self._items if predicate(item)), None)

    def __len__(self) -> int:
        return len(self._items)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, item: T) -> T:
        self._commit(self._items + (item,))
        self._logger.debug("%s inserted: %s", self.ENTITY, item.id)
        return item

    def replace(self, item: T) -> bool:
        """Swap the record with the same id in place.  Returns ``False``
        when no such record exists."""
        for index, existing in enumerate(self._items):
            if existing.id == item.id:
                self._commit(self._items[:index] + (item,) + self._items[index + 1:])
                self._logger.debug("%s replaced: %s", self.ENTITY, item.id)
                return True
        return False

    def delete(self, entity_id: str) -> bool:
        """Remove every record with *entity_id*.  Returns ``False`` when
        nothing matched."""
        remaining = tuple(item for item in self._items if item.id != entity_id)
        if len(remaining) == len(self._items):
            return False
        self._commit(remaining)
        self._logger.debug("%s deleted: %s", self.ENTITY, entity_id)
        return True

    def load(self, items: Iterable[T]) -> None:
        """Replace the whole collection (rehydration at startup)."""
        self._commit(tuple(items))
        self._logger.info("%s collection loaded: %d record(s).", self.ENTITY, len(self._items))

    def _commit(self, items: tuple[T, ...]) -> None:
        self._items = items
        self._version += 1
