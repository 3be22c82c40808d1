from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from contextlib import contextmanager
from functools import lru_cache
from threading import RLock
from typing import Any, ContextManager, Dict, Generator, List, Mapping, Optional

from .entities import COLS, ENTITIES, USER_COLUMNS, USERS_TABLE, EntityDescriptor
from .models import Row
from .settings import get_settings


class DuplicateRecordError(Exception):
    """An insert collided with an existing primary key."""


# PUBLIC_INTERFACE
class Session(ABC):
    """
    Store operations available inside one read scope or one transaction.

    Every lookup and mutation is scoped by owner. Rows are returned as copies in
    storage schema.
    """

    @abstractmethod
    def get(self, entity: EntityDescriptor, record_id: str, owner_id: str) -> Optional[Row]:
        """Return the row (soft-deleted or not) or None if absent."""

    @abstractmethod
    def list_active(
        self,
        entity: EntityDescriptor,
        owner_id: str,
        newest_first: bool = False,
        where: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        """
        Return non-deleted rows ordered by creation timestamp.
        `where` adds column equality filters.
        """

    @abstractmethod
    def modified_since(self, entity: EntityDescriptor, owner_id: str, since: int) -> List[Row]:
        """Return rows with modified_at > since, ascending by modified_at (ties by id)."""

    @abstractmethod
    def insert(self, entity: EntityDescriptor, row: Row) -> Row:
        """Insert a full row. Raises on primary key collision."""

    @abstractmethod
    def update(self, entity: EntityDescriptor, record_id: str, owner_id: str, values: Mapping[str, Any]) -> bool:
        """Set the given columns. Return False if no row matched."""

    @abstractmethod
    def soft_delete(self, entity: EntityDescriptor, record_id: str, owner_id: str, modified_at: int) -> bool:
        """Flag the row deleted and stamp modified_at. Return False if no row matched."""

    @abstractmethod
    def clear_references(
        self, entity: EntityDescriptor, column: str, owner_id: str, target_id: str, modified_at: int
    ) -> int:
        """
        Null out `column` on the owner's rows pointing at target_id and stamp
        their modified_at. Return rows touched.
        """

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[Row]:
        """Return the account row or None."""

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[Row]:
        """Return the account registered under `email` (already normalized) or None."""

    @abstractmethod
    def insert_user(self, row: Row) -> Row:
        """Insert an account. Raises DuplicateRecordError if the id or email is taken."""


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract backing store for accounts and synced entities."""

    @abstractmethod
    def session(self) -> ContextManager[Session]:
        """Read scope. No atomicity guarantees across calls."""

    @abstractmethod
    def transaction(self) -> ContextManager[Session]:
        """
        Atomic read-write scope: commits when the block exits normally and
        rolls back every mutation when it raises.
        """


def _sort_key_modified(row: Row):
    return (row[COLS.modified], row[COLS.id])


class _MemorySession(Session):
    def __init__(self, tables: Dict[str, Dict[str, Row]]) -> None:
        self._tables = tables

    def _owned(self, entity: EntityDescriptor, owner_id: str) -> List[Row]:
        return [r for r in self._tables[entity.table].values() if r[COLS.owner] == owner_id]

    def get(self, entity: EntityDescriptor, record_id: str, owner_id: str) -> Optional[Row]:
        item = self._tables[entity.table].get(record_id)
        if item is None or item[COLS.owner] != owner_id:
            return None
        return item.copy()

    def list_active(
        self,
        entity: EntityDescriptor,
        owner_id: str,
        newest_first: bool = False,
        where: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        items = [r for r in self._owned(entity, owner_id) if not r[COLS.deleted]]
        if where:
            items = [r for r in items if all(r.get(k) == v for k, v in where.items())]
        items.sort(key=lambda r: (r[COLS.created], r[COLS.id]), reverse=newest_first)
        return [r.copy() for r in items]

    def modified_since(self, entity: EntityDescriptor, owner_id: str, since: int) -> List[Row]:
        items = [r for r in self._owned(entity, owner_id) if r[COLS.modified] > since]
        items.sort(key=_sort_key_modified)
        return [r.copy() for r in items]

    def insert(self, entity: EntityDescriptor, row: Row) -> Row:
        table = self._tables[entity.table]
        if row[COLS.id] in table:
            raise DuplicateRecordError(f"{entity.table} row {row[COLS.id]!r} already exists")
        stored = {c: row.get(c) for c in entity.columns}
        table[row[COLS.id]] = stored
        return stored.copy()

    def update(self, entity: EntityDescriptor, record_id: str, owner_id: str, values: Mapping[str, Any]) -> bool:
        existing = self._tables[entity.table].get(record_id)
        if existing is None or existing[COLS.owner] != owner_id:
            return False
        existing.update({k: v for k, v in values.items() if k in entity.columns})
        return True

    def soft_delete(self, entity: EntityDescriptor, record_id: str, owner_id: str, modified_at: int) -> bool:
        return self.update(entity, record_id, owner_id, {COLS.deleted: True, COLS.modified: modified_at})

    def clear_references(
        self, entity: EntityDescriptor, column: str, owner_id: str, target_id: str, modified_at: int
    ) -> int:
        touched = 0
        for row in self._owned(entity, owner_id):
            if row.get(column) == target_id:
                row[column] = None
                row[COLS.modified] = modified_at
                touched += 1
        return touched

    def get_user(self, user_id: str) -> Optional[Row]:
        item = self._tables[USERS_TABLE].get(user_id)
        return item.copy() if item is not None else None

    def find_user_by_email(self, email: str) -> Optional[Row]:
        for item in self._tables[USERS_TABLE].values():
            if item["email"] == email:
                return item.copy()
        return None

    def insert_user(self, row: Row) -> Row:
        table = self._tables[USERS_TABLE]
        if row[COLS.id] in table or self.find_user_by_email(row["email"]) is not None:
            raise DuplicateRecordError(f"user {row['email']!r} already exists")
        stored = {c: row.get(c) for c in USER_COLUMNS}
        table[row[COLS.id]] = stored
        return stored.copy()


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.

    A single re-entrant lock serializes all access; transactions snapshot the
    tables on entry and restore the snapshot if the block raises.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._tables: Dict[str, Dict[str, Row]] = {e.table: {} for e in ENTITIES}
        self._tables[USERS_TABLE] = {}

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        with self._lock:
            yield _MemorySession(self._tables)

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        with self._lock:
            snapshot = copy.deepcopy(self._tables)
            try:
                yield _MemorySession(self._tables)
            except BaseException:
                self._tables.clear()
                self._tables.update(snapshot)
                raise


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_repository() -> Repository:
    """
    Return the process-wide repository selected by settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository (standard library sqlite3)
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path, timeout=settings.sqlite_timeout_sec)
    return InMemoryRepository()
