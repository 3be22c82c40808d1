from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Generator, List, Mapping, Optional

from .entities import CATEGORIES, COLS, TODOS, USER_COLUMNS, USERS_TABLE, EntityDescriptor
from .models import Row
from .repositories import DuplicateRecordError, Repository, Session

_SCHEMA = (
    f"""
    CREATE TABLE IF NOT EXISTS {USERS_TABLE} (
        {COLS.id} TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        {COLS.created} INTEGER NOT NULL,
        {COLS.modified} INTEGER NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {CATEGORIES.table} (
        {COLS.id} TEXT PRIMARY KEY,
        {COLS.owner} TEXT NOT NULL,
        name TEXT NOT NULL,
        {COLS.created} INTEGER NOT NULL,
        {COLS.modified} INTEGER NOT NULL,
        {COLS.deleted} INTEGER NOT NULL DEFAULT 0
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {TODOS.table} (
        {COLS.id} TEXT PRIMARY KEY,
        {COLS.owner} TEXT NOT NULL,
        category_id TEXT NULL,
        name TEXT NOT NULL,
        details TEXT NULL,
        done INTEGER NOT NULL DEFAULT 0,
        {COLS.created} INTEGER NOT NULL,
        {COLS.modified} INTEGER NOT NULL,
        {COLS.deleted} INTEGER NOT NULL DEFAULT 0
    )
    """,
    f"CREATE INDEX IF NOT EXISTS idx_{CATEGORIES.table}_user_id ON {CATEGORIES.table}({COLS.owner})",
    f"CREATE INDEX IF NOT EXISTS idx_{CATEGORIES.table}_modified_at ON {CATEGORIES.table}({COLS.modified})",
    f"CREATE INDEX IF NOT EXISTS idx_{TODOS.table}_user_id ON {TODOS.table}({COLS.owner})",
    f"CREATE INDEX IF NOT EXISTS idx_{TODOS.table}_category_id ON {TODOS.table}(category_id)",
    f"CREATE INDEX IF NOT EXISTS idx_{TODOS.table}_modified_at ON {TODOS.table}({COLS.modified})",
)


class _SQLiteSession(Session):
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _row_to_entity(self, entity: EntityDescriptor, row: sqlite3.Row) -> Row:
        out = {c: row[c] for c in entity.columns}
        for c in entity.boolean_columns:
            out[c] = bool(out[c])
        return out

    def _to_db(self, entity: EntityDescriptor, column: str, value: Any) -> Any:
        if column in entity.boolean_columns and value is not None:
            return 1 if value else 0
        return value

    def get(self, entity: EntityDescriptor, record_id: str, owner_id: str) -> Optional[Row]:
        row = self._conn.execute(
            f"SELECT * FROM {entity.table} WHERE {COLS.id} = ? AND {COLS.owner} = ?",
            (record_id, owner_id),
        ).fetchone()
        return self._row_to_entity(entity, row) if row else None

    def list_active(
        self,
        entity: EntityDescriptor,
        owner_id: str,
        newest_first: bool = False,
        where: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        clauses = [f"{COLS.owner} = ?", f"{COLS.deleted} = 0"]
        params: list = [owner_id]
        for column, value in (where or {}).items():
            if column not in entity.columns:
                raise ValueError(f"unknown column {column!r} for {entity.table}")
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = ?")
                params.append(self._to_db(entity, column, value))
        direction = "DESC" if newest_first else "ASC"
        rows = self._conn.execute(
            f"""
            SELECT * FROM {entity.table}
            WHERE {' AND '.join(clauses)}
            ORDER BY {COLS.created} {direction}, {COLS.id} {direction}
            """,
            params,
        ).fetchall()
        return [self._row_to_entity(entity, r) for r in rows]

    def modified_since(self, entity: EntityDescriptor, owner_id: str, since: int) -> List[Row]:
        rows = self._conn.execute(
            f"""
            SELECT * FROM {entity.table}
            WHERE {COLS.owner} = ? AND {COLS.modified} > ?
            ORDER BY {COLS.modified} ASC, {COLS.id} ASC
            """,
            (owner_id, since),
        ).fetchall()
        return [self._row_to_entity(entity, r) for r in rows]

    def insert(self, entity: EntityDescriptor, row: Row) -> Row:
        columns = entity.columns
        self._conn.execute(
            f"INSERT INTO {entity.table} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            [self._to_db(entity, c, row.get(c)) for c in columns],
        )
        stored = self.get(entity, row[COLS.id], row[COLS.owner])
        assert stored is not None
        return stored

    def update(self, entity: EntityDescriptor, record_id: str, owner_id: str, values: Mapping[str, Any]) -> bool:
        assignments = [(c, v) for c, v in values.items() if c in entity.columns]
        if not assignments:
            return self.get(entity, record_id, owner_id) is not None
        cur = self._conn.execute(
            f"""
            UPDATE {entity.table}
            SET {', '.join(f'{c} = ?' for c, _ in assignments)}
            WHERE {COLS.id} = ? AND {COLS.owner} = ?
            """,
            [self._to_db(entity, c, v) for c, v in assignments] + [record_id, owner_id],
        )
        return cur.rowcount > 0

    def soft_delete(self, entity: EntityDescriptor, record_id: str, owner_id: str, modified_at: int) -> bool:
        cur = self._conn.execute(
            f"""
            UPDATE {entity.table}
            SET {COLS.deleted} = 1, {COLS.modified} = ?
            WHERE {COLS.id} = ? AND {COLS.owner} = ?
            """,
            (modified_at, record_id, owner_id),
        )
        return cur.rowcount > 0

    def clear_references(
        self, entity: EntityDescriptor, column: str, owner_id: str, target_id: str, modified_at: int
    ) -> int:
        if column not in entity.columns:
            raise ValueError(f"unknown column {column!r} for {entity.table}")
        cur = self._conn.execute(
            f"UPDATE {entity.table} SET {column} = NULL, {COLS.modified} = ? WHERE {COLS.owner} = ? AND {column} = ?",
            (modified_at, owner_id, target_id),
        )
        return cur.rowcount

    def get_user(self, user_id: str) -> Optional[Row]:
        row = self._conn.execute(f"SELECT * FROM {USERS_TABLE} WHERE {COLS.id} = ?", (user_id,)).fetchone()
        return {c: row[c] for c in USER_COLUMNS} if row else None

    def find_user_by_email(self, email: str) -> Optional[Row]:
        row = self._conn.execute(f"SELECT * FROM {USERS_TABLE} WHERE email = ?", (email,)).fetchone()
        return {c: row[c] for c in USER_COLUMNS} if row else None

    def insert_user(self, row: Row) -> Row:
        try:
            self._conn.execute(
                f"INSERT INTO {USERS_TABLE} ({', '.join(USER_COLUMNS)}) VALUES ({', '.join('?' for _ in USER_COLUMNS)})",
                [row.get(c) for c in USER_COLUMNS],
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(f"user {row['email']!r} already exists") from exc
        return {c: row.get(c) for c in USER_COLUMNS}


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.

    Each scope opens its own connection. Transactions start with
    BEGIN IMMEDIATE so concurrent writers queue on the database lock instead of
    interleaving; `timeout` bounds that wait.
    """

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._timeout = timeout
        self._init_db()

    @contextmanager
    def _conn(self, begin: str) -> Generator[sqlite3.Connection, None, None]:
        # isolation_level=None leaves transaction control to the explicit BEGIN.
        conn = sqlite3.connect(self._db_path, timeout=self._timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute(begin)
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn("BEGIN IMMEDIATE") as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        with self._conn("BEGIN") as conn:
            yield _SQLiteSession(conn)

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        with self._conn("BEGIN IMMEDIATE") as conn:
            yield _SQLiteSession(conn)
