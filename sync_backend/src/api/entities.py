from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple


@dataclass(frozen=True)
class _Cols:
    """Bookkeeping columns shared by every synced table."""

    id: str = "id"
    owner: str = "user_id"
    created: str = "created_timestamp"
    modified: str = "modified_at"
    deleted: str = "is_deleted"


COLS = _Cols()

# Account table; rows are looked up by id or email and never synced.
USERS_TABLE = "users"
USER_COLUMNS: Tuple[str, ...] = (COLS.id, "email", "password_hash", COLS.created, COLS.modified)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class EntityDescriptor:
    """
    Everything the sync engine needs to know about one entity kind.

    - collection: key used on the wire ("categories", "todos")
    - table: storage table name
    - field_map: client field name -> storage column name
    - mutable: storage columns written when an update wins
    - defaults: storage values used on insert when the client omits them
    - boolean_columns: columns stored as integers by SQL backends
    - referenced_by: (table, column) pairs holding references to this entity;
      cleared when a row of this entity is soft-deleted
    """

    collection: str
    table: str
    field_map: Mapping[str, str]
    mutable: Tuple[str, ...]
    defaults: Mapping[str, Any] = field(default_factory=dict)
    boolean_columns: Tuple[str, ...] = (COLS.deleted,)
    referenced_by: Tuple[Tuple[str, str], ...] = ()

    @property
    def columns(self) -> Tuple[str, ...]:
        """All storage columns in table order."""
        mapped = tuple(c for c in self.field_map.values() if c not in (COLS.id, COLS.created, COLS.modified))
        return (COLS.id, COLS.owner) + mapped + (COLS.created, COLS.modified, COLS.deleted)


CATEGORIES = EntityDescriptor(
    collection="categories",
    table="categories",
    field_map={
        "id": COLS.id,
        "title": "name",
        "created_at": COLS.created,
        "updated_at": COLS.modified,
    },
    mutable=("name",),
    referenced_by=(("todos", "category_id"),),
)

TODOS = EntityDescriptor(
    collection="todos",
    table="todos",
    field_map={
        "id": COLS.id,
        "title": "name",
        "description": "details",
        "is_completed": "done",
        "category_id": "category_id",
        "created_at": COLS.created,
        "updated_at": COLS.modified,
    },
    mutable=("name", "details", "done", "category_id"),
    defaults={"details": None, "done": False, "category_id": None},
    boolean_columns=(COLS.deleted, "done"),
)

# Processing order for push: categories before the todos that may reference them.
ENTITIES: Tuple[EntityDescriptor, ...] = (CATEGORIES, TODOS)

_BY_NAME: Dict[str, EntityDescriptor] = {
    **{e.table: e for e in ENTITIES},
    **{e.collection: e for e in ENTITIES},
}


# PUBLIC_INTERFACE
def get_entity(name: str) -> EntityDescriptor:
    """Return the descriptor for a collection or table name; KeyError if unknown."""
    return _BY_NAME[name]
