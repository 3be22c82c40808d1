"""
Owner-scoped single-record reads and writes in storage schema.

These back the plain category/todo endpoints. `soft_delete` is shared with
the push coordinator so both paths apply the same category cascade.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from .entities import COLS, EntityDescriptor, get_entity
from .models import Row
from .repositories import Repository, Session
from .utils import new_record_id, now_ms

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def soft_delete(session: Session, entity: EntityDescriptor, owner_id: str, record_id: str, modified_at: int) -> bool:
    """
    Flag a row deleted and detach rows that reference it.

    Detached rows are stamped with the same modified_at as the deletion so the
    change-log reports them as updated on the next pull.
    """
    if not session.soft_delete(entity, record_id, owner_id, modified_at):
        return False
    for table, column in entity.referenced_by:
        detached = session.clear_references(get_entity(table), column, owner_id, record_id, modified_at)
        if detached:
            logger.debug("cleared %s.%s on %d rows after deleting %s %s", table, column, detached, entity.table, record_id)
    return True


# PUBLIC_INTERFACE
def list_records(
    repo: Repository,
    entity: EntityDescriptor,
    owner_id: str,
    where: Optional[Mapping[str, Any]] = None,
) -> List[Row]:
    """Live rows for the owner, newest first."""
    with repo.session() as session:
        return session.list_active(entity, owner_id, newest_first=True, where=where)


# PUBLIC_INTERFACE
def get_record(repo: Repository, entity: EntityDescriptor, owner_id: str, record_id: str) -> Optional[Row]:
    """Return a live row or None if absent or soft-deleted."""
    with repo.session() as session:
        row = session.get(entity, record_id, owner_id)
    if row is None or row[COLS.deleted]:
        return None
    return row


# PUBLIC_INTERFACE
def create_record(
    repo: Repository,
    entity: EntityDescriptor,
    owner_id: str,
    values: Mapping[str, Any],
    clock: Callable[[], int] = now_ms,
) -> Row:
    """
    Insert a new row. Missing id and timestamps are generated; entity defaults
    fill the remaining optional columns.
    """
    now = clock()
    row: Dict[str, Any] = dict(entity.defaults)
    row.update({k: v for k, v in values.items() if v is not None or k in entity.defaults})
    row[COLS.id] = values.get(COLS.id) or new_record_id()
    row[COLS.owner] = owner_id
    row[COLS.created] = values.get(COLS.created) or now
    row[COLS.modified] = values.get(COLS.modified) or now
    row[COLS.deleted] = False
    with repo.transaction() as session:
        created = session.insert(entity, row)
    logger.info("created %s %s for owner %s", entity.table, created[COLS.id], owner_id)
    return created


# PUBLIC_INTERFACE
def update_record(
    repo: Repository,
    entity: EntityDescriptor,
    owner_id: str,
    record_id: str,
    values: Mapping[str, Any],
    clock: Callable[[], int] = now_ms,
) -> Optional[Row]:
    """
    Update only the provided mutable columns and advance modified_at.
    Returns the updated row, or None if absent or soft-deleted.
    """
    changes = {k: v for k, v in values.items() if k in entity.mutable}
    changes[COLS.modified] = clock()
    with repo.transaction() as session:
        existing = session.get(entity, record_id, owner_id)
        if existing is None or existing[COLS.deleted]:
            return None
        session.update(entity, record_id, owner_id, changes)
        updated = session.get(entity, record_id, owner_id)
    logger.info("updated %s %s for owner %s", entity.table, record_id, owner_id)
    return updated


# PUBLIC_INTERFACE
def delete_record(
    repo: Repository,
    entity: EntityDescriptor,
    owner_id: str,
    record_id: str,
    clock: Callable[[], int] = now_ms,
) -> bool:
    """Soft-delete a live row. Returns False if absent or already deleted."""
    with repo.transaction() as session:
        existing = session.get(entity, record_id, owner_id)
        if existing is None or existing[COLS.deleted]:
            return False
        soft_delete(session, entity, owner_id, record_id, clock())
    logger.info("deleted %s %s for owner %s", entity.table, record_id, owner_id)
    return True
