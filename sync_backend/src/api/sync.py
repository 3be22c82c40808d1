"""
Sync reconciliation engine.

pull: change-log deltas for every entity kind, translated to client schema,
plus the checkpoint the client sends back on its next pull.

push: applies a client's created/updated/deleted batch for every entity kind
inside one transaction, deciding each existing record by last-write-wins and
reporting every decision in the conflict ledger.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from fastapi.concurrency import run_in_threadpool

from .changelog import ChangeSet, changes_since
from .conflicts import ConflictLedger, Winner
from .entities import COLS, ENTITIES, EntityDescriptor
from .records import soft_delete
from .repositories import Repository, Session
from .schemas import SyncChanges
from .translator import to_local, to_remote
from .utils import now_ms

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


class PushFailedError(Exception):
    """A push transaction was rolled back; nothing from the batch was applied."""


class Operation(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class StoreAction(str, Enum):
    INSERT = "insert"
    OVERWRITE = "overwrite"
    MERGE = "merge"
    SOFT_DELETE = "soft_delete"
    SKIP = "skip"


_WINNING_ACTIONS = {
    Operation.CREATED: StoreAction.OVERWRITE,
    Operation.UPDATED: StoreAction.MERGE,
    Operation.DELETED: StoreAction.SOFT_DELETE,
}


# PUBLIC_INTERFACE
def decide_action(operation: Operation, exists: bool, winner: Optional[Winner]) -> StoreAction:
    """
    Map (row exists?, resolver verdict, requested operation) to a store action.

    Absent rows are inserted for creates and ignored otherwise; present rows
    change only when the client version won.
    """
    if not exists:
        return StoreAction.INSERT if operation is Operation.CREATED else StoreAction.SKIP
    if winner is not Winner.LOCAL:
        return StoreAction.SKIP
    return _WINNING_ACTIONS[operation]


def _serialize(entity: EntityDescriptor, changes: ChangeSet) -> Dict[str, Any]:
    return {
        "created": [to_local(entity, row) for row in changes.created],
        "updated": [to_local(entity, row) for row in changes.updated],
        "deleted": list(changes.deleted),
    }


# PUBLIC_INTERFACE
async def pull(
    repo: Repository,
    owner_id: str,
    last_pulled_at: Optional[int],
    clock: Clock = now_ms,
) -> Dict[str, Any]:
    """
    Assemble the owner's changes since `last_pulled_at` for every entity kind.

    The per-kind queries are independent reads and run concurrently. The new
    checkpoint is taken after they return, so a write racing this pull is
    picked up by the next one. It never moves behind the checkpoint the client
    sent.
    """
    results = await asyncio.gather(
        *(run_in_threadpool(changes_since, repo, entity, owner_id, last_pulled_at) for entity in ENTITIES)
    )
    timestamp = clock()
    if last_pulled_at is not None:
        timestamp = max(timestamp, last_pulled_at)

    changes = {entity.collection: _serialize(entity, cs) for entity, cs in zip(ENTITIES, results)}
    total = sum(len(cs) for cs in results)
    logger.info("pull owner=%s since=%s changes=%d timestamp=%d", owner_id, last_pulled_at, total, timestamp)
    return {"changes": changes, "timestamp": timestamp}


def _bucket_sizes(changes: SyncChanges) -> str:
    # created/updated/deleted counts per kind, e.g. "categories=1/0/0 todos=2/1/0"
    parts = []
    for entity in ENTITIES:
        cs = getattr(changes, entity.collection)
        parts.append(f"{entity.collection}={len(cs.created)}/{len(cs.updated)}/{len(cs.deleted)}")
    return " ".join(parts)


class _Reconciler:
    """Applies client change sets, record by record, inside an open transaction."""

    def __init__(self, session: Session, owner_id: str, ledger: ConflictLedger, clock: Clock) -> None:
        self._session = session
        self._owner_id = owner_id
        self._ledger = ledger
        self._clock = clock

    def apply(self, entity: EntityDescriptor, changes: Any) -> None:
        for record in changes.created:
            self._apply_record(entity, Operation.CREATED, to_remote(entity, record.model_dump()))
        for record in changes.updated:
            self._apply_record(entity, Operation.UPDATED, to_remote(entity, record.model_dump()))
        for record_id in changes.deleted:
            self._apply_record(entity, Operation.DELETED, {COLS.id: record_id})

    def _apply_record(self, entity: EntityDescriptor, operation: Operation, values: Dict[str, Any]) -> None:
        record_id = values[COLS.id]
        stored = self._session.get(entity, record_id, self._owner_id)

        winner: Optional[Winner] = None
        if stored is not None:
            if operation is Operation.DELETED:
                # Deletions carry no client timestamp; processing time stands in for it.
                values[COLS.modified] = self._clock()
            entry = self._ledger.record(entity.collection, record_id, values[COLS.modified], stored[COLS.modified])
            winner = entry.winner
            logger.debug("%s %s %s: %s", entity.collection, operation.value, record_id, entry.reason)

        action = decide_action(operation, stored is not None, winner)
        if action is StoreAction.INSERT:
            self._insert(entity, values)
        elif action is StoreAction.OVERWRITE:
            self._overwrite(entity, record_id, values)
        elif action is StoreAction.MERGE:
            self._merge(entity, record_id, values)
        elif action is StoreAction.SOFT_DELETE:
            soft_delete(self._session, entity, self._owner_id, record_id, values[COLS.modified])

    def _insert(self, entity: EntityDescriptor, values: Dict[str, Any]) -> None:
        row: Dict[str, Any] = dict(entity.defaults)
        row.update({k: v for k, v in values.items() if v is not None})
        row[COLS.owner] = self._owner_id
        row.setdefault(COLS.created, values[COLS.modified])
        row[COLS.deleted] = False
        self._session.insert(entity, row)

    def _overwrite(self, entity: EntityDescriptor, record_id: str, values: Dict[str, Any]) -> None:
        row = {k: v for k, v in values.items() if k != COLS.id}
        if row.get(COLS.created) is None:
            row.pop(COLS.created, None)
        row[COLS.deleted] = False
        self._session.update(entity, record_id, self._owner_id, row)

    def _merge(self, entity: EntityDescriptor, record_id: str, values: Dict[str, Any]) -> None:
        row = {k: v for k, v in values.items() if k in entity.mutable}
        row[COLS.modified] = values[COLS.modified]
        row[COLS.deleted] = False
        self._session.update(entity, record_id, self._owner_id, row)


# PUBLIC_INTERFACE
def push(
    repo: Repository,
    owner_id: str,
    changes: SyncChanges,
    clock: Clock = now_ms,
) -> Dict[str, Any]:
    """
    Apply a client batch atomically and return {"ok": True, "conflicts": [...]}.

    Entity kinds are processed in ENTITIES order (categories first) and each
    kind's created, updated and deleted lists in that order. Every record that
    already exists server-side produces one ledger entry, whatever the outcome.

    Raises:
        PushFailedError: anything failed inside the transaction; it was rolled
            back and no partial ledger is returned.
    """
    logger.info("push owner=%s %s", owner_id, _bucket_sizes(changes))
    ledger = ConflictLedger()
    try:
        with repo.transaction() as session:
            reconciler = _Reconciler(session, owner_id, ledger, clock)
            for entity in ENTITIES:
                reconciler.apply(entity, getattr(changes, entity.collection))
    except Exception as exc:
        logger.exception("push rolled back for owner=%s", owner_id)
        raise PushFailedError(str(exc) or exc.__class__.__name__) from exc

    logger.info("push committed owner=%s conflicts=%d %s", owner_id, len(ledger), ledger.summary())
    return {"ok": True, "conflicts": [entry.as_dict() for entry in ledger]}
