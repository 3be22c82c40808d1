from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .entities import COLS, EntityDescriptor
from .models import Row
from .repositories import Repository


# PUBLIC_INTERFACE
@dataclass
class ChangeSet:
    """
    Rows of one entity kind changed within a sync window, in storage schema.
    Deleted rows are reported by identifier only.
    """

    created: List[Row] = field(default_factory=list)
    updated: List[Row] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)


# PUBLIC_INTERFACE
def partition_changes(rows: Iterable[Row], checkpoint: int) -> ChangeSet:
    """
    Split rows modified after `checkpoint` into created/updated/deleted.

    The deleted flag is tested first, so a row created and deleted inside the
    same window is reported as deleted. Input order is kept in every bucket.
    """
    changes = ChangeSet()
    for row in rows:
        if row[COLS.deleted]:
            changes.deleted.append(row[COLS.id])
        elif row[COLS.created] > checkpoint:
            changes.created.append(row)
        else:
            changes.updated.append(row)
    return changes


# PUBLIC_INTERFACE
def changes_since(
    repo: Repository,
    entity: EntityDescriptor,
    owner_id: str,
    checkpoint: Optional[int],
) -> ChangeSet:
    """
    Return the owner's changes for one entity kind since `checkpoint`.

    With no checkpoint (a new client replica) every live row is reported as
    created, oldest first. Otherwise rows come back ordered by modification
    time, which is the order clients apply them in.
    """
    with repo.session() as session:
        if checkpoint is None:
            return ChangeSet(created=session.list_active(entity, owner_id))
        rows = session.modified_since(entity, owner_id, checkpoint)
    return partition_changes(rows, checkpoint)
