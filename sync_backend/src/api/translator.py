"""
Field translation between the client's logical schema and the storage schema.

| Client (local)  | Storage (remote)    |
|-----------------|---------------------|
| title           | name                |
| description     | details             |
| is_completed    | done                |
| created_at      | created_timestamp   |
| updated_at      | modified_at         |

Storage-only columns (user_id, is_deleted) never reach the client schema.
Input is expected to be validated already; keys outside the map are ignored.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping

from .entities import EntityDescriptor


# PUBLIC_INTERFACE
def to_remote(entity: EntityDescriptor, record: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate a client-schema record into storage column names."""
    return {remote: record[local] for local, remote in entity.field_map.items() if local in record}


# PUBLIC_INTERFACE
def to_local(entity: EntityDescriptor, row: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate a storage row into client field names."""
    return {local: row[remote] for local, remote in entity.field_map.items() if remote in row}
