from __future__ import annotations

from typing import Any, Dict, Optional, TypedDict

# Generic storage row as handed around by repositories (storage column names).
Row = Dict[str, Any]


# PUBLIC_INTERFACE
class CategoryEntity(TypedDict):
    """
    A category row in storage schema.

    Fields:
    - id: Client-generated globally unique identifier
    - user_id: Owner of the row
    - name: Display name (client field: title)
    - created_timestamp: Creation time in epoch milliseconds (client field: created_at)
    - modified_at: Last modification in epoch milliseconds (client field: updated_at)
    - is_deleted: Soft-delete flag, never exposed to clients
    """

    id: str
    user_id: str
    name: str
    created_timestamp: int
    modified_at: int
    is_deleted: bool


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A todo row in storage schema.

    Fields:
    - id: Client-generated globally unique identifier
    - user_id: Owner of the row
    - category_id: Optional reference to a category (cleared when it is deleted)
    - name: Short title (client field: title)
    - details: Optional free text (client field: description)
    - done: Completion flag (client field: is_completed)
    - created_timestamp: Creation time in epoch milliseconds (client field: created_at)
    - modified_at: Last modification in epoch milliseconds (client field: updated_at)
    - is_deleted: Soft-delete flag, never exposed to clients
    """

    id: str
    user_id: str
    category_id: Optional[str]
    name: str
    details: Optional[str]
    done: bool
    created_timestamp: int
    modified_at: int
    is_deleted: bool


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    An account row. Accounts are not synced; their id is the bearer token that
    scopes every category and todo row.

    Fields:
    - id: Server-generated identifier, returned as the login token
    - email: Normalized (trimmed, lower-case) and unique
    - password_hash: bcrypt hash of the password
    - created_timestamp / modified_at: epoch milliseconds
    """

    id: str
    email: str
    password_hash: str
    created_timestamp: int
    modified_at: int
