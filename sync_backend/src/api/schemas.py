from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Timestamp = int  # milliseconds since the epoch


def _clean_title(v: Optional[str]) -> Optional[str]:
    """
    Strip whitespace and enforce 1..255 length for titles entered through the
    single-record endpoints.
    """
    if v is None:
        return v
    s = v.strip()
    if not (1 <= len(s) <= 255):
        raise ValueError("title length must be between 1 and 255 characters")
    return s


# PUBLIC_INTERFACE
class CategoryRecord(BaseModel):
    """A category in client schema, as exchanged by sync and returned by the API."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b6f4c1e-4f3a-4a53-9d0e-7f1f8d9a2c11",
                "title": "Groceries",
                "created_at": 1735000000000,
                "updated_at": 1735000500000,
            }
        }
    )

    id: str = Field(..., min_length=1, description="Client-generated unique identifier")
    title: str = Field(..., description="Display name")
    created_at: Optional[Timestamp] = Field(default=None, description="Creation time (epoch ms)")
    updated_at: Timestamp = Field(..., description="Last modification time (epoch ms)")


# PUBLIC_INTERFACE
class TodoRecord(BaseModel):
    """A todo in client schema, as exchanged by sync and returned by the API."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5d1c9a57-2d9e-4c3b-8d0b-2b8f3f0c6e42",
                "title": "Buy milk",
                "description": "2 litres",
                "is_completed": False,
                "category_id": "0b6f4c1e-4f3a-4a53-9d0e-7f1f8d9a2c11",
                "created_at": 1735000000000,
                "updated_at": 1735000500000,
            }
        }
    )

    id: str = Field(..., min_length=1, description="Client-generated unique identifier")
    title: str = Field(..., description="Short title")
    description: Optional[str] = Field(default=None, description="Optional free text")
    is_completed: bool = Field(default=False, description="Completion flag")
    category_id: Optional[str] = Field(default=None, description="Optional category reference")
    created_at: Optional[Timestamp] = Field(default=None, description="Creation time (epoch ms)")
    updated_at: Timestamp = Field(..., description="Last modification time (epoch ms)")


class CategoryChangeSet(BaseModel):
    created: List[CategoryRecord] = Field(default_factory=list)
    updated: List[CategoryRecord] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)


class TodoChangeSet(BaseModel):
    created: List[TodoRecord] = Field(default_factory=list)
    updated: List[TodoRecord] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)


# PUBLIC_INTERFACE
class SyncChanges(BaseModel):
    """Per-entity change sets. Missing kinds or buckets are treated as empty."""

    categories: CategoryChangeSet = Field(default_factory=CategoryChangeSet)
    todos: TodoChangeSet = Field(default_factory=TodoChangeSet)


# PUBLIC_INTERFACE
class PullRequest(BaseModel):
    """Body of a pull. A null checkpoint asks for a full bootstrap snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    last_pulled_at: Optional[Timestamp] = Field(default=None, alias="lastPulledAt")
    schema_version: Optional[int] = Field(default=None, alias="schemaVersion")


# PUBLIC_INTERFACE
class PullResponse(BaseModel):
    changes: SyncChanges
    timestamp: Timestamp = Field(..., description="Checkpoint to send as lastPulledAt on the next pull")


# PUBLIC_INTERFACE
class PushRequest(BaseModel):
    """Body of a push. `changes` is required; the checkpoint is informational."""

    model_config = ConfigDict(populate_by_name=True)

    changes: SyncChanges
    last_pulled_at: Optional[Timestamp] = Field(default=None, alias="lastPulledAt")


class ConflictResolutionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    record_id: str = Field(..., alias="recordId")
    collection: str
    winner: Literal["local", "remote"]
    local_updated_at: Timestamp = Field(..., alias="localUpdatedAt")
    remote_updated_at: Timestamp = Field(..., alias="remoteUpdatedAt")
    reason: str


# PUBLIC_INTERFACE
class PushResult(BaseModel):
    ok: bool
    conflicts: List[ConflictResolutionOut] = Field(default_factory=list)


# PUBLIC_INTERFACE
class CategoryCreate(BaseModel):
    """Schema for creating a category through the single-record endpoint."""

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Groceries"}})

    title: str = Field(..., description="Display name", min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)  # type: ignore[return-value]


# PUBLIC_INTERFACE
class CategoryUpdate(BaseModel):
    """Schema for updating a category; only provided fields change."""

    title: Optional[str] = Field(default=None, description="Display name", min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _clean_title(v)


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """Schema for creating a todo through the single-record endpoint."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "2 litres",
                "is_completed": False,
                "category_id": None,
            }
        }
    )

    title: str = Field(..., description="Short title", min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, description="Optional free text")
    is_completed: bool = Field(default=False, description="Completion flag")
    category_id: Optional[str] = Field(default=None, description="Optional category reference")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)  # type: ignore[return-value]


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for updating a todo.
    All fields are optional; only provided fields will be updated, and an
    explicit null clears description or category_id.
    """

    title: Optional[str] = Field(default=None, description="Short title", min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, description="Optional free text")
    is_completed: Optional[bool] = Field(default=None, description="Completion flag")
    category_id: Optional[str] = Field(default=None, description="Optional category reference")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _clean_title(v)


# PUBLIC_INTERFACE
class DeleteResult(BaseModel):
    success: bool = Field(..., description="True when the record was soft-deleted")


def _clean_email(v: str) -> str:
    """Trim and lower-case; require a local part and a domain around one '@'."""
    s = v.strip().lower()
    local, sep, domain = s.partition("@")
    if not sep or not local or not domain or "@" in domain or len(s) > 254:
        raise ValueError("email must look like name@domain")
    return s


# PUBLIC_INTERFACE
class Credentials(BaseModel):
    """Email and password, as sent to register and login."""

    model_config = ConfigDict(json_schema_extra={"example": {"email": "ada@example.com", "password": "s3cret"}})

    email: str = Field(..., description="Account email; matched case-insensitively")
    password: str = Field(..., min_length=1, description="Plain password, at most 72 bytes")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _clean_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        # bcrypt only reads the first 72 bytes.
        if len(v.encode()) > 72:
            raise ValueError("password must be at most 72 bytes")
        return v


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    id: str = Field(..., description="Account id; also the bearer token")
    email: str
    created_at: Optional[Timestamp] = Field(default=None, description="Registration time (epoch ms)")


# PUBLIC_INTERFACE
class LoginResponse(BaseModel):
    token: str = Field(..., description="Send as `Authorization: Bearer <token>`")
    user: UserOut
