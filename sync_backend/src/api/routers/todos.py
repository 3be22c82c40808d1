from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..auth import get_owner_id
from ..entities import TODOS
from ..models import TodoEntity
from ..records import create_record, delete_record, get_record, list_records, update_record
from ..repositories import Repository, get_repository
from ..schemas import DeleteResult, TodoCreate, TodoRecord, TodoUpdate
from ..translator import to_local, to_remote

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)

# Columns that may not be nulled through a partial update.
_REQUIRED_FIELDS = ("title", "is_completed")


def _out(row: TodoEntity) -> TodoRecord:
    return TodoRecord(**to_local(TODOS, row))


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[TodoRecord],
    summary="List Todos",
    description="List the owner's live todos, newest first, optionally restricted to one category.",
)
def list_todos(
    category_id: Optional[str] = Query(None, description="Only todos referencing this category"),
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> List[TodoRecord]:
    """
    List todos for the authenticated owner.
    """
    where = {"category_id": category_id} if category_id else None
    return [_out(row) for row in list_records(repo, TODOS, owner_id, where=where)]


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new todo and return it in client field names.",
    responses={
        201: {"description": "Todo created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_todo(
    payload: TodoCreate,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> TodoRecord:
    """
    Create a new Todo.
    """
    created = create_record(repo, TODOS, owner_id, to_remote(TODOS, payload.model_dump()))
    return _out(created)


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoRecord,
    summary="Get Todo",
    description="Get a single live todo by ID.",
    responses={
        200: {"description": "Todo found"},
        404: {"description": "Todo not found"},
    },
)
def get_todo(
    todo_id: str,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> TodoRecord:
    """
    Retrieve a single Todo item by its ID.
    """
    item = get_record(repo, TODOS, owner_id, todo_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return _out(item)


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoRecord,
    summary="Update Todo",
    description="Update the provided fields of a todo; omitted fields keep their value.",
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def update_todo(
    todo_id: str,
    payload: TodoUpdate,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> TodoRecord:
    """
    Partial update of a Todo item. An explicit null clears description or
    category_id; nulls for title or is_completed are ignored.
    """
    fields = payload.model_dump(exclude_unset=True)
    for name in _REQUIRED_FIELDS:
        if fields.get(name, "") is None:
            del fields[name]
    updated = update_record(repo, TODOS, owner_id, todo_id, to_remote(TODOS, fields))
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return _out(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=DeleteResult,
    summary="Delete Todo",
    description="Soft-delete a todo so the deletion reaches other replicas on their next pull.",
    responses={
        200: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
    },
)
def delete_todo(
    todo_id: str,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> DeleteResult:
    """
    Delete a Todo. Returns 404 if it does not exist or is already deleted.
    """
    ok = delete_record(repo, TODOS, owner_id, todo_id)
    if not ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return DeleteResult(success=True)
