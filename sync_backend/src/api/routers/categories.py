from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth import get_owner_id
from ..entities import CATEGORIES
from ..models import CategoryEntity
from ..records import create_record, delete_record, get_record, list_records, update_record
from ..repositories import Repository, get_repository
from ..schemas import CategoryCreate, CategoryRecord, CategoryUpdate, DeleteResult
from ..translator import to_local, to_remote

router = APIRouter(
    prefix="/api/v1/categories",
    tags=["categories"],
)


def _out(row: CategoryEntity) -> CategoryRecord:
    return CategoryRecord(**to_local(CATEGORIES, row))


# PUBLIC_INTERFACE
@router.get("/", response_model=List[CategoryRecord], summary="List Categories")
def list_categories(
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> List[CategoryRecord]:
    """List the owner's live categories, newest first."""
    return [_out(row) for row in list_records(repo, CATEGORIES, owner_id)]


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=CategoryRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create Category",
)
def create_category(
    payload: CategoryCreate,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> CategoryRecord:
    created = create_record(repo, CATEGORIES, owner_id, to_remote(CATEGORIES, payload.model_dump()))
    return _out(created)


# PUBLIC_INTERFACE
@router.get(
    "/{category_id}",
    response_model=CategoryRecord,
    summary="Get Category",
    responses={404: {"description": "Category not found"}},
)
def get_category(
    category_id: str,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> CategoryRecord:
    item = get_record(repo, CATEGORIES, owner_id, category_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return _out(item)


# PUBLIC_INTERFACE
@router.put(
    "/{category_id}",
    response_model=CategoryRecord,
    summary="Update Category",
    responses={404: {"description": "Category not found"}},
)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> CategoryRecord:
    fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    updated = update_record(repo, CATEGORIES, owner_id, category_id, to_remote(CATEGORIES, fields))
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return _out(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{category_id}",
    response_model=DeleteResult,
    summary="Delete Category",
    description="Soft-delete a category and detach the todos that reference it.",
    responses={404: {"description": "Category not found"}},
)
def delete_category(
    category_id: str,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> DeleteResult:
    ok = delete_record(repo, CATEGORIES, owner_id, category_id)
    if not ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return DeleteResult(success=True)
