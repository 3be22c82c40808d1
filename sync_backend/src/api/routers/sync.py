from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..auth import get_owner_id
from ..repositories import Repository, get_repository
from ..schemas import PullRequest, PullResponse, PushRequest, PushResult
from ..sync import pull, push

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/sync",
    tags=["sync"],
)


# PUBLIC_INTERFACE
@router.post(
    "/pull",
    response_model=PullResponse,
    summary="Pull changes",
    description=(
        "Return categories and todos created, updated or deleted since `lastPulledAt`, in client "
        "field names, together with the checkpoint to send on the next pull. A null `lastPulledAt` "
        "returns every live record as created."
    ),
    responses={200: {"description": "Changes since the checkpoint"}},
)
async def pull_changes(
    payload: PullRequest,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> PullResponse:
    """
    Pull changes for the authenticated owner.
    """
    logger.info(
        "pull request owner=%s lastPulledAt=%s schemaVersion=%s",
        owner_id,
        payload.last_pulled_at,
        payload.schema_version,
    )
    result = await pull(repo, owner_id, payload.last_pulled_at)
    return PullResponse(**result)


# PUBLIC_INTERFACE
@router.post(
    "/push",
    response_model=PushResult,
    summary="Push changes",
    description=(
        "Apply the client's created/updated/deleted records for all entity kinds in one transaction. "
        "Existing records are resolved by last-write-wins (ties go to the server) and every "
        "resolution is returned in `conflicts`. On failure nothing is applied and the response is "
        "500 with `ok: false`."
    ),
    responses={
        200: {"description": "Batch applied"},
        422: {"description": "Malformed request, nothing applied"},
        500: {"description": "Batch rolled back"},
    },
)
def push_changes(
    payload: PushRequest,
    owner_id: str = Depends(get_owner_id),
    repo: Repository = Depends(get_repository),
) -> PushResult:
    """
    Push changes for the authenticated owner. PushFailedError is turned into a
    500 response by the application's exception handler.
    """
    logger.info("push request owner=%s lastPulledAt=%s", owner_id, payload.last_pulled_at)
    result = push(repo, owner_id, payload.changes)
    return PushResult(**result)
