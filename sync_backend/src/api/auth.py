from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .accounts import get_user
from .repositories import Repository, get_repository

_security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# PUBLIC_INTERFACE
def get_owner_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
    repo: Repository = Depends(get_repository),
) -> str:
    """
    Resolve the owner of the request from `Authorization: Bearer <account id>`.

    The token is the id returned by login. It must name a registered account;
    the id then scopes every query and mutation.

    Raises:
        HTTPException(401) if the header is missing or empty, or the account
        does not exist.
    """
    if creds is None or not creds.credentials or not creds.credentials.strip():
        raise _unauthorized("Not authenticated")
    owner_id = creds.credentials.strip()
    if get_user(repo, owner_id) is None:
        raise _unauthorized("User not found")
    return owner_id
