from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..accounts import AccountExistsError, authenticate, register_user
from ..models import UserEntity
from ..repositories import Repository, get_repository
from ..schemas import Credentials, LoginResponse, UserOut
from ..settings import get_settings

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


def _out(user: UserEntity) -> UserOut:
    return UserOut(id=user["id"], email=user["email"], created_at=user["created_timestamp"])


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account. The returned id is the bearer token for every other endpoint.",
    responses={
        201: {"description": "Account created"},
        400: {"description": "Email already registered"},
        422: {"description": "Validation error"},
    },
)
def register(
    payload: Credentials,
    repo: Repository = Depends(get_repository),
) -> UserOut:
    try:
        user = register_user(repo, payload.email, payload.password, rounds=get_settings().password_hash_rounds)
    except AccountExistsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _out(user)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    description="Exchange email and password for the account's bearer token.",
    responses={
        200: {"description": "Credentials accepted"},
        401: {"description": "Invalid email or password"},
    },
)
def login(
    payload: Credentials,
    repo: Repository = Depends(get_repository),
) -> LoginResponse:
    """
    The token is the account id; send it as `Authorization: Bearer <token>`.
    """
    user = authenticate(repo, payload.email, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return LoginResponse(token=user["id"], user=_out(user))
