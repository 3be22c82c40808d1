"""
Account registration and credential checks.

An account id doubles as the bearer token clients send with every sync and
record request.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

import bcrypt

from .entities import COLS
from .models import UserEntity
from .repositories import DuplicateRecordError, Repository
from .utils import new_record_id, now_ms

logger = logging.getLogger(__name__)


class AccountExistsError(Exception):
    """An account is already registered under this email."""


# PUBLIC_INTERFACE
def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


# PUBLIC_INTERFACE
def verify_password(password: str, hashed: str) -> bool:
    """Check a password against its bcrypt hash; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


# PUBLIC_INTERFACE
def register_user(
    repo: Repository,
    email: str,
    password: str,
    rounds: int = 12,
    clock: Callable[[], int] = now_ms,
) -> UserEntity:
    """
    Create an account for a normalized email.

    Raises:
        AccountExistsError: the email is already registered.
    """
    now = clock()
    row = {
        COLS.id: new_record_id(),
        "email": email,
        "password_hash": hash_password(password, rounds),
        COLS.created: now,
        COLS.modified: now,
    }
    try:
        with repo.transaction() as session:
            if session.find_user_by_email(email) is not None:
                raise AccountExistsError("User with this email already exists")
            created = session.insert_user(row)
    except DuplicateRecordError as exc:
        # Lost a race with a concurrent registration of the same email.
        raise AccountExistsError("User with this email already exists") from exc
    logger.info("registered user %s", created[COLS.id])
    return created  # type: ignore[return-value]


# PUBLIC_INTERFACE
def authenticate(repo: Repository, email: str, password: str) -> Optional[UserEntity]:
    """Return the account when the credentials match, otherwise None."""
    with repo.session() as session:
        user = session.find_user_by_email(email)
    if user is None or not verify_password(password, user["password_hash"]):
        logger.info("login rejected for %s", email)
        return None
    return user  # type: ignore[return-value]


# PUBLIC_INTERFACE
def get_user(repo: Repository, user_id: str) -> Optional[UserEntity]:
    """Return the account with this id, or None."""
    with repo.session() as session:
        return session.get_user(user_id)  # type: ignore[return-value]
