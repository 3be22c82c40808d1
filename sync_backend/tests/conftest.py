import os

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
# Cheapest bcrypt cost so account fixtures stay fast
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.api.accounts import hash_password  # noqa: E402
from src.api.entities import CATEGORIES, TODOS  # noqa: E402
from src.api.main import app  # noqa: E402
from src.api.repositories import InMemoryRepository, get_repository  # noqa: E402

OWNER = "owner-1"
OTHER_OWNER = "owner-2"
PASSWORD = "correct horse"

_PASSWORD_HASH = hash_password(PASSWORD, rounds=4)


def user_row(user_id, email, password_hash=_PASSWORD_HASH, created=100):
    return {
        "id": user_id,
        "email": email,
        "password_hash": password_hash,
        "created_timestamp": created,
        "modified_at": created,
    }


def category_row(record_id, owner=OWNER, name="Category", created=100, modified=100, deleted=False):
    return {
        "id": record_id,
        "user_id": owner,
        "name": name,
        "created_timestamp": created,
        "modified_at": modified,
        "is_deleted": deleted,
    }


def todo_row(
    record_id,
    owner=OWNER,
    name="Todo",
    details=None,
    done=False,
    category_id=None,
    created=100,
    modified=100,
    deleted=False,
):
    return {
        "id": record_id,
        "user_id": owner,
        "category_id": category_id,
        "name": name,
        "details": details,
        "done": done,
        "created_timestamp": created,
        "modified_at": modified,
        "is_deleted": deleted,
    }


@pytest.fixture
def repo():
    """A fresh in-memory store per test."""
    return InMemoryRepository()


@pytest.fixture
def seed(repo):
    """Insert storage rows directly: seed(categories=[...], todos=[...])."""

    def _seed(categories=(), todos=()):
        with repo.transaction() as session:
            for row in categories:
                session.insert(CATEGORIES, row)
            for row in todos:
                session.insert(TODOS, row)

    return _seed


@pytest.fixture
def stored(repo):
    """Read a raw storage row (including soft-deleted ones)."""

    def _stored(entity, record_id, owner=OWNER):
        with repo.session() as session:
            return session.get(entity, record_id, owner)

    return _stored


@pytest.fixture
def accounts(repo):
    """Register OWNER and OTHER_OWNER so their ids are accepted as bearer tokens."""
    with repo.transaction() as session:
        session.insert_user(user_row(OWNER, "owner1@example.com"))
        session.insert_user(user_row(OTHER_OWNER, "owner2@example.com"))


@pytest.fixture
def client(repo, accounts):
    app.dependency_overrides[get_repository] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {OWNER}"}
