from conftest import OWNER, PASSWORD

from src.api.accounts import authenticate, get_user, hash_password, register_user, verify_password
from src.api.entities import CATEGORIES

REGISTER_URL = "/api/v1/auth/register"
LOGIN_URL = "/api/v1/auth/login"
CATEGORIES_URL = "/api/v1/categories/"


class TestRegister:
    def test_register_returns_account(self, client, repo):
        res = client.post(REGISTER_URL, json={"email": "  Ada@Example.com ", "password": "pw"})
        assert res.status_code == 201, res.text
        data = res.json()
        assert data["email"] == "ada@example.com"
        assert isinstance(data["id"], str) and data["id"]
        assert isinstance(data["created_at"], int)
        assert "password" not in data and "password_hash" not in data

        stored = get_user(repo, data["id"])
        assert stored["password_hash"] != "pw"
        assert verify_password("pw", stored["password_hash"])

    def test_duplicate_email_is_rejected(self, client):
        client.post(REGISTER_URL, json={"email": "ada@example.com", "password": "pw"})
        res = client.post(REGISTER_URL, json={"email": "ADA@example.com", "password": "other"})
        assert res.status_code == 400
        assert res.json()["detail"] == "User with this email already exists"

    def test_seeded_owner_email_is_taken(self, client):
        res = client.post(REGISTER_URL, json={"email": "owner1@example.com", "password": "pw"})
        assert res.status_code == 400

    def test_missing_password_is_rejected(self, client):
        res = client.post(REGISTER_URL, json={"email": "ada@example.com"})
        assert res.status_code == 422
        assert res.json()["error"] == "ValidationError"

    def test_malformed_email_is_rejected(self, client):
        res = client.post(REGISTER_URL, json={"email": "not-an-email", "password": "pw"})
        assert res.status_code == 422

    def test_overlong_password_is_rejected(self, client):
        res = client.post(REGISTER_URL, json={"email": "ada@example.com", "password": "x" * 73})
        assert res.status_code == 422


class TestLogin:
    def test_login_returns_account_id_as_token(self, client):
        created = client.post(REGISTER_URL, json={"email": "ada@example.com", "password": "pw"}).json()

        res = client.post(LOGIN_URL, json={"email": "ADA@example.com", "password": "pw"})
        assert res.status_code == 200
        data = res.json()
        assert data["token"] == created["id"]
        assert data["user"]["id"] == created["id"]
        assert data["user"]["email"] == "ada@example.com"

    def test_token_authorizes_requests(self, client):
        client.post(REGISTER_URL, json={"email": "ada@example.com", "password": "pw"})
        token = client.post(LOGIN_URL, json={"email": "ada@example.com", "password": "pw"}).json()["token"]

        headers = {"Authorization": f"Bearer {token}"}
        res = client.post(CATEGORIES_URL, json={"title": "Home"}, headers=headers)
        assert res.status_code == 201
        assert [c["title"] for c in client.get(CATEGORIES_URL, headers=headers).json()] == ["Home"]

    def test_seeded_owner_can_log_in(self, client):
        res = client.post(LOGIN_URL, json={"email": "owner1@example.com", "password": PASSWORD})
        assert res.status_code == 200
        assert res.json()["token"] == OWNER

    def test_wrong_password_is_rejected(self, client):
        res = client.post(LOGIN_URL, json={"email": "owner1@example.com", "password": "wrong"})
        assert res.status_code == 401
        assert res.json()["detail"] == "Invalid email or password"

    def test_unknown_email_is_rejected(self, client):
        res = client.post(LOGIN_URL, json={"email": "nobody@example.com", "password": "pw"})
        assert res.status_code == 401


class TestBearerAccount:
    def test_unknown_account_is_rejected(self, client):
        res = client.get(CATEGORIES_URL, headers={"Authorization": "Bearer no-such-user"})
        assert res.status_code == 401
        assert res.json()["detail"] == "User not found"
        assert res.headers["www-authenticate"] == "Bearer"

    def test_unknown_account_cannot_push(self, client, stored):
        changes = {"categories": {"created": [{"id": "c1", "title": "Home", "updated_at": 10}]}}
        res = client.post(
            "/api/v1/sync/push", json={"changes": changes}, headers={"Authorization": "Bearer typo-owner"}
        )
        assert res.status_code == 401
        assert stored(CATEGORIES, "c1", owner="typo-owner") is None


class TestAccountService:
    def test_register_then_authenticate(self, repo):
        user = register_user(repo, "ada@example.com", "pw", rounds=4, clock=lambda: 42)
        assert user["created_timestamp"] == 42
        assert authenticate(repo, "ada@example.com", "pw")["id"] == user["id"]
        assert authenticate(repo, "ada@example.com", "nope") is None

    def test_malformed_hash_never_matches(self):
        assert verify_password("pw", "not-a-bcrypt-hash") is False
        assert verify_password("pw", hash_password("pw", rounds=4)) is True
