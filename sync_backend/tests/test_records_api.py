import pytest
from conftest import OTHER_OWNER, todo_row

from src.api.entities import CATEGORIES, TODOS

CATEGORIES_URL = "/api/v1/categories/"
TODOS_URL = "/api/v1/todos/"


def create_todo_payload(title="Test Task", description="Do something", is_completed=False, category_id=None):
    payload = {"title": title, "description": description, "is_completed": is_completed}
    if category_id is not None:
        payload["category_id"] = category_id
    return payload


def assert_todo_shape(todo: dict):
    for key in ["id", "title", "description", "is_completed", "category_id", "created_at", "updated_at"]:
        assert key in todo
    assert isinstance(todo["id"], str)
    assert isinstance(todo["title"], str)
    assert isinstance(todo["is_completed"], bool)
    assert isinstance(todo["created_at"], int)
    assert isinstance(todo["updated_at"], int)


class TestCategoriesCRUD:
    def test_create_get_update_delete(self, client, auth_headers, stored):
        res = client.post(CATEGORIES_URL, json={"title": "  Work  "}, headers=auth_headers)
        assert res.status_code == 201
        category = res.json()
        assert category["title"] == "Work"
        cid = category["id"]
        assert stored(CATEGORIES, cid)["name"] == "Work"

        res_get = client.get(f"{CATEGORIES_URL}{cid}", headers=auth_headers)
        assert res_get.status_code == 200
        assert res_get.json()["id"] == cid

        res_put = client.put(f"{CATEGORIES_URL}{cid}", json={"title": "Office"}, headers=auth_headers)
        assert res_put.status_code == 200
        assert res_put.json()["title"] == "Office"
        assert res_put.json()["updated_at"] >= category["updated_at"]

        res_del = client.delete(f"{CATEGORIES_URL}{cid}", headers=auth_headers)
        assert res_del.status_code == 200
        assert res_del.json() == {"success": True}
        assert stored(CATEGORIES, cid)["is_deleted"] is True

        res_404 = client.get(f"{CATEGORIES_URL}{cid}", headers=auth_headers)
        assert res_404.status_code == 404
        assert res_404.json()["detail"] == "Category not found"

    def test_delete_detaches_todos(self, client, auth_headers, stored):
        cid = client.post(CATEGORIES_URL, json={"title": "Errands"}, headers=auth_headers).json()["id"]
        tid = client.post(TODOS_URL, json=create_todo_payload(category_id=cid), headers=auth_headers).json()["id"]

        client.delete(f"{CATEGORIES_URL}{cid}", headers=auth_headers)

        todo = client.get(f"{TODOS_URL}{tid}", headers=auth_headers).json()
        assert todo["category_id"] is None
        assert stored(TODOS, tid)["is_deleted"] is False
        assert todo["updated_at"] == stored(CATEGORIES, cid)["modified_at"]

    def test_list_excludes_deleted(self, client, auth_headers):
        keep = client.post(CATEGORIES_URL, json={"title": "Keep"}, headers=auth_headers).json()["id"]
        drop = client.post(CATEGORIES_URL, json={"title": "Drop"}, headers=auth_headers).json()["id"]
        client.delete(f"{CATEGORIES_URL}{drop}", headers=auth_headers)

        ids = [c["id"] for c in client.get(CATEGORIES_URL, headers=auth_headers).json()]
        assert ids == [keep]

    def test_create_validation_error_title_empty(self, client, auth_headers):
        res = client.post(CATEGORIES_URL, json={"title": "   "}, headers=auth_headers)
        assert res.status_code == 422
        assert res.json()["error"] == "ValidationError"


class TestTodosCRUD:
    def test_create_todo_minimal(self, client, auth_headers):
        res = client.post(TODOS_URL, json=create_todo_payload(title="Buy milk", description=None), headers=auth_headers)
        assert res.status_code == 201
        todo = res.json()
        assert_todo_shape(todo)
        assert todo["title"] == "Buy milk"
        assert todo["description"] is None
        assert todo["is_completed"] is False
        assert todo["created_at"] == todo["updated_at"]

    def test_get_todo_and_not_found(self, client, auth_headers):
        tid = client.post(TODOS_URL, json=create_todo_payload(title="Read book"), headers=auth_headers).json()["id"]

        res_get = client.get(f"{TODOS_URL}{tid}", headers=auth_headers)
        assert res_get.status_code == 200
        assert res_get.json()["title"] == "Read book"

        res_404 = client.get(f"{TODOS_URL}does-not-exist", headers=auth_headers)
        assert res_404.status_code == 404
        assert res_404.json()["detail"] == "Todo not found"

    def test_other_owner_cannot_see_todo(self, client, auth_headers):
        tid = client.post(TODOS_URL, json=create_todo_payload(), headers=auth_headers).json()["id"]
        res = client.get(f"{TODOS_URL}{tid}", headers={"Authorization": f"Bearer {OTHER_OWNER}"})
        assert res.status_code == 404

    def test_put_partial_update(self, client, auth_headers):
        tid = client.post(
            TODOS_URL, json=create_todo_payload(title="Partial", description="X"), headers=auth_headers
        ).json()["id"]

        res = client.put(f"{TODOS_URL}{tid}", json={"title": "Partial Updated", "is_completed": True}, headers=auth_headers)
        assert res.status_code == 200
        patched = res.json()
        assert patched["title"] == "Partial Updated"
        assert patched["is_completed"] is True
        assert patched["description"] == "X"

        res_clear = client.put(f"{TODOS_URL}{tid}", json={"description": None, "title": None}, headers=auth_headers)
        assert res_clear.status_code == 200
        assert res_clear.json()["description"] is None
        assert res_clear.json()["title"] == "Partial Updated"

        res_nf = client.put(f"{TODOS_URL}missing", json={"title": "Nope"}, headers=auth_headers)
        assert res_nf.status_code == 404
        assert res_nf.json()["detail"] == "Todo not found"

    def test_delete_todo_is_soft(self, client, auth_headers, stored):
        tid = client.post(TODOS_URL, json=create_todo_payload(title="ToDelete"), headers=auth_headers).json()["id"]

        res_del = client.delete(f"{TODOS_URL}{tid}", headers=auth_headers)
        assert res_del.status_code == 200
        assert stored(TODOS, tid)["is_deleted"] is True

        assert client.get(f"{TODOS_URL}{tid}", headers=auth_headers).status_code == 404
        res_again = client.delete(f"{TODOS_URL}{tid}", headers=auth_headers)
        assert res_again.status_code == 404

    def test_deleted_todo_reaches_pull_as_deletion(self, client, auth_headers, seed):
        seed(todos=[todo_row("t1", created=100, modified=100)])
        client.delete(f"{TODOS_URL}t1", headers=auth_headers)

        res = client.post("/api/v1/sync/pull", json={"lastPulledAt": 100}, headers=auth_headers)
        assert res.json()["changes"]["todos"]["deleted"] == ["t1"]

    def test_list_filters_by_category(self, client, auth_headers):
        cid = client.post(CATEGORIES_URL, json={"title": "Home"}, headers=auth_headers).json()["id"]
        in_cat = client.post(TODOS_URL, json=create_todo_payload(category_id=cid), headers=auth_headers).json()["id"]
        client.post(TODOS_URL, json=create_todo_payload(title="Loose"), headers=auth_headers)

        all_items = client.get(TODOS_URL, headers=auth_headers).json()
        assert len(all_items) == 2
        filtered = client.get(f"{TODOS_URL}?category_id={cid}", headers=auth_headers).json()
        assert [t["id"] for t in filtered] == [in_cat]


class TestDeleteResponses:
    @pytest.mark.parametrize("path", ["/api/v1/categories/{category_id}", "/api/v1/todos/{todo_id}"])
    def test_delete_routes_share_one_result_schema(self, client, path):
        spec = client.get("/openapi.json").json()
        schema = spec["paths"][path]["delete"]["responses"]["200"]["content"]["application/json"]["schema"]
        assert schema == {"$ref": "#/components/schemas/DeleteResult"}
        assert spec["components"]["schemas"]["DeleteResult"]["required"] == ["success"]

    def test_delete_body(self, client, auth_headers):
        cid = client.post(CATEGORIES_URL, json={"title": "Gone"}, headers=auth_headers).json()["id"]
        assert client.delete(f"{CATEGORIES_URL}{cid}", headers=auth_headers).json() == {"success": True}
