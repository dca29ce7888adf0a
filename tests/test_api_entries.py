"""
tests/test_api_entries.py -- Integration tests for the /api/v1/entries routes.

These tests exercise the full stack: access-level middleware -> FastAPI
dependency injection -> BlogStore -> response model serialization -> error
envelope. Unit tests of the route functions would miss the middleware and the
exception handlers, which is where the access policy and error mapping live.

Coverage:
  - Anonymous mutation attempts -> 401 with code "unauthorized"
  - Valid session for a subject NOT on the allow-list -> still 401
  - Listing scope: drafts only for editors; editable flag
  - Create 201 / get / update / delete happy paths
  - Validation -> 422 naming the field; create with supplied id -> 422
  - Unknown id -> 404; second delete -> 404
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from auth.tokens import issue_session_token
from core.config import get_settings

_DRAFT = {"title": "Hi there", "content": "0123456789", "author": "A", "status": "Draft"}


def _create(client: TestClient, headers: dict[str, str], **overrides) -> dict:
    body = {**_DRAFT, **overrides}
    resp = client.post("/api/v1/entries", json=body, headers=headers)
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()


class TestMutationsRequireEditor:
    def test_create_anonymous(self, client: TestClient) -> None:
        resp = client.post("/api/v1/entries", json=_DRAFT)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_update_anonymous(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        entry = _create(client, editor_headers)
        resp = client.put(f"/api/v1/entries/{entry['id']}", json={**_DRAFT, "title": "Hijacked"})
        assert resp.status_code == 401
        assert client.get(f"/api/v1/entries/{entry['id']}", headers=editor_headers).json()["title"] == "Hi there"

    def test_delete_anonymous(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        entry = _create(client, editor_headers)
        assert client.delete(f"/api/v1/entries/{entry['id']}").status_code == 401
        assert client.get(f"/api/v1/entries/{entry['id']}", headers=editor_headers).status_code == 200

    def test_session_without_allow_list_entry(self, client: TestClient) -> None:
        headers = {"Authorization": f"Bearer {issue_session_token('not-an-editor')}"}
        resp = client.post("/api/v1/entries", json=_DRAFT, headers=headers)
        assert resp.status_code == 401

    def test_session_cookie_is_accepted(self, client: TestClient, editor_token: str) -> None:
        client.cookies.set(get_settings().session_cookie_name, editor_token)
        resp = client.post("/api/v1/entries", json=_DRAFT)
        assert resp.status_code == 201


class TestListingScope:
    def test_draft_visibility_scenario(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        entry = _create(client, editor_headers)

        public = client.get("/api/v1/entries").json()
        assert public["editable"] is False
        assert entry["id"] not in [e["id"] for e in public["entries"]]

        private = client.get("/api/v1/entries", headers=editor_headers).json()
        assert private["editable"] is True
        assert entry["id"] in [e["id"] for e in private["entries"]]

        resp = client.put(
            f"/api/v1/entries/{entry['id']}",
            json={**_DRAFT, "status": "Published"},
            headers=editor_headers,
        )
        assert resp.status_code == 200

        public = client.get("/api/v1/entries").json()
        assert entry["id"] in [e["id"] for e in public["entries"]]

    def test_draft_detail_hidden_from_readers(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        entry = _create(client, editor_headers)
        assert client.get(f"/api/v1/entries/{entry['id']}").status_code == 404
        assert client.get(f"/api/v1/entries/{entry['id']}", headers=editor_headers).status_code == 200

    def test_listing_sorted_by_title(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        for title in ("Charlie", "Alpha", "Bravo"):
            _create(client, editor_headers, title=title, status="Published")
        titles = [e["title"] for e in client.get("/api/v1/entries").json()["entries"]]
        assert titles == ["Alpha", "Bravo", "Charlie"]


class TestEntryCrud:
    def test_create_returns_entry_with_id(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        entry = _create(client, editor_headers)
        assert entry["id"]
        assert entry["title"] == "Hi there"
        assert entry["status"] == "Draft"
        assert entry["last_edit_date"] == "Today"

    def test_status_defaults_to_draft(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        body = {"title": "No status", "content": "0123456789", "author": "Ann"}
        resp = client.post("/api/v1/entries", json=body, headers=editor_headers)
        assert resp.status_code == 201
        assert resp.json()["status"] == "Draft"

    def test_update_round_trips(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        entry = _create(client, editor_headers)
        body = {
            "title": "Edited",
            "content": "Edited content here",
            "author": "Bob",
            "last_edit_date": "2021-07-04",
            "status": "Published",
        }
        resp = client.put(f"/api/v1/entries/{entry['id']}", json=body, headers=editor_headers)
        assert resp.status_code == 200
        fetched = client.get(f"/api/v1/entries/{entry['id']}").json()
        assert fetched == {"id": entry["id"], **body}

    def test_update_unknown_id(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        resp = client.put("/api/v1/entries/doesnotexist", json=_DRAFT, headers=editor_headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_delete_then_get_and_delete_again(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        entry = _create(client, editor_headers)
        assert client.delete(f"/api/v1/entries/{entry['id']}", headers=editor_headers).status_code == 204
        assert client.get(f"/api/v1/entries/{entry['id']}", headers=editor_headers).status_code == 404
        second = client.delete(f"/api/v1/entries/{entry['id']}", headers=editor_headers)
        assert second.status_code == 404
        assert second.json()["error"]["code"] == "not_found"


class TestValidationErrors:
    def test_short_content_names_field(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        resp = client.post("/api/v1/entries", json={**_DRAFT, "content": "short"}, headers=editor_headers)
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "validation_error"
        assert error["field"] == "content"

    def test_short_title_on_update(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        entry = _create(client, editor_headers)
        resp = client.put(f"/api/v1/entries/{entry['id']}", json={**_DRAFT, "title": "X"}, headers=editor_headers)
        assert resp.status_code == 422
        assert resp.json()["error"]["field"] == "title"

    def test_create_with_supplied_id_rejected(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        existing = _create(client, editor_headers)
        resp = client.post(
            "/api/v1/entries",
            json={**_DRAFT, "id": existing["id"], "title": "Overwrite"},
            headers=editor_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["field"] == "id"
        fetched = client.get(f"/api/v1/entries/{existing['id']}", headers=editor_headers).json()
        assert fetched["title"] == "Hi there"

    def test_unknown_status_rejected(self, client: TestClient, editor_headers: dict[str, str]) -> None:
        resp = client.post("/api/v1/entries", json={**_DRAFT, "status": "Archived"}, headers=editor_headers)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
