import json

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from homebook.api.main import app
from homebook.db import get_db
from homebook.schemas import Importance, Note


def test_health(client):
    assert client.get("/").json() == {"message": "Healthy"}
    assert client.get("/health/db").json()["status"] == "up"


def test_create_then_list(client):
    assert client.get("/notes").json() == []

    response = client.post("/notes", json={"title": "Groceries", "content": "Milk, eggs", "importance": "medium"})
    assert response.status_code == 201
    created = Note.model_validate(response.json())
    assert (created.title, created.content, created.importance) == ("Groceries", "Milk, eggs", Importance.MEDIUM)

    listed = [Note.model_validate(n) for n in client.get("/notes").json()]
    assert listed == [created]


def test_create_defaults_importance_to_low(client):
    response = client.post("/notes", json={"title": "t", "content": "c"})
    assert response.json()["importance"] == "low"


def test_long_titles_are_accepted(client):
    response = client.post("/notes", json={"title": "t" * 201, "content": "c"})
    assert response.status_code == 201

    note_id = response.json()["id"]
    response = client.put(f"/notes/{note_id}", json={"title": "u" * 500})
    assert response.status_code == 200
    assert client.get(f"/notes/{note_id}").json()["title"] == "u" * 500


def test_create_rejects_blank_fields(client):
    response = client.post("/notes", json={"title": "   ", "content": "c"})
    assert response.status_code == 422
    assert response.json() == {"detail": "empty title or content"}
    assert client.get("/notes").json() == []


def test_edit_changes_only_given_fields(client):
    created = client.post("/notes", json={"title": "A", "content": "x"}).json()

    response = client.put(f"/notes/{created['id']}", json={"importance": "high"})
    assert response.status_code == 200

    [note] = client.get("/notes").json()
    assert note["id"] == created["id"]
    assert note["importance"] == "high"
    assert (note["title"], note["content"], note["date"]) == ("A", "x", created["date"])


def test_edit_keeps_position(client):
    ids = [client.post("/notes", json={"title": t, "content": "c"}).json()["id"] for t in "abc"]
    client.put(f"/notes/{ids[1]}", json={"title": "B"})

    titles = [n["title"] for n in client.get("/notes").json()]
    assert titles == ["a", "B", "c"]


def test_edit_unknown_note_is_404(client):
    assert client.put("/notes/123", json={"title": "x"}).status_code == 404
    assert client.get("/notes/123").status_code == 404


def test_delete(client):
    first = client.post("/notes", json={"title": "one", "content": "c"}).json()
    second = client.post("/notes", json={"title": "two", "content": "c"}).json()

    assert client.delete(f"/notes/{first['id']}").status_code == 204
    assert [n["id"] for n in client.get("/notes").json()] == [second["id"]]

    assert client.delete(f"/notes/{first['id']}").status_code == 204
    assert [n["id"] for n in client.get("/notes").json()] == [second["id"]]


def test_get_note(client):
    created = client.post("/notes", json={"title": "one", "content": "c"}).json()
    assert client.get(f"/notes/{created['id']}").json() == created


def test_form_without_payload_is_create_mode(client):
    draft = client.get("/form").json()
    assert draft["mode"] == "create"
    assert draft["editing_id"] is None
    assert draft["importance"] == "low"


def test_form_seeded_from_payload(client, make_note):
    payload = make_note(1, "A", "x").model_dump_json()
    draft = client.get("/form", params={"note": payload}).json()
    assert draft["mode"] == "edit"
    assert draft["editing_id"] == 1
    assert draft["title"] == "A"


def test_form_with_malformed_payload_is_create_mode(client):
    draft = client.get("/form", params={"note": json.dumps({"id": "x"})}).json()
    assert draft["mode"] == "create"
    assert draft["title"] == ""


def test_storage_failure_is_503():
    # No tables were created, so every read and write fails.
    bare = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    BareSession = sessionmaker(bind=bare)

    def _get_bare_db():
        db = BareSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_bare_db
    try:
        client = TestClient(app)
        assert client.get("/notes").status_code == 503
        response = client.post("/notes", json={"title": "t", "content": "c"})
        assert response.status_code == 503
        assert response.json() == {"detail": "Storage unavailable"}
    finally:
        app.dependency_overrides.clear()
        bare.dispose()
