"""Tests for notes endpoints."""

import uuid

from fakes import FakeEnricher
from fastapi.testclient import TestClient


def test_list_notes_empty(client: TestClient, auth_headers):
    """Test listing notes when empty."""
    response = client.get("/api/notes", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["notes"] == []
    assert data["total"] == 0


def test_list_notes_with_notes(client: TestClient, auth_headers, note_factory):
    note = note_factory("Call the bank tomorrow.")
    response = client.get("/api/notes", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["notes"][0]["id"] == note.id
    assert data["notes"][0]["transcript"]["text"] == "Call the bank tomorrow."


def test_no_api_key(client: TestClient):
    assert client.get("/api/notes").status_code == 401


def test_wrong_api_key(client: TestClient):
    response = client.get("/api/notes", headers={"X-API-Key": "nope"})
    assert response.status_code == 401


def test_api_key_query_parameter(client: TestClient):
    response = client.get("/api/notes", params={"apiKey": "test-secret"})
    assert response.status_code == 200


def test_unconfigured_secret_rejects_everything(make_container, make_client):
    """Without a configured secret no key is accepted."""
    client = make_client(make_container(api_secret_key=None))
    response = client.get("/api/notes", headers={"X-API-Key": ""})
    assert response.status_code == 401
    response = client.get("/api/notes", headers={"X-API-Key": "anything"})
    assert response.status_code == 401


def test_get_note(client: TestClient, auth_headers, note_factory):
    note = note_factory()
    response = client.get(f"/api/notes/{note.id}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == note.id
    assert data["title"] == note.title
    assert data["processing_status"] == "completed"


def test_get_note_not_found(client: TestClient, auth_headers):
    response = client.get(f"/api/notes/{uuid.uuid4()}", headers=auth_headers)
    assert response.status_code == 404


def test_get_note_audio(client: TestClient, auth_headers, note_factory):
    note = note_factory()
    response = client.get(f"/api/notes/{note.id}/audio", headers=auth_headers)
    assert response.status_code == 200
    assert response.content == b"OggS fake audio"
    assert response.headers["content-type"].startswith("audio/ogg")


def test_get_audio_bad_id(client: TestClient, auth_headers):
    response = client.get("/api/notes/not-a-uuid/audio", headers=auth_headers)
    assert response.status_code == 404


def test_delete_note(client: TestClient, auth_headers, note_factory, storage):
    note = note_factory()

    response = client.delete(f"/api/notes/{note.id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert client.get(f"/api/notes/{note.id}", headers=auth_headers).status_code == 404
    assert list(storage.audio_dir.iterdir()) == []


def test_delete_note_not_found(client: TestClient, auth_headers):
    response = client.delete(f"/api/notes/{uuid.uuid4()}", headers=auth_headers)
    assert response.status_code == 404


def test_process_without_ai(client: TestClient, auth_headers, note_factory):
    note = note_factory()
    response = client.post(f"/api/notes/{note.id}/process", headers=auth_headers)
    assert response.status_code == 503


def test_process_note(make_container, make_client, auth_headers, note_factory):
    note = note_factory("Plan the garden. Order seeds.")
    client = make_client(make_container(enricher=FakeEnricher(title="Garden plans")))

    response = client.post(f"/api/notes/{note.id}/process", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Garden plans"
    assert data["analysis"]["summary"] == "Summary #1"


def test_process_note_without_transcript(
    make_container, make_client, auth_headers, note_factory
):
    note = note_factory(failed=True)
    client = make_client(make_container(enricher=FakeEnricher()))

    response = client.post(f"/api/notes/{note.id}/process", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "No transcript available"


def test_process_note_ai_failure(make_container, make_client, auth_headers, note_factory):
    note = note_factory()
    client = make_client(make_container(enricher=FakeEnricher(analyze_error=True)))

    response = client.post(f"/api/notes/{note.id}/process", headers=auth_headers)

    assert response.status_code == 502


def test_health(client: TestClient):
    """Health does not need an API key."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["transcription"]["backend"] == "fake-whisper"
    assert data["transcription"]["available"] is True
    assert "base" in data["transcription"]["local_models"]
    assert data["ai_processing_enabled"] is False
