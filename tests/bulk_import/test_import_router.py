"""HTTP tests for the bulk import router."""

import importlib
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.telroute.bulk_import.adapters import InMemoryImportSessionStore
from src.telroute.bulk_import.api import dependencies
from src.telroute.bulk_import.api.router import router
from src.telroute.bulk_import.domain.entities import ReferenceCatalog

PHONE_LINES_CSV = "Phone Number,Consumer,Tags\n1000,Lobby,VIP\n1000,Copy,\n2000,,\n".encode("utf-8")


@pytest.fixture
def mock_repo():
    repo = AsyncMock()
    repo.existing_phone_numbers.return_value = set()
    repo.phone_number_exists.return_value = False
    repo.load_catalog.return_value = ReferenceCatalog(tags={"VIP": "tag-vip"})
    return repo


@pytest.fixture
def client(mock_repo, monkeypatch):
    monkeypatch.setenv("DISABLE_AUTH", "true")
    sessions = InMemoryImportSessionStore()

    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[dependencies.get_import_repo] = lambda: mock_repo
    app.dependency_overrides[dependencies.get_session_store] = lambda: sessions
    return TestClient(app)


def _preview(client, content=PHONE_LINES_CSV, filename="lines.csv"):
    return client.post(
        "/api/import/phone-lines/preview",
        files={"file": (filename, content, "text/csv")},
    )


class TestPreviewEndpoint:
    """Tests for uploading a sheet."""

    def test_preview(self, client):
        response = _preview(client)

        assert response.status_code == 200
        data = response.json()
        assert data["total_rows"] == 3
        assert data["importable_rows"] == 2
        assert [r["can_import"] for r in data["rows"]] == [True, False, True]
        assert data["rows"][1]["fields"]["is_phone_number_duplicate"] is True

    def test_wrong_extension(self, client):
        assert _preview(client, filename="lines.txt").status_code == 400

    def test_empty_file(self, client):
        assert _preview(client, content=b"").status_code == 400

    def test_missing_column(self, client):
        response = _preview(client, content=b"Consumer\nLobby\n")
        assert response.status_code == 422
        assert "phone_number" in response.json()["detail"]["fields"]

    def test_too_large(self, client, monkeypatch):
        router_module = importlib.import_module("src.telroute.bulk_import.api.router")

        monkeypatch.setattr(router_module, "MAX_UPLOAD_SIZE_BYTES", 10)
        assert _preview(client).status_code == 413


class TestSessionEndpoints:
    """Tests for editing, committing and discarding a session."""

    def test_edit_row(self, client):
        session_id = _preview(client).json()["session_id"]

        response = client.patch(
            f"/api/import/sessions/{session_id}/rows/1",
            json={"changes": {"phone_number": "3000"}},
        )

        assert response.status_code == 200
        assert response.json()["can_import"] is True
        assert client.get(f"/api/import/sessions/{session_id}").json()["importable_rows"] == 3

    def test_edit_row_out_of_range(self, client):
        session_id = _preview(client).json()["session_id"]
        response = client.patch(f"/api/import/sessions/{session_id}/rows/9", json={"changes": {}})
        assert response.status_code == 422

    def test_commit(self, client, mock_repo):
        session_id = _preview(client).json()["session_id"]

        response = client.post(f"/api/import/sessions/{session_id}/commit", json={"actor": "admin"})

        assert response.status_code == 200
        assert response.json()["success_count"] == 2
        assert response.json()["skipped_count"] == 1
        assert mock_repo.create_phone_line.await_count == 2
        assert client.get(f"/api/import/sessions/{session_id}").status_code == 404

    def test_commit_stream(self, client):
        session_id = _preview(client).json()["session_id"]

        response = client.post(f"/api/import/sessions/{session_id}/commit-stream", json={})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = [
            json.loads(line[len("data: "):])
            for line in response.text.splitlines()
            if line.startswith("data: ")
        ]
        assert [e["type"] for e in events] == ["progress", "progress", "progress", "complete"]
        assert events[-1]["success_count"] == 2

    def test_commit_stream_unknown_session(self, client):
        response = client.post("/api/import/sessions/missing/commit-stream", json={})
        assert "event: error" in response.text
        assert "NOT_FOUND" in response.text

    def test_discard(self, client):
        session_id = _preview(client).json()["session_id"]
        assert client.delete(f"/api/import/sessions/{session_id}").status_code == 204
        assert client.get(f"/api/import/sessions/{session_id}").status_code == 404
