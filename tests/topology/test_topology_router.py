"""HTTP tests for the routing topology router.

Repositories are replaced with the in-memory store through FastAPI
dependency overrides, so no database is needed.
"""

import asyncio
import sys

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])

from src.telroute.topology.adapters import InMemorySettingsStore, InMemoryStore
from src.telroute.topology.api import dependencies
from src.telroute.topology.api.router import router
from src.telroute.topology.use_cases import LookupDebouncers


@pytest.fixture
def memory():
    return InMemoryStore()


@pytest.fixture
def app(memory, monkeypatch):
    monkeypatch.setenv("DISABLE_AUTH", "true")
    settings = InMemorySettingsStore()

    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[dependencies.get_node_repo] = lambda: memory
    app.dependency_overrides[dependencies.get_line_repo] = lambda: memory
    app.dependency_overrides[dependencies.get_route_repo] = lambda: memory
    app.dependency_overrides[dependencies.get_change_log] = lambda: memory
    app.dependency_overrides[dependencies.get_settings_store] = lambda: settings
    app.dependency_overrides[dependencies.get_lookup_debouncers] = lambda: LookupDebouncers(delay=0)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def _create_frame(client, name="MDF-1", sets=2):
    response = client.post(
        "/api/topology/nodes",
        json={"name": name, "kind": "Frame", "sets": sets, "terminals_per_set": 10},
    )
    assert response.status_code == 201
    return response.json()


class TestAuth:
    """Tests for API key enforcement."""

    def test_missing_key_rejected(self, client, monkeypatch):
        monkeypatch.setenv("DISABLE_AUTH", "false")
        monkeypatch.setattr(dependencies, "_api_key", "secret")

        assert client.get("/api/topology/nodes").status_code == 401
        ok = client.get("/api/topology/nodes", headers={"X-API-Key": "secret"})
        assert ok.status_code == 200


class TestNodeEndpoints:
    """Tests for node CRUD."""

    def test_create_and_list(self, client):
        node = _create_frame(client)
        assert node["kind"] == "Frame"
        assert node["total_ports"] == 200

        listed = client.get("/api/topology/nodes").json()
        assert [n["name"] for n in listed] == ["MDF-1"]

    def test_create_invalid_returns_fields(self, client):
        response = client.post("/api/topology/nodes", json={"name": "X", "kind": "Frame", "sets": 0})
        assert response.status_code == 422
        fields = response.json()["detail"]["fields"]
        assert set(fields) == {"sets", "terminals_per_set"}

    def test_unknown_node(self, client):
        response = client.get("/api/topology/nodes/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404

    def test_delete_in_use_conflict(self, client):
        node = _create_frame(client)
        client.put(
            f"/api/topology/nodes/{node['id']}/ports/111/assignment",
            json={"phone_number": "1234"},
        )
        response = client.delete(f"/api/topology/nodes/{node['id']}")
        assert response.status_code == 409


class TestPortEndpoints:
    """Tests for port assignment and views."""

    def test_assign_then_view_set(self, client):
        node = _create_frame(client)
        response = client.put(
            f"/api/topology/nodes/{node['id']}/ports/203/assignment",
            json={"phone_number": "1234", "consumer_label": "Lobby", "wire1": "Red"},
        )
        assert response.status_code == 200
        assert response.json()["kind"] == "assigned"

        view = client.get(f"/api/topology/nodes/{node['id']}/sets/2").json()
        port = view["terminals"][9]["ports"][2]
        assert port["label"] == "2-10-3"
        assert port["line_number"] == "1234"
        assert view["used_ports"] == 1

    def test_blank_number_clears_port(self, client):
        node = _create_frame(client)
        url = f"/api/topology/nodes/{node['id']}/ports/111/assignment"
        client.put(url, json={"phone_number": "1234"})

        response = client.put(url, json={"phone_number": "  "})
        assert response.json()["kind"] == "cleared"

    def test_invalid_address(self, client):
        node = _create_frame(client)
        response = client.put(
            f"/api/topology/nodes/{node['id']}/ports/311/assignment",
            json={"phone_number": "1234"},
        )
        assert response.status_code == 422

    def test_stale_expected_hop_conflict(self, client):
        node = _create_frame(client)
        url = f"/api/topology/nodes/{node['id']}/ports/111/assignment"
        first = client.put(url, json={"phone_number": "1234"}).json()

        client.put(url, json={"phone_number": "5678"})
        response = client.put(
            url, json={"phone_number": "9999", "expected_hop_id": first["hop"]["id"]}
        )
        assert response.status_code == 409

    def test_empty_layout_cell(self, client):
        node = _create_frame(client)
        client.put(f"/api/topology/nodes/{node['id']}/layout/size", json={"rows": 2, "cols": 2})
        response = client.get(f"/api/topology/nodes/{node['id']}/layout/cell?row=1&col=1")
        assert response.status_code == 404


class TestLineEndpoints:
    """Tests for line path, lookup and history."""

    def test_lookup_and_path(self, client):
        node = _create_frame(client)
        change = client.put(
            f"/api/topology/nodes/{node['id']}/ports/111/assignment",
            json={"phone_number": "1234", "consumer_label": "Lobby"},
        ).json()

        lookup = client.get("/api/topology/lines/lookup", params={"number": "1234"}).json()
        assert lookup == {
            "phone_number": "1234",
            "consumer_label": "Lobby",
            "found": True,
            "superseded": False,
        }

        path = client.get(f"/api/topology/lines/{change['line']['id']}/path").json()
        assert [s["port_label"] for s in path["path"]] == ["1-1-1"]

        history = client.get(f"/api/topology/lines/{change['line']['id']}/history").json()
        assert len(history["entries"]) == 1


async def _after(delay, request):
    await asyncio.sleep(delay)
    return await request


class TestLookupDebounce:
    """Keystroke lookups are debounced per form."""

    @pytest.mark.asyncio
    async def test_newer_keystroke_supersedes_older(self, app, memory):
        await memory.upsert_by_number("1234", "Lobby")
        debouncers = LookupDebouncers(delay=0.05)
        app.dependency_overrides[dependencies.get_lookup_debouncers] = lambda: debouncers

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            older, newer = await asyncio.gather(
                client.get("/api/topology/lines/lookup", params={"number": "123", "form_id": "f1"}),
                _after(0.01, client.get("/api/topology/lines/lookup", params={"number": "1234", "form_id": "f1"})),
            )

        assert older.json()["superseded"] is True
        assert older.json()["consumer_label"] is None
        assert newer.json() == {
            "phone_number": "1234",
            "consumer_label": "Lobby",
            "found": True,
            "superseded": False,
        }

    @pytest.mark.asyncio
    async def test_separate_forms_do_not_interfere(self, app, memory):
        await memory.upsert_by_number("1234", "Lobby")
        debouncers = LookupDebouncers(delay=0.05)
        app.dependency_overrides[dependencies.get_lookup_debouncers] = lambda: debouncers

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            first, second = await asyncio.gather(
                client.get("/api/topology/lines/lookup", params={"number": "1234", "form_id": "f1"}),
                _after(0.01, client.get("/api/topology/lines/lookup", params={"number": "1234", "form_id": "f2"})),
            )

        assert first.json()["found"] is True
        assert second.json()["found"] is True
        assert len(debouncers) == 2


class TestSettingsEndpoints:
    """Tests for wire colors and dashboard cards."""

    def test_wire_colors(self, client):
        response = client.post("/api/topology/wire-colors", json={"name": "Violet", "value": "#8f00ff"})
        assert response.status_code == 201
        assert response.json()[-1] == {"name": "Violet", "value": "#8f00ff", "is_dual": False}

        duplicate = client.post("/api/topology/wire-colors", json={"name": "violet", "value": "#000"})
        assert duplicate.status_code == 409

    def test_dashboard_cards(self, client):
        card = client.post(
            "/api/topology/dashboard-cards", json={"name": "VIP", "tag_ids": ["t1"]}
        ).json()
        assert client.get("/api/topology/dashboard-cards").json()[0]["id"] == card["id"]
        assert client.delete(f"/api/topology/dashboard-cards/{card['id']}").status_code == 204
