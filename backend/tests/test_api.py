"""Tests for the REST and WebSocket surface."""
import uuid

import pytest
from fastapi.testclient import TestClient

from app.engine.session import get_or_create_session, remove_session
from app.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session_id():
    sid = f"test-{uuid.uuid4()}"
    yield sid
    remove_session(sid)


def chip_graph(display_type="display-text"):
    return {
        "nodes": [
            {"id": "chip1", "type": "chip", "data": {"content": "Hello, "}},
            {"id": "chip2", "type": "chip", "data": {"content": "world"}},
            {"id": "display", "type": display_type},
        ],
        "edges": [
            {"id": "e1", "source": "chip1", "target": "display",
             "source_handle": "out", "target_handle": "text-in"},
            {"id": "e2", "source": "chip2", "target": "display",
             "source_handle": "out", "target_handle": "text-in"},
        ],
    }


class TestNodesAndValidation:
    def test_list_nodes(self, client):
        resp = client.get("/api/nodes")
        assert resp.status_code == 200
        body = resp.json()
        assert body["display-text"]["inputs"]["text-in"]["dtype"] == "text"
        assert body["media"]["outputs"] == [{"dtype": "any", "name": "out"}]

    def test_validate(self, client):
        resp = client.post("/api/validate", json=chip_graph())
        assert resp.json() == {"valid": True, "errors": []}

        resp = client.post("/api/validate", json=chip_graph("hologram"))
        body = resp.json()
        assert not body["valid"]
        assert "Unknown node type: hologram" in body["errors"]


class TestRun:
    def test_run_success_records_history(self, client, session_id):
        resp = client.post(f"/api/sessions/{session_id}/run", json={"graph": chip_graph()})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"]
        assert body["status"] == "completed"
        assert body["node_outputs"]["display"]["default"]["value"] == "Hello, world"
        assert body["scope"] == ["chip1", "chip2", "display"]

        history = client.get(f"/api/sessions/{session_id}/history").json()
        assert len(history) == 1
        assert history[0]["success"]
        assert history[0]["scope"] == "full"

        state = client.get(f"/api/sessions/{session_id}/state").json()
        assert state == {
            "resumable": False, "scope_node_ids": [], "failed_node_ids": [], "cached_node_ids": [],
        }

    def test_failed_run_then_resume(self, client, session_id):
        resp = client.post(f"/api/sessions/{session_id}/run", json={"graph": chip_graph("hologram")})
        body = resp.json()
        assert resp.status_code == 200
        assert not body["success"]
        assert body["status"] == "failed"
        assert body["failed_node_ids"] == ["display"]
        assert "Unknown node type" in body["node_errors"]["display"]

        state = client.get(f"/api/sessions/{session_id}/state").json()
        assert state["resumable"]
        assert state["failed_node_ids"] == ["display"]
        assert state["cached_node_ids"] == ["chip1", "chip2"]

        resp = client.post(f"/api/sessions/{session_id}/run", json={
            "graph": chip_graph(),
            "options": {"resume": True, "retry_failed": True},
        })
        body = resp.json()
        assert body["success"]
        assert body["node_outputs"]["display"]["default"]["value"] == "Hello, world"

        history = client.get(f"/api/sessions/{session_id}/history").json()
        assert [h["success"] for h in history] == [True, False]

    def test_targeted_run(self, client, session_id):
        resp = client.post(f"/api/sessions/{session_id}/run", json={
            "graph": chip_graph(), "options": {"target_node_ids": ["chip2"], "trigger": "node"},
        })
        body = resp.json()
        assert body["scope"] == ["chip2"]
        history = client.get(f"/api/sessions/{session_id}/history").json()
        assert history[0]["scope"] == ["chip2"]
        assert history[0]["trigger"] == "node"

    def test_cycle_is_unprocessable(self, client, session_id):
        graph = {
            "nodes": [{"id": "a", "type": "chip"}, {"id": "b", "type": "chip"}],
            "edges": [
                {"id": "e1", "source": "a", "target": "b"},
                {"id": "e2", "source": "b", "target": "a"},
            ],
        }
        resp = client.post(f"/api/sessions/{session_id}/run", json={"graph": graph})
        assert resp.status_code == 422
        assert resp.json()["detail"]["node_ids"] == ["a", "b"]

    def test_empty_scope(self, client, session_id):
        resp = client.post(f"/api/sessions/{session_id}/run", json={"graph": {"nodes": []}})
        assert resp.status_code == 400

    def test_busy_session(self, client, session_id):
        session = get_or_create_session(session_id)
        session.coordinator._running = True
        resp = client.post(f"/api/sessions/{session_id}/run", json={"graph": chip_graph()})
        assert resp.status_code == 409


class TestSessionState:
    def test_unknown_session(self, client):
        assert client.get("/api/sessions/nobody/state").status_code == 404
        assert client.get("/api/sessions/nobody/history").status_code == 404
        assert client.delete("/api/sessions/nobody/state").status_code == 404

    def test_clear_state(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/run", json={"graph": chip_graph("hologram")})
        resp = client.delete(f"/api/sessions/{session_id}/state")
        assert resp.json() == {"status": "cleared"}
        assert not client.get(f"/api/sessions/{session_id}/state").json()["resumable"]


class TestExecutionSocket:
    def test_events_streamed(self, client, session_id):
        with client.websocket_connect(f"/ws/execution/{session_id}") as ws:
            client.post(f"/api/sessions/{session_id}/run", json={"graph": chip_graph()})
            messages = [ws.receive_json() for _ in range(4)]
        types = [m["type"] for m in messages]
        assert types[0] == "node_start"
        assert "node_complete" in types
