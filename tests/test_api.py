"""
Service Tests
=============

HTTP and WebSocket surface of the FastAPI app.
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    """Run the app lifespan around each test."""
    from futility_core.main import app

    with TestClient(app) as test_client:
        yield test_client


class TestInfoEndpoints:
    """Tests for informational endpoints."""

    def test_root(self, client):
        """Root reports the service and current phase."""
        body = client.get("/").json()
        assert body["service"] == "futility-core"
        assert body["phase"] == "Menu"

    def test_health(self, client):
        """Liveness probe always answers."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_telemetry_in_menu(self, client):
        """The menu shows the ambient source and no managed ones."""
        body = client.get("/telemetry").json()
        assert body["phase"] == "Menu"
        assert body["emission"]["manager_state"] == "MENU"
        assert body["emission"]["has_ambient_source"] is True
        assert body["emission"]["active_sources"] == 0

    def test_metrics(self, client):
        """Metrics include every subsystem."""
        body = client.get("/metrics").json()
        assert body["flow"]["current_phase"] == "Menu"
        assert "difficulty" in body
        assert "sources" in body


class TestFlowEndpoints:
    """Tests for transition requests."""

    def test_start_game(self, client):
        """Requesting Starting ends up in Running."""
        response = client.post("/flow/transition", json={"target": "Starting"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["phase"] == "Running"
        assert sorted(body["legal_targets"]) == ["Ending", "Paused"]

    def test_illegal_transition_is_409(self, client):
        """An illegal transition is rejected with the legal targets."""
        response = client.post("/flow/transition", json={"target": "Paused"})
        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "NOT_ADJACENT"
        assert body["legal_targets"] == ["Starting"]

    def test_unknown_phase_is_422(self, client):
        """Phases outside the enum never reach the state machine."""
        response = client.post("/flow/transition", json={"target": "Victory"})
        assert response.status_code == 422

    def test_reset(self, client):
        """Reset forces the flow back to Menu."""
        client.post("/flow/transition", json={"target": "Starting"})
        body = client.post("/flow/reset").json()
        assert body["forced"] is True
        assert body["phase"] == "Menu"

    def test_results_after_ending(self, client):
        """Results exist only after a run has finished."""
        assert client.get("/results").status_code == 404

        client.post("/flow/transition", json={"target": "Starting"})
        client.post("/events/escaped", json={"count": 7})
        client.post("/flow/transition", json={"target": "Ending"})

        response = client.get("/results")
        assert response.status_code == 200
        assert response.json()["particles_escaped"] == 7


class TestEventEndpoints:
    """Tests for particle events."""

    def test_events_ignored_in_menu(self, client):
        """Blocked particles do not count outside Running."""
        body = client.post("/events/blocked", json={"count": 5}).json()
        assert body["particles_blocked"] == 0

    def test_events_counted_while_running(self, client):
        """Blocked particles build pressure while Running."""
        client.post("/flow/transition", json={"target": "Starting"})
        body = client.post("/events/blocked", json={"count": 40}).json()
        assert body["particles_blocked"] == 40
        assert body["pressure_percentage"] == pytest.approx(0.2)

    def test_negative_count_rejected(self, client):
        """Counts are validated by the request model."""
        response = client.post("/events/escaped", json={"count": -1})
        assert response.status_code == 422


class TestTelemetryStream:
    """Tests for the WebSocket push."""

    def test_first_message(self, client):
        """The stream sends a snapshot on connect."""
        with client.websocket_connect("/ws/telemetry") as websocket:
            data = websocket.receive_json()
        assert data["phase"] == "Menu"
        assert "difficulty" in data
