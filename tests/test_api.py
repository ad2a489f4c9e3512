"""Tests for the FastAPI endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.executor import SandboxOutputError
from src.scheduling import SchedulingStatus
from src.server import app


@pytest.fixture
def mock_graphs():
    """Attach mock graphs to app state (mirrors the lifespan)."""
    scheduling_graph = MagicMock()
    scheduling_graph.invoke.return_value = {
        "status": SchedulingStatus.VALIDATION_FAILED,
        "validation_errors": ["No appointments are available on Sundays."],
    }
    quotation_graph = MagicMock()
    quotation_graph.invoke.return_value = {
        "user_input": "move-out cleaning",
        "status": "completed",
        "final_quotation": "Quotation Details:\nMove-out Cleaning: $200",
    }

    app.state.scheduling_graph = scheduling_graph
    app.state.quotation_graph = quotation_graph
    yield scheduling_graph, quotation_graph
    # Clean up
    app.state.scheduling_graph = None
    app.state.quotation_graph = None


@pytest.fixture
def client(mock_graphs):
    """FastAPI test client with the mock graphs wired up."""
    return TestClient(app)


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "scheduling-agent"


class TestSchedulingEndpoint:
    def test_returns_status_and_errors(self, client):
        response = client.post(
            "/api/scheduling/validate",
            json={"customer_inquiry": "Next Sunday at 10am"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "status": "validation_failed",
            "validation_errors": ["No appointments are available on Sundays."],
        }

    def test_passes_inquiry_into_graph_state(self, client, mock_graphs):
        scheduling_graph, _ = mock_graphs
        client.post("/api/scheduling/validate", json={"customer_inquiry": "Tuesday 10am"})
        state = scheduling_graph.invoke.call_args[0][0]
        assert state["customer_inquiry"] == "Tuesday 10am"
        assert state["status"] == SchedulingStatus.PENDING

    def test_validates_empty_inquiry(self, client):
        response = client.post("/api/scheduling/validate", json={"customer_inquiry": ""})
        assert response.status_code == 422  # Pydantic validation error

    def test_execution_failure_returns_502(self, client, mock_graphs):
        scheduling_graph, _ = mock_graphs
        scheduling_graph.invoke.side_effect = SandboxOutputError("sandbox produced no output")
        response = client.post("/api/scheduling/validate", json={"customer_inquiry": "Tuesday"})
        assert response.status_code == 502
        detail = response.json()["detail"]
        assert "no output" not in detail
        assert "could not be validated" in detail

    def test_unexpected_error_does_not_leak(self, client, mock_graphs):
        scheduling_graph, _ = mock_graphs
        scheduling_graph.invoke.side_effect = RuntimeError("LLM exploded")
        response = client.post("/api/scheduling/validate", json={"customer_inquiry": "Tuesday"})
        assert response.status_code == 500
        # Verify we do NOT leak the internal error message to the client
        detail = response.json()["detail"]
        assert "LLM exploded" not in detail
        assert "internal error" in detail.lower()


class TestQuotationEndpoint:
    def test_returns_quotation(self, client):
        response = client.post("/api/quotation", json={"user_input": "move-out cleaning"})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["final_quotation"].startswith("Quotation Details:")

    def test_each_request_gets_its_own_thread(self, client, mock_graphs):
        _, quotation_graph = mock_graphs
        client.post("/api/quotation", json={"user_input": "a"}, headers={"X-Request-ID": "same"})
        client.post("/api/quotation", json={"user_input": "b"}, headers={"X-Request-ID": "same"})
        thread_ids = [
            call[1]["config"]["configurable"]["thread_id"]
            for call in quotation_graph.invoke.call_args_list
        ]
        assert len(set(thread_ids)) == 2

    def test_error_returns_500(self, client, mock_graphs):
        _, quotation_graph = mock_graphs
        quotation_graph.invoke.side_effect = RuntimeError("boom")
        response = client.post("/api/quotation", json={"user_input": "carpets"})
        assert response.status_code == 500
        assert "boom" not in response.json()["detail"]


class TestRequestId:
    def test_response_includes_request_id_header(self, client):
        response = client.get("/api/health")
        assert "X-Request-ID" in response.headers

    def test_client_supplied_request_id_is_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "my-trace-id-123"})
        assert response.headers["X-Request-ID"] == "my-trace-id-123"


class TestNotReady:
    def test_returns_503_when_graphs_not_initialised(self):
        """If the graphs haven't been set via lifespan, return 503."""
        with (
            patch("src.server.DocumentStore"),
            patch("src.server.PistonClient"),
            patch("src.server.create_scheduling_graph"),
            patch("src.server.create_quotation_graph"),
        ):
            # Enter the test client (triggers lifespan), then wipe the graph
            # to simulate the state before lifespan completes.
            with TestClient(app) as tc:
                app.state.scheduling_graph = None
                response = tc.post("/api/scheduling/validate", json={"customer_inquiry": "Tuesday"})
                assert response.status_code == 503
                assert "starting up" in response.json()["detail"].lower()

    def test_lifespan_closes_clients(self):
        with (
            patch("src.server.DocumentStore") as mock_store_cls,
            patch("src.server.PistonClient") as mock_sandbox_cls,
            patch("src.server.create_scheduling_graph"),
            patch("src.server.create_quotation_graph"),
        ):
            with TestClient(app):
                pass
        mock_sandbox_cls.return_value.close.assert_called_once()
        mock_store_cls.return_value.client.close.assert_called_once()

    def test_lifespan_closes_clients_when_startup_fails(self):
        with (
            patch("src.server.DocumentStore") as mock_store_cls,
            patch("src.server.PistonClient") as mock_sandbox_cls,
            patch("src.server.create_scheduling_graph", side_effect=RuntimeError("bad model name")),
            patch("src.server.create_quotation_graph"),
        ):
            with pytest.raises(RuntimeError, match="bad model name"):
                with TestClient(app):
                    pass
        mock_sandbox_cls.return_value.close.assert_called_once()
        mock_store_cls.return_value.client.close.assert_called_once()


class TestRootEndpoint:
    def test_root_returns_service_info(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "Cleaning Services Scheduling Agent"
        assert "docs" in data
