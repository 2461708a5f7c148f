"""
Tests for the FastAPI endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from rulegraph.api.deps import get_executor
from rulegraph.api.routes.runs import graph_error_status
from rulegraph.engine.errors import (
    CollaboratorFailure,
    InvalidRouteError,
    MissingPartitionKeyError,
    RunInputError,
    SchemaValidationError,
    StepLimitError,
    UnknownFieldError,
)
from rulegraph.engine.executor import Executor
from rulegraph.main import app


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def client(assistant_executor):
    """Test client serving the writing assistant with scripted models."""
    app.dependency_overrides[get_executor] = lambda: assistant_executor
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRootEndpoints:
    """Tests for root endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert "name" in data
        assert "version" in data
        assert data["endpoints"]["rules"] == "/rules/{assistant_id}"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_executor_not_configured(self):
        response = TestClient(app).get("/graph")
        assert response.status_code == 503


class TestGraphEndpoint:
    """Tests for the graph description endpoint."""

    def test_get_graph(self, client):
        response = client.get("/graph")
        assert response.status_code == 200

        data = response.json()
        assert data["graph_id"] == "writing-assistant"
        assert set(data["nodes"]) == {"callModel", "generateInsights", "wasContentGenerated", "getRules"}
        assert data["schema_fields"]["userRules"]["policy"] == "shared"
        assert data["edges"]["getRules"] == "__END__"
        assert "__START__" in data["conditional_edges"]
        assert data["mermaid_diagram"].startswith("graph TD")


class TestRunEndpoints:
    """Tests for running the graph."""

    def test_run_reply(self, client, chat_model, classifier_model):
        chat_model.replies.append("A tweet: Acme is live!")
        classifier_model.structured.append({"contentGenerated": True})

        response = client.post("/runs", json={
            "initial_state": {"messages": [{"role": "user", "content": "Write a tweet"}]},
            "config": {"assistant_id": "a1"},
        })
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "completed"
        assert data["first_node"] == "callModel"
        assert [e["node"] for e in data["execution_log"]] == ["callModel", "wasContentGenerated"]
        assert data["final_state"]["contentGenerated"] is True
        assert data["final_state"]["messages"][-1] == {"role": "assistant", "content": "A tweet: Acme is live!"}
        assert [h["node"] for h in data["history"]] == ["callModel", "wasContentGenerated"]
        assert data["history"][0]["updated"] == ["messages", "contentGenerated"]

    def test_run_is_stored(self, client, classifier_model):
        classifier_model.structured.append({"contentGenerated": False})
        run_id = client.post("/runs", json={"config": {"assistant_id": "a1"}}).json()["run_id"]

        response = client.get(f"/runs/{run_id}")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "completed"
        assert data["config"] == {"assistant_id": "a1"}
        assert data["current_node"] == "wasContentGenerated"
        assert len(data["execution_log"]) == 2

        listed = client.get("/runs").json()
        assert run_id in [r["run_id"] for r in listed["runs"]]

    def test_get_unknown_run(self, client):
        response = client.get("/runs/nonexistent")
        assert response.status_code == 404

    def test_accepted_text_then_read_rules(self, client, chat_model):
        chat_model.structured.append({"styleRules": ["No exclamation marks"], "contentRules": []})

        response = client.post("/runs", json={"config": {"assistant_id": "a7", "hasAcceptedText": True}})
        assert response.status_code == 200

        rules = client.get("/rules/a7")
        assert rules.status_code == 200
        assert rules.json() == {
            "assistant_id": "a7",
            "rules": {"styleRules": ["No exclamation marks"], "contentRules": []},
        }

    def test_rules_for_new_assistant(self, client, chat_model):
        response = client.get("/rules/unknown-assistant")
        assert response.status_code == 200
        assert response.json()["rules"] is None
        assert chat_model.calls == []

    def test_unknown_field_is_rejected(self, client):
        response = client.post("/runs", json={
            "initial_state": {"bogus": 1},
            "config": {"assistant_id": "a1"},
        })
        assert response.status_code == 422
        assert "bogus" in response.json()["detail"]

    def test_missing_assistant_id(self, client):
        response = client.post("/runs", json={"initial_state": {}})
        assert response.status_code == 422
        assert "assistant_id" in response.json()["detail"]

    def test_malformed_model_output(self, client, chat_model):
        chat_model.structured.append({"styleRules": 5})

        response = client.post("/runs", json={"config": {"assistant_id": "a1", "hasAcceptedText": True}})
        assert response.status_code == 502

        failed = [r for r in client.get("/runs").json()["runs"] if r["status"] == "failed"]
        assert failed

    def test_malformed_message_is_rejected(self, client, chat_model):
        response = client.post("/runs", json={
            "initial_state": {"messages": [{"role": "tool", "content": "hi"}]},
            "config": {"assistant_id": "a1"},
        })
        assert response.status_code == 422
        assert "Invalid messages" in response.json()["detail"]
        assert chat_model.calls == []

    def test_malformed_config_is_rejected(self, client, chat_model):
        response = client.post("/runs", json={"config": {"assistant_id": "a1", "hasAcceptedText": "maybe"}})
        assert response.status_code == 422
        assert "Invalid run configuration" in response.json()["detail"]
        assert chat_model.calls == []

    def test_step_limit_is_server_error(self, assistant_executor, classifier_model):
        classifier_model.structured.append({"contentGenerated": False})
        limited = Executor(assistant_executor.graph, store=assistant_executor.store, max_steps=1)
        app.dependency_overrides[get_executor] = lambda: limited
        try:
            response = TestClient(app).post("/runs", json={"config": {"assistant_id": "a1"}})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert "Max steps (1) exceeded" in response.json()["detail"]


class TestWebSocket:
    """Tests for the streaming endpoint."""

    def test_stream_run(self, client, classifier_model):
        classifier_model.structured.append({"contentGenerated": False})

        with client.websocket_connect("/ws/run") as ws:
            ws.send_json({
                "action": "start",
                "initial_state": {"messages": [{"role": "user", "content": "hello"}]},
                "config": {"assistant_id": "a1"},
            })
            assert ws.receive_json()["type"] == "started"

            first = ws.receive_json()
            assert first["type"] == "step"
            assert first["node"] == "callModel"
            assert first["route_taken"] == "wasContentGenerated"

            second = ws.receive_json()
            assert second["node"] == "wasContentGenerated"
            assert second["state"]["contentGenerated"] is False

            done = ws.receive_json()
            assert done["type"] == "completed"
            assert done["status"] == "completed"

    def test_stream_requires_start_action(self, client):
        with client.websocket_connect("/ws/run") as ws:
            ws.send_json({"action": "stop"})
            assert ws.receive_json()["type"] == "error"

    def test_stream_reports_graph_errors(self, client):
        with client.websocket_connect("/ws/run") as ws:
            ws.send_json({"action": "start", "config": {}})
            assert ws.receive_json()["type"] == "started"

            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["error_type"] == "MissingPartitionKeyError"

    def test_stream_reports_failed_step(self, client, chat_model):
        chat_model.structured.append({"styleRules": 5})

        with client.websocket_connect("/ws/run") as ws:
            ws.send_json({"action": "start", "config": {"assistant_id": "a1", "hasAcceptedText": True}})
            assert ws.receive_json()["type"] == "started"

            failed_step = ws.receive_json()
            assert failed_step["type"] == "step"
            assert failed_step["node"] == "generateInsights"
            assert failed_step["status"] == "error"

            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["error_type"] == "SchemaValidationError"

    def test_stream_rejects_bad_config(self, client):
        with client.websocket_connect("/ws/run") as ws:
            ws.send_json({"action": "start", "config": {"assistant_id": "a1", "onlyGetRules": "maybe"}})
            assert ws.receive_json()["type"] == "started"

            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["error_type"] == "RunInputError"


class TestErrorStatus:
    """Tests for mapping engine errors to HTTP status codes."""

    @pytest.mark.parametrize("error,expected", [
        (UnknownFieldError(["bogus"]), 422),
        (MissingPartitionKeyError("userRules", "assistant_id"), 422),
        (RunInputError("run configuration"), 422),
        (CollaboratorFailure("model unavailable"), 502),
        (SchemaValidationError("userRules", None), 502),
        (StepLimitError(25), 500),
        (InvalidRouteError("callModel", "nowhere", ["wasContentGenerated"]), 500),
    ])
    def test_graph_error_status(self, error, expected):
        assert graph_error_status(error) == expected
