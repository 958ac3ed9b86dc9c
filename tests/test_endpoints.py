"""Tests for API endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from console_ai import __version__
from console_ai.config import AgentSettings
from console_ai.main import create_app
from fakes import text_reply, tool_call, tool_reply

TURN = {"user_id": "user_pm", "role": "PM"}
OWNER = {"user_id": "user_pm"}


def sse_events(body: str) -> list[dict]:
    return [json.loads(line[len("data: ") :]) for line in body.splitlines() if line.startswith("data: ")]


@pytest.fixture
def make_client(make_agent):
    """Factory for a test client around a scripted agent loop."""

    def _make(responses=None, settings: AgentSettings | None = None):
        agent, model = make_agent(responses, settings)
        return TestClient(create_app(agent)), model

    return _make


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check_returns_200(self, make_client):
        """Test that health check returns 200 status."""
        client, _ = make_client()
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_check_response_structure(self, make_client):
        """Test that health check returns expected JSON structure."""
        client, _ = make_client()
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert "timestamp" in data

    def test_health_check_content_type(self, make_client):
        """Test that health check returns JSON content type."""
        client, _ = make_client()
        response = client.get("/health")
        assert response.headers["content-type"] == "application/json"


class TestConversationEndpoints:
    """Tests for conversation management endpoints."""

    def test_create_conversation(self, make_client):
        """Test that a conversation is created with a generated id."""
        client, _ = make_client()

        response = client.post("/conversations", json={"user_id": "user_pm", "tenant": "acme"})

        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == "user_pm"
        assert data["tenant"] == "acme"
        assert data["title"] is None
        assert len(data["id"]) > 0

    def test_messages_of_unknown_conversation(self, make_client):
        """Test 404 for unknown conversations."""
        client, _ = make_client()

        assert client.get("/conversations/missing/messages", params=OWNER).status_code == 404
        assert client.get("/conversations/missing/tool-executions", params=OWNER).status_code == 404

    def test_replay_after_turn(self, make_client):
        """Test that messages and tool executions are listed after a turn."""
        client, _ = make_client(
            [tool_reply(tool_call("toolu_1", "create_task", title="Call Acme")), text_reply("Task created.")]
        )
        conversation_id = client.post("/conversations", json={"user_id": "user_pm"}).json()["id"]
        client.post(f"/conversations/{conversation_id}/messages", json={"message": "Create a task", **TURN})

        messages = client.get(f"/conversations/{conversation_id}/messages", params=OWNER).json()
        assert [m["role"] for m in messages] == ["USER", "ASSISTANT", "TOOL_RESULT", "ASSISTANT"]
        assert messages[1]["tool_calls"][0]["name"] == "create_task"
        assert messages[2]["tool_call_id"] == "toolu_1"

        executions = client.get(f"/conversations/{conversation_id}/tool-executions", params=OWNER).json()
        assert len(executions) == 1
        assert executions[0]["status"] == "SUCCESS"
        assert executions[0]["message_id"] == messages[1]["id"]

    def test_foreign_conversation_is_not_readable(self, make_client):
        """Test that another user's transcript and audit rows are hidden."""
        client, _ = make_client([text_reply("Hi Giulia.")])
        conversation_id = client.post("/conversations", json={"user_id": "user_admin"}).json()["id"]
        client.post(
            f"/conversations/{conversation_id}/messages",
            json={"message": "Hello", "user_id": "user_admin", "role": "ADMIN"},
        )

        assert client.get(f"/conversations/{conversation_id}/messages", params=OWNER).status_code == 404
        assert client.get(f"/conversations/{conversation_id}/tool-executions", params=OWNER).status_code == 404
        owner = client.get(f"/conversations/{conversation_id}/messages", params={"user_id": "user_admin"})
        assert owner.status_code == 200
        assert len(owner.json()) == 2

    def test_reading_requires_user_id(self, make_client):
        """Test that reads without a caller identity are rejected."""
        client, _ = make_client()
        conversation_id = client.post("/conversations", json={"user_id": "user_pm"}).json()["id"]

        assert client.get(f"/conversations/{conversation_id}/messages").status_code == 422


class TestMessageEndpoint:
    """Tests for the JSON turn endpoint."""

    def test_turn_response(self, make_client):
        """Test the response of a completed turn."""
        client, _ = make_client([text_reply("Hello Marco!", input_tokens=120, output_tokens=8)])

        response = client.post("/conversations/conv_1/messages", json={"message": "Hello", **TURN})

        assert response.status_code == 200
        data = response.json()
        assert data == {
            "response": "Hello Marco!",
            "conversation_id": "conv_1",
            "token_input": 120,
            "token_output": 8,
            "model": "claude-sonnet-4-6",
            "suggestions": [],
        }

    def test_turn_suggestions(self, make_client):
        """Test that suggestions reflect the tools used."""
        client, _ = make_client([tool_reply(tool_call("toolu_1", "list_tasks")), text_reply("No tasks.")])

        data = client.post("/conversations/conv_1/messages", json={"message": "My tasks?", **TURN}).json()

        assert data["suggestions"] == ["Show overdue tasks", "Create a new task", "Which tasks are urgent?"]

    def test_rate_limited(self, make_client):
        """Test 429 when the turn limit is hit."""
        client, _ = make_client([text_reply("Hi")], settings=AgentSettings(turn_rate_limit=1))

        client.post("/conversations/conv_1/messages", json={"message": "Hello", **TURN})
        response = client.post("/conversations/conv_1/messages", json={"message": "Hello", **TURN})

        assert response.status_code == 429
        assert "Too many requests" in response.json()["detail"]

    def test_message_too_long(self, make_client):
        """Test 400 for oversize messages."""
        client, _ = make_client(settings=AgentSettings(max_message_chars=5))

        response = client.post("/conversations/conv_1/messages", json={"message": "Far too long", **TURN})

        assert response.status_code == 400
        assert "too long" in response.json()["detail"]

    def test_empty_message_rejected(self, make_client):
        """Test request validation."""
        client, _ = make_client()

        response = client.post("/conversations/conv_1/messages", json={"message": "", **TURN})

        assert response.status_code == 422

    def test_model_failure(self, make_client):
        """Test 502 when the model call fails."""
        client, _ = make_client([RuntimeError("overloaded")])

        response = client.post("/conversations/conv_1/messages", json={"message": "Hello", **TURN})

        assert response.status_code == 502

    def test_foreign_conversation(self, make_client):
        """Test 404 when continuing another user's conversation."""
        client, _ = make_client([text_reply("Hi")])
        conversation_id = client.post("/conversations", json={"user_id": "user_admin"}).json()["id"]

        response = client.post(f"/conversations/{conversation_id}/messages", json={"message": "Hello", **TURN})

        assert response.status_code == 404


class TestStreamEndpoint:
    """Tests for the server-sent events endpoint."""

    def test_stream_events(self, make_client):
        """Test the streamed events of a tool-using turn."""
        client, _ = make_client(
            [
                tool_reply(tool_call("toolu_1", "create_task", title="Call Acme"), text="On it."),
                text_reply("Done."),
            ]
        )

        response = client.post("/conversations/conv_1/stream", json={"message": "Create a task", **TURN})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = sse_events(response.text)
        types = [e["type"] for e in events]
        assert types[-1] == "done"
        assert types.count("done") == 1
        assert types.index("tool_use_start") < types.index("tool_result") < types.index("suggested_followups")

        tool_result = events[types.index("tool_result")]
        assert tool_result["data"]["status"] == "SUCCESS"
        text = "".join(e["data"]["text"] for e in events if e["type"] == "text_delta")
        assert text == "On it.Done."

    def test_stream_rate_limited(self, make_client):
        """Test that a refused turn streams an error and done."""
        client, _ = make_client([text_reply("Hi")], settings=AgentSettings(turn_rate_limit=1))

        client.post("/conversations/conv_1/stream", json={"message": "Hello", **TURN})
        response = client.post("/conversations/conv_1/stream", json={"message": "Hello", **TURN})

        events = sse_events(response.text)
        assert [e["type"] for e in events] == ["error", "done"]
        assert events[0]["data"]["code"] == "rate_limited"

    def test_stream_model_failure(self, make_client):
        """Test that a model failure streams one error then done."""
        client, _ = make_client([RuntimeError("overloaded")])

        response = client.post("/conversations/conv_1/stream", json={"message": "Hello", **TURN})

        events = sse_events(response.text)
        assert [e["type"] for e in events] == ["error", "done"]
        assert events[0]["data"]["code"] == "model_error"
