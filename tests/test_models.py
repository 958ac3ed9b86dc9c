"""Tests for data models."""

import json
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from console_ai.config import MAX_TOOL_ROUNDS, AgentSettings
from console_ai.models.api import HealthResponse, MessageResponse, TurnRequest
from console_ai.models.conversation import Message, MessageRole, ToolCallRecord, ToolExecution, ToolExecutionStatus
from console_ai.models.llm import LLMMessage, LLMResponse, LLMUsage, TextBlock, ToolResultBlock, ToolUseBlock
from console_ai.tools.base import ToolResult
from console_ai.utils.logging import LogConfig, get_logger, turn_logger


class TestApiModels:
    """Tests for API request/response models."""

    def test_turn_request_from_json(self):
        """Test turn request parsing from JSON."""
        json_data = '{"message": "Show my tasks", "user_id": "user_pm", "role": "PM", "current_page": "/pm"}'
        request = TurnRequest.model_validate(json.loads(json_data))

        assert request.message == "Show my tasks"
        assert request.tenant_overrides is None
        assert request.current_page == "/pm"

    def test_turn_request_overrides(self):
        """Test tenant overrides in a turn request."""
        request = TurnRequest(message="Hi", user_id="user_dev", role="DEVELOPER", tenant_overrides={"crm": ["read"]})
        assert request.tenant_overrides == {"crm": ["read"]}

    def test_turn_request_requires_identity(self):
        """Test that user id and role are required."""
        with pytest.raises(ValidationError):
            TurnRequest(message="Hi")

    def test_health_response_valid(self):
        """Test valid health response."""
        now = datetime.now(UTC)
        response = HealthResponse(status="healthy", timestamp=now, version="1.0.0")
        assert response.status == "healthy"
        assert response.timestamp == now

    def test_message_response_from_entity(self):
        """Test that persisted messages map onto the API model."""
        message = Message(
            id="msg_1",
            conversation_id="conv_1",
            role=MessageRole.ASSISTANT,
            content="Looking.",
            tool_calls=(ToolCallRecord(id="toolu_1", name="list_tasks", input={"mine": True}),),
            token_input=10,
            created_at=datetime(2026, 10, 19, 9, 30, tzinfo=UTC),
        )

        response = MessageResponse.model_validate(message.as_dict())

        assert response.role == "ASSISTANT"
        assert response.tool_calls == [{"id": "toolu_1", "name": "list_tasks", "input": {"mine": True}}]
        assert response.created_at == datetime(2026, 10, 19, 9, 30, tzinfo=UTC)


class TestConversationEntities:
    """Tests for persisted conversation records."""

    @pytest.mark.asyncio
    async def test_conversation_updates_replace_the_record(self, conversation_store):
        """Test that conversations are immutable and the store swaps in updated copies."""
        conversation = await conversation_store.create_conversation("user_pm")
        with pytest.raises(AttributeError):
            conversation.title = "Changed"

        await conversation_store.set_title(conversation.id, "Q3 report")

        assert conversation.title is None
        assert (await conversation_store.get_conversation(conversation.id)).title == "Q3 report"

    def test_message_is_immutable(self):
        """Test that messages cannot be modified after creation."""
        message = Message(id="msg_1", conversation_id="conv_1", role=MessageRole.USER, content="Hi")
        with pytest.raises(AttributeError):
            message.content = "Changed"

    def test_tool_execution_as_dict(self):
        """Test the audit row serialization."""
        execution = ToolExecution(
            id="exec_1",
            message_id="msg_1",
            tool_call_id="toolu_1",
            tool_name="create_lead",
            input={"companyName": "Acme"},
            output=None,
            status=ToolExecutionStatus.DENIED,
            duration_ms=1,
            error="permission denied for create_lead",
        )

        data = execution.as_dict()

        assert data["status"] == "DENIED"
        assert data["error"] == "permission denied for create_lead"
        assert data["output"] is None


class TestLLMModels:
    """Tests for provider-agnostic LLM models."""

    def test_text_block_creation(self):
        """Test creating a text block."""
        block = TextBlock(text="Hello")
        assert block.type == "text"

    def test_tool_use_block_ignores_extra_fields(self):
        """Test that provider-specific fields are dropped."""
        block = ToolUseBlock.model_validate(
            {"type": "tool_use", "id": "toolu_1", "name": "list_tasks", "input": {}, "caller": "direct"}
        )
        assert block.model_dump() == {"type": "tool_use", "id": "toolu_1", "name": "list_tasks", "input": {}}

    def test_message_with_tool_results(self):
        """Test a user message carrying tool results."""
        message = LLMMessage(role="user", content=[ToolResultBlock(tool_use_id="toolu_1", content="{}")])
        assert message.model_dump(exclude_none=True)["content"][0]["type"] == "tool_result"

    def test_invalid_role(self):
        """Test that only user and assistant roles exist."""
        with pytest.raises(ValidationError):
            LLMMessage(role="system", content="Hi")

    def test_response_helpers(self):
        """Test text and tool use extraction from a response."""
        response = LLMResponse(
            content=[
                TextBlock(text="Let me "),
                ToolUseBlock(id="toolu_1", name="list_tasks", input={}),
                TextBlock(text="check."),
            ],
            stop_reason="tool_use",
            usage=LLMUsage(input_tokens=10, output_tokens=5),
            model="claude-sonnet-4-6",
        )

        assert response.text == "Let me check."
        assert [t.name for t in response.tool_uses] == ["list_tasks"]

    def test_usage_accumulates(self):
        """Test usage accumulation across rounds."""
        total = LLMUsage()
        total.add(LLMUsage(input_tokens=100, output_tokens=20, cache_read_input_tokens=50))
        total.add(LLMUsage(input_tokens=120, output_tokens=10))

        assert total.input_tokens == 220
        assert total.output_tokens == 30
        assert total.cache_read_input_tokens == 50
        assert total.total_tokens == 250


class TestToolResult:
    """Tests for the uniform tool result."""

    def test_ok_payload(self):
        """Test the payload of a successful result."""
        result = ToolResult.ok({"when": datetime(2026, 10, 19, 9, 0, tzinfo=UTC)})
        assert result.to_payload() == {"success": True, "data": {"when": "2026-10-19T09:00:00Z"}}

    def test_fail_payload(self):
        """Test the payload of a failed result."""
        assert ToolResult.fail("nope").to_payload() == {"success": False, "error": "nope"}


class TestAgentSettings:
    """Tests for assistant configuration."""

    def test_defaults(self):
        """Test default limits."""
        settings = AgentSettings()

        assert settings.max_tool_rounds == MAX_TOOL_ROUNDS == 10
        assert settings.turn_rate_limit == 30
        assert settings.tool_rate_limit == 50
        assert settings.enabled_tools == []

    def test_from_env(self, monkeypatch):
        """Test reading configuration from the environment."""
        monkeypatch.setenv("AI_BRAND_NAME", "Acme Console")
        monkeypatch.setenv("AI_ENABLED_TOOLS", "list_tasks, create_task,")
        monkeypatch.setenv("AI_MAX_TOOL_ROUNDS", "4")

        settings = AgentSettings.from_env()

        assert settings.brand_name == "Acme Console"
        assert settings.enabled_tools == ["list_tasks", "create_task"]
        assert settings.max_tool_rounds == 4


class TestLogging:
    """Tests for logging helpers."""

    def test_log_config_reads_level(self, monkeypatch):
        """Test that the level defaults to LOG_LEVEL."""
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert LogConfig().level == "DEBUG"

    def test_turn_logger_prefixes_records(self, caplog):
        """Test that turn logs carry conversation and user."""
        log = turn_logger(get_logger("tests.turn", "INFO"), "conv_1", "user_pm")

        with caplog.at_level("INFO", logger="tests.turn"):
            log.info("Starting turn as PM")

        assert caplog.messages == ["[conv=conv_1 user=user_pm] Starting turn as PM"]
