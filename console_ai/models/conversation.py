"""Persisted conversation records: conversations, messages and tool executions."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class MessageRole(StrEnum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"
    TOOL_RESULT = "TOOL_RESULT"


class ToolExecutionStatus(StrEnum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    DENIED = "DENIED"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Conversation:
    """A conversation between one user and the assistant."""

    id: str
    user_id: str
    tenant: str | None = None
    title: str | None = None
    summary: str | None = None
    created_at: datetime = field(default_factory=_now)

    def as_dict(self) -> dict[str, Any]:
        """Return the conversation as a dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "tenant": self.tenant,
            "title": self.title,
            "summary": self.summary,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ToolCallRecord:
    """A tool call as requested by the model and stored on the assistant message."""

    id: str
    name: str
    input: dict[str, Any]


@dataclass(frozen=True)
class Message:
    """Append-only conversation message.

    ASSISTANT messages may carry the ordered tool calls of their round; TOOL_RESULT
    messages reference the call they answer through ``tool_call_id``.
    """

    id: str
    conversation_id: str
    role: MessageRole
    content: str
    tool_calls: tuple[ToolCallRecord, ...] = ()
    tool_call_id: str | None = None
    token_input: int | None = None
    token_output: int | None = None
    latency_ms: int | None = None
    model: str | None = None
    created_at: datetime = field(default_factory=_now)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "role": self.role.value,
            "content": self.content,
            "tool_calls": [{"id": tc.id, "name": tc.name, "input": tc.input} for tc in self.tool_calls],
            "tool_call_id": self.tool_call_id,
            "token_input": self.token_input,
            "token_output": self.token_output,
            "latency_ms": self.latency_ms,
            "model": self.model,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ToolExecution:
    """Write-once audit record of a single tool invocation."""

    id: str
    message_id: str
    tool_call_id: str
    tool_name: str
    input: dict[str, Any]
    output: Any
    status: ToolExecutionStatus
    duration_ms: int
    error: str | None = None
    created_at: datetime = field(default_factory=_now)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "message_id": self.message_id,
            "tool_call_id": self.tool_call_id,
            "tool_name": self.tool_name,
            "input": self.input,
            "output": self.output,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
        }
