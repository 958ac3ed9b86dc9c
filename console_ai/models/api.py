"""Request and response models for the HTTP API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class CreateConversationRequest(BaseModel):
    """Request model for creating a conversation."""

    user_id: str
    tenant: str | None = None


class ConversationResponse(BaseModel):
    """A conversation as returned by the API."""

    id: str
    user_id: str
    tenant: str | None = None
    title: str | None = None
    summary: str | None = None
    created_at: datetime


class TurnRequest(BaseModel):
    """Request model for sending a message in a conversation.

    The console authenticates the caller upstream and forwards their identity here.
    """

    message: str = Field(min_length=1)
    user_id: str
    role: str
    tenant_overrides: dict[str, list[str]] | None = None
    current_page: str | None = None


class TurnResponse(BaseModel):
    """Response model for a completed turn."""

    response: str
    conversation_id: str
    token_input: int
    token_output: int
    model: str
    suggestions: list[str] = Field(default_factory=list)


class MessageResponse(BaseModel):
    """A persisted message as returned by the API."""

    id: str
    conversation_id: str
    role: str
    content: str
    tool_calls: list[dict[str, Any]] = Field(default_factory=list)
    tool_call_id: str | None = None
    token_input: int | None = None
    token_output: int | None = None
    latency_ms: int | None = None
    model: str | None = None
    created_at: datetime


class ToolExecutionResponse(BaseModel):
    """A tool execution audit row as returned by the API."""

    id: str
    message_id: str
    tool_call_id: str
    tool_name: str
    input: dict[str, Any]
    output: Any = None
    status: str
    duration_ms: int
    error: str | None = None
    created_at: datetime


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
