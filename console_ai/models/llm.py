"""LLM-related data models and types (provider-agnostic)."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class LLMMessage(BaseModel):
    """A message for LLM conversation."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


class LLMTool(BaseModel):
    """Tool schema as presented to the model."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: dict[str, str] | None = None


@dataclass
class LLMUsage:
    """Token/resource usage information from LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def add(self, other: "LLMUsage") -> None:
        """Accumulate another usage record into this one."""
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.cache_creation_input_tokens += other.cache_creation_input_tokens
        self.cache_read_input_tokens += other.cache_read_input_tokens


@dataclass
class LLMResponse:
    """Provider-agnostic final response of one model call."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: LLMUsage
    model: str

    @property
    def text(self) -> str:
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


# Incremental pieces of a streamed model call, in arrival order.
@dataclass
class TextDelta:
    text: str


@dataclass
class ToolUseComplete:
    block: ToolUseBlock


@dataclass
class StreamFinished:
    response: LLMResponse


StreamChunk = TextDelta | ToolUseComplete | StreamFinished


@dataclass
class ModelRequest:
    """Everything sent to the model for one round."""

    system_prompt: str
    messages: list[LLMMessage]
    tools: list[LLMTool] = field(default_factory=list)
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


class ModelClient(Protocol):
    """What the agent needs from a language model provider."""

    def stream_message(self, request: ModelRequest) -> AsyncIterator[StreamChunk]: ...

    async def create_message(self, request: ModelRequest) -> LLMResponse: ...

    def validate_message_tokens(self, message: str) -> None: ...
