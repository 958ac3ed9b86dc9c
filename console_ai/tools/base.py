"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class ToolContext:
    """Caller identity handed to every tool."""

    user_id: str
    role: str
    tenant_overrides: Mapping[str, Sequence[str]] | None = None


class ToolResult(BaseModel):
    """Uniform tool outcome: ``data`` on success, ``error`` on failure."""

    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict, as fed back to the model and persisted."""
        return self.model_dump(mode="json", exclude_none=True)


class EmptyInput(BaseModel):
    """Input schema for tools that take no parameters."""


ToolHandler = Callable[[Any, ToolContext], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool available to the AI assistant."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    module: str
    required_permission: str
    handler: ToolHandler = field(compare=False)

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        schema = self.input_schema_class.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)

    async def execute(self, raw_input: dict[str, Any], context: ToolContext) -> ToolResult:
        """Validate input and run the handler."""
        params = self.parse_input(raw_input)
        return await self.handler(params, context)
