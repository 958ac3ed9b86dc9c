"""Stream events relayed to the client while a turn runs."""

import json
from typing import Any, Literal

from pydantic import BaseModel, Field

EventType = Literal["text_delta", "tool_use_start", "tool_result", "suggested_followups", "error", "done"]


class StreamEvent(BaseModel):
    """A single `{type, data}` event on the wire."""

    type: EventType
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def text_delta(cls, text: str) -> "StreamEvent":
        return cls(type="text_delta", data={"text": text})

    @classmethod
    def tool_use_start(cls, tool_call_id: str, name: str) -> "StreamEvent":
        return cls(type="tool_use_start", data={"id": tool_call_id, "name": name})

    @classmethod
    def tool_result(cls, tool_call_id: str, name: str, status: str, result: dict[str, Any]) -> "StreamEvent":
        return cls(type="tool_result", data={"id": tool_call_id, "name": name, "status": status, "result": result})

    @classmethod
    def suggested_followups(cls, suggestions: list[str]) -> "StreamEvent":
        return cls(type="suggested_followups", data={"suggestions": suggestions})

    @classmethod
    def error(cls, message: str, code: str = "internal_error") -> "StreamEvent":
        return cls(type="error", data={"message": message, "code": code})

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(type="done")

    def to_sse(self) -> str:
        """Encode as a server-sent events frame."""
        payload = json.dumps(self.model_dump(), default=str, ensure_ascii=False)
        return f"data: {payload}\n\n"
