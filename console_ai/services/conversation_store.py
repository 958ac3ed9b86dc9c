"""Conversation persistence interface and implementations."""

from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any, Protocol

from cuid2 import cuid_wrapper

from console_ai.models.conversation import (
    Conversation,
    Message,
    MessageRole,
    ToolCallRecord,
    ToolExecution,
    ToolExecutionStatus,
)
from console_ai.services.errors import ConversationNotFoundError

cuid = cuid_wrapper()


class ConversationStore(Protocol):
    """Interface for conversation, message and tool execution persistence.

    Messages and tool executions are append-only; the only mutable conversation fields
    are ``title`` and ``summary``.
    """

    async def create_conversation(
        self, user_id: str, tenant: str | None = None, conversation_id: str | None = None
    ) -> Conversation: ...

    async def get_conversation(self, conversation_id: str) -> Conversation | None: ...

    async def set_title(self, conversation_id: str, title: str) -> None: ...

    async def set_summary(self, conversation_id: str, summary: str) -> None: ...

    async def append_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        *,
        tool_calls: Sequence[ToolCallRecord] = (),
        tool_call_id: str | None = None,
        token_input: int | None = None,
        token_output: int | None = None,
        latency_ms: int | None = None,
        model: str | None = None,
    ) -> Message: ...

    async def count_messages(self, conversation_id: str, roles: Iterable[MessageRole] | None = None) -> int: ...

    async def list_messages(
        self,
        conversation_id: str,
        *,
        offset: int = 0,
        limit: int | None = None,
        roles: Iterable[MessageRole] | None = None,
    ) -> list[Message]:
        """List messages in creation order."""
        ...

    async def record_tool_execution(
        self,
        *,
        message_id: str,
        tool_call_id: str,
        tool_name: str,
        input: dict[str, Any],
        output: Any,
        status: ToolExecutionStatus,
        duration_ms: int,
        error: str | None = None,
    ) -> ToolExecution: ...

    async def list_tool_executions(
        self, *, conversation_id: str | None = None, message_id: str | None = None
    ) -> list[ToolExecution]: ...


class InMemoryConversationStore:
    """In-memory conversation store.

    Keeps rows in insertion order, which is the creation order replayed by the history
    manager.
    """

    def __init__(self):
        self.conversations: dict[str, Conversation] = {}
        self.messages: list[Message] = []
        self.tool_executions: list[ToolExecution] = []

    async def create_conversation(
        self, user_id: str, tenant: str | None = None, conversation_id: str | None = None
    ) -> Conversation:
        new_id = conversation_id or cuid()
        if new_id in self.conversations:
            return self.conversations[new_id]
        conversation = Conversation(id=new_id, user_id=user_id, tenant=tenant)
        self.conversations[new_id] = conversation
        return conversation

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self.conversations.get(conversation_id)

    async def set_title(self, conversation_id: str, title: str) -> None:
        conversation = self._require(conversation_id)
        self.conversations[conversation_id] = replace(conversation, title=title)

    async def set_summary(self, conversation_id: str, summary: str) -> None:
        conversation = self._require(conversation_id)
        self.conversations[conversation_id] = replace(conversation, summary=summary)

    async def append_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        *,
        tool_calls: Sequence[ToolCallRecord] = (),
        tool_call_id: str | None = None,
        token_input: int | None = None,
        token_output: int | None = None,
        latency_ms: int | None = None,
        model: str | None = None,
    ) -> Message:
        self._require(conversation_id)
        message = Message(
            id=cuid(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            tool_calls=tuple(tool_calls),
            tool_call_id=tool_call_id,
            token_input=token_input,
            token_output=token_output,
            latency_ms=latency_ms,
            model=model,
        )
        self.messages.append(message)
        return message

    async def count_messages(self, conversation_id: str, roles: Iterable[MessageRole] | None = None) -> int:
        return len(self._select(conversation_id, roles))

    async def list_messages(
        self,
        conversation_id: str,
        *,
        offset: int = 0,
        limit: int | None = None,
        roles: Iterable[MessageRole] | None = None,
    ) -> list[Message]:
        selected = self._select(conversation_id, roles)[offset:]
        return selected if limit is None else selected[:limit]

    async def record_tool_execution(
        self,
        *,
        message_id: str,
        tool_call_id: str,
        tool_name: str,
        input: dict[str, Any],
        output: Any,
        status: ToolExecutionStatus,
        duration_ms: int,
        error: str | None = None,
    ) -> ToolExecution:
        execution = ToolExecution(
            id=cuid(),
            message_id=message_id,
            tool_call_id=tool_call_id,
            tool_name=tool_name,
            input=input,
            output=output,
            status=status,
            duration_ms=duration_ms,
            error=error,
        )
        self.tool_executions.append(execution)
        return execution

    async def list_tool_executions(
        self, *, conversation_id: str | None = None, message_id: str | None = None
    ) -> list[ToolExecution]:
        executions = self.tool_executions
        if message_id is not None:
            executions = [e for e in executions if e.message_id == message_id]
        if conversation_id is not None:
            message_ids = {m.id for m in self.messages if m.conversation_id == conversation_id}
            executions = [e for e in executions if e.message_id in message_ids]
        return list(executions)

    def _select(self, conversation_id: str, roles: Iterable[MessageRole] | None) -> list[Message]:
        wanted = set(roles) if roles is not None else None
        return [
            m
            for m in self.messages
            if m.conversation_id == conversation_id and (wanted is None or m.role in wanted)
        ]

    def _require(self, conversation_id: str) -> Conversation:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation
