"""Conversation history loading and background compaction."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from console_ai.config import AgentSettings
from console_ai.models.conversation import Message, MessageRole
from console_ai.models.llm import (
    ContentBlock,
    LLMMessage,
    ModelClient,
    ModelRequest,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from console_ai.services.conversation_store import ConversationStore
from console_ai.utils.logging import get_logger

logger = get_logger(__name__)

SUMMARY_ACK = "I have the context of our previous conversation. How can I help?"
SUMMARY_INSTRUCTION = (
    "Summarize this conversation between a user and an AI assistant in 2-3 concise sentences. "
    "Focus on the main topics and the actions taken:\n\n"
)


@dataclass
class HistoryContext:
    """Model-visible prior turns of a conversation."""

    prior_turns: list[LLMMessage]
    used_summary: bool
    message_count: int


def to_llm_messages(messages: Sequence[Message]) -> list[LLMMessage]:
    """Rebuild the model transcript from persisted messages.

    Consecutive TOOL_RESULT messages answer the same assistant round and are folded into
    one user message, in creation order.
    """
    transcript: list[LLMMessage] = []
    for message in messages:
        if message.role == MessageRole.TOOL_RESULT:
            block = ToolResultBlock(tool_use_id=message.tool_call_id or "", content=message.content)
            previous = transcript[-1] if transcript else None
            if previous is not None and previous.role == "user" and _is_tool_results(previous):
                previous.content.append(block)
            else:
                transcript.append(LLMMessage(role="user", content=[block]))
        elif message.role == MessageRole.ASSISTANT and message.tool_calls:
            blocks: list[ContentBlock] = [TextBlock(text=message.content)] if message.content else []
            blocks.extend(ToolUseBlock(id=tc.id, name=tc.name, input=tc.input) for tc in message.tool_calls)
            transcript.append(LLMMessage(role="assistant", content=blocks))
        elif message.role == MessageRole.ASSISTANT:
            transcript.append(LLMMessage(role="assistant", content=message.content))
        else:
            transcript.append(LLMMessage(role="user", content=message.content))
    return transcript


def _is_tool_results(message: LLMMessage) -> bool:
    return isinstance(message.content, list) and all(isinstance(b, ToolResultBlock) for b in message.content)


def _drop_orphan_tool_results(messages: list[Message]) -> list[Message]:
    start = 0
    while start < len(messages) and messages[start].role == MessageRole.TOOL_RESULT:
        start += 1
    return messages[start:]


class HistoryManager:
    """Loads bounded conversation context and compacts long conversations."""

    def __init__(self, store: ConversationStore, client: ModelClient, settings: AgentSettings | None = None):
        self.store = store
        self.client = client
        self.settings = settings or AgentSettings()
        self._inflight: dict[str, asyncio.Task[None]] = {}

    async def load_context(self, conversation_id: str) -> HistoryContext:
        """Prior turns: summary pair + recent tail for long summarized conversations, else recent messages."""
        conversation = await self.store.get_conversation(conversation_id)
        count = await self.store.count_messages(conversation_id)
        summary = conversation.summary if conversation else None

        if summary and count > self.settings.summary_trigger_messages:
            tail = self.settings.summary_tail_messages
            recent = await self.store.list_messages(conversation_id, offset=max(0, count - tail), limit=tail)
            prior = [
                LLMMessage(role="user", content=f"[Summary of the previous conversation: {summary}]"),
                LLMMessage(role="assistant", content=SUMMARY_ACK),
                *to_llm_messages(_drop_orphan_tool_results(recent)),
            ]
            logger.debug(f"Loaded summary + {len(recent)} messages for conversation {conversation_id}")
            return HistoryContext(prior_turns=prior, used_summary=True, message_count=count)

        window = self.settings.history_max_messages
        recent = await self.store.list_messages(conversation_id, offset=max(0, count - window), limit=window)
        logger.debug(f"Loaded {len(recent)} of {count} messages for conversation {conversation_id}")
        return HistoryContext(
            prior_turns=to_llm_messages(_drop_orphan_tool_results(recent)),
            used_summary=False,
            message_count=count,
        )

    async def maybe_schedule_summary(self, conversation_id: str) -> asyncio.Task[None] | None:
        """Start background summarization when the conversation is long and unsummarized.

        At most one summarization runs per conversation at a time; returns the running
        task, or None when nothing needs doing.
        """
        running = self._inflight.get(conversation_id)
        if running is not None and not running.done():
            return running

        count = await self.store.count_messages(conversation_id)
        if count <= self.settings.summary_trigger_messages:
            return None

        conversation = await self.store.get_conversation(conversation_id)
        if conversation is None or conversation.summary:
            return None

        task = asyncio.create_task(self._summarize_guarded(conversation_id))
        self._inflight[conversation_id] = task
        task.add_done_callback(lambda _: self._forget(conversation_id, task))
        logger.info(f"Scheduled summarization for conversation {conversation_id} ({count} messages)")
        return task

    def _forget(self, conversation_id: str, task: asyncio.Task[None]) -> None:
        if self._inflight.get(conversation_id) is task:
            del self._inflight[conversation_id]

    async def _summarize_guarded(self, conversation_id: str) -> None:
        try:
            await self.summarize(conversation_id)
        except Exception as e:
            logger.warning(f"Summarization failed for conversation {conversation_id}: {e}")

    async def summarize(self, conversation_id: str) -> str | None:
        """Store a short synopsis of the conversation's opening, once.

        Returns the new summary, or None when one already existed or there is too little
        to summarize.
        """
        conversation = await self.store.get_conversation(conversation_id)
        if conversation is None or conversation.summary:
            return None

        messages = await self.store.list_messages(
            conversation_id,
            limit=self.settings.summary_source_messages,
            roles=(MessageRole.USER, MessageRole.ASSISTANT),
        )
        if len(messages) < self.settings.summary_min_messages:
            return None

        transcript = "\n".join(
            f"{'User' if m.role == MessageRole.USER else 'Assistant'}: {m.content[:200]}" for m in messages
        )
        response = await self.client.create_message(
            ModelRequest(
                system_prompt="",
                messages=[LLMMessage(role="user", content=SUMMARY_INSTRUCTION + transcript)],
                model=self.settings.summary_model,
                max_tokens=self.settings.summary_max_tokens,
            )
        )

        summary = response.text.strip()
        if not summary:
            return None

        # Another writer may have won while the model was thinking.
        latest = await self.store.get_conversation(conversation_id)
        if latest is not None and latest.summary:
            return None

        await self.store.set_summary(conversation_id, summary)
        logger.info(f"Stored summary for conversation {conversation_id}")
        return summary
