"""The agent loop: drives model rounds and tool calls for one conversational turn."""

import json
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from console_ai.config import AgentSettings
from console_ai.models.conversation import MessageRole, ToolCallRecord
from console_ai.models.events import StreamEvent
from console_ai.models.llm import (
    ContentBlock,
    LLMMessage,
    LLMResponse,
    LLMUsage,
    ModelClient,
    ModelRequest,
    StreamFinished,
    TextBlock,
    TextDelta,
    ToolResultBlock,
    ToolUseComplete,
)
from console_ai.services.conversation_store import ConversationStore, InMemoryConversationStore
from console_ai.services.errors import ConversationNotFoundError, ModelCallError, TurnRateLimitedError
from console_ai.services.events import EventChannel
from console_ai.services.followups import generate_followups
from console_ai.services.history import HistoryManager
from console_ai.services.permissions import PermissionGate
from console_ai.services.platform import InMemoryPlatformStore
from console_ai.services.prompts import build_system_prompt
from console_ai.services.rate_limit import RateLimiter
from console_ai.services.sandbox import ToolSandbox
from console_ai.tools.base import ToolContext
from console_ai.tools.registry import ToolCatalog, build_catalog
from console_ai.utils.logging import get_logger, turn_logger

logger = get_logger(__name__)

TITLE_MAX_CHARS = 80
MODEL_UNAVAILABLE_MESSAGE = "The assistant is temporarily unavailable. Please try again."


@dataclass
class TurnResult:
    """Outcome of one turn, however the loop ended."""

    conversation_id: str
    assistant_text: str
    token_input: int
    token_output: int
    model: str
    rounds: int
    stop_reason: str | None
    tools_used: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


class AgentLoop:
    """Runs conversational turns against the tool catalog.

    Each round streams one model call, forwards its increments to the event channel,
    persists the assistant output and, when tools were requested, executes them one at a
    time through the sandbox before the next round.
    """

    def __init__(
        self,
        client: ModelClient,
        store: ConversationStore,
        catalog: ToolCatalog,
        sandbox: ToolSandbox,
        history: HistoryManager,
        rate_limiter: RateLimiter,
        permission_gate: PermissionGate,
        settings: AgentSettings | None = None,
        platform: InMemoryPlatformStore | None = None,
    ):
        self.client = client
        self.store = store
        self.catalog = catalog
        self.sandbox = sandbox
        self.history = history
        self.rate_limiter = rate_limiter
        self.permission_gate = permission_gate
        self.settings = settings or AgentSettings()
        self.platform = platform

    async def run_turn(
        self,
        conversation_id: str,
        message: str,
        user_id: str,
        role: str,
        tenant_overrides: Mapping[str, Sequence[str]] | None = None,
        current_page: str | None = None,
        events: EventChannel | None = None,
    ) -> TurnResult:
        """Run one user turn to completion.

        Args:
            conversation_id: Conversation to continue (created on first use)
            message: The user's utterance
            user_id: Calling user
            role: Calling user's role
            tenant_overrides: Per-tenant module permission overrides
            current_page: Console page the user is looking at, as a prompt hint
            events: Channel receiving stream events; the turn runs the same without one

        Returns:
            Final text and cumulative usage

        Raises:
            TurnRateLimitedError: Too many turns for this user in the window
            ValueError: The message is too long
            ConversationNotFoundError: The conversation belongs to another user
            ModelCallError: The model call failed
        """
        settings = self.settings
        turn_key = f"ai:chat:{user_id}"
        if not self.rate_limiter.allow(turn_key, settings.turn_rate_limit, settings.rate_limit_window_ms):
            raise TurnRateLimitedError()

        self._validate_message(message)

        conversation = await self.store.get_conversation(conversation_id)
        if conversation is None:
            conversation = await self.store.create_conversation(user_id, conversation_id=conversation_id)
        elif conversation.user_id != user_id:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

        log = turn_logger(logger, conversation_id, user_id)
        log.info(f"Starting turn as {role}")

        tools = self.catalog.list_for(role, tenant_overrides, settings.enabled_tools)
        llm_tools = self.catalog.to_llm_tools(tools)
        system_prompt = build_system_prompt(
            user_name=self._user_name(user_id),
            user_role=role,
            user_permissions=self.permission_gate.summarize(role, tenant_overrides),
            agent_name=settings.agent_name,
            brand_name=settings.brand_name,
            custom_prompt=settings.custom_prompt,
            current_page=current_page,
        )

        history = await self.history.load_context(conversation_id)
        messages = [*history.prior_turns, LLMMessage(role="user", content=message)]

        await self.store.append_message(conversation_id, MessageRole.USER, message)

        context = ToolContext(user_id=user_id, role=role, tenant_overrides=tenant_overrides)
        usage = LLMUsage()
        tools_used: list[str] = []
        texts: list[str] = []
        model = settings.model
        final_text: str | None = None
        stop_reason: str | None = None
        rounds = 0

        while rounds < settings.max_tool_rounds:
            rounds += 1
            log.debug(f"Round {rounds}/{settings.max_tool_rounds}")

            request = ModelRequest(
                system_prompt=system_prompt,
                messages=messages,
                tools=llm_tools,
                model=settings.model,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
            )
            started = time.perf_counter()
            try:
                response = await self._stream_round(request, events, tools_used)
            except Exception as e:
                log.error(f"Model call failed in round {rounds}: {e}", exc_info=True)
                self._emit(events, StreamEvent.error(MODEL_UNAVAILABLE_MESSAGE, "model_error"))
                raise ModelCallError(str(e)) from e
            latency_ms = int((time.perf_counter() - started) * 1000)

            usage.add(response.usage)
            model = response.model or model
            text = response.text
            if text:
                texts.append(text)
            tool_uses = response.tool_uses

            if response.stop_reason == "end_turn" or not tool_uses:
                await self.store.append_message(
                    conversation_id,
                    MessageRole.ASSISTANT,
                    text,
                    token_input=response.usage.input_tokens,
                    token_output=response.usage.output_tokens,
                    latency_ms=latency_ms,
                    model=model,
                )
                final_text = text
                stop_reason = response.stop_reason
                break

            log.info(f"Round {rounds}: model requested {len(tool_uses)} tool(s)")
            assistant_message = await self.store.append_message(
                conversation_id,
                MessageRole.ASSISTANT,
                text,
                tool_calls=[ToolCallRecord(id=call.id, name=call.name, input=call.input) for call in tool_uses],
                token_input=response.usage.input_tokens,
                token_output=response.usage.output_tokens,
                latency_ms=latency_ms,
                model=model,
            )
            assistant_blocks: list[ContentBlock] = [TextBlock(text=text)] if text else []
            assistant_blocks.extend(tool_uses)
            messages.append(LLMMessage(role="assistant", content=assistant_blocks))

            # One at a time, in the order the model requested them.
            results: list[ContentBlock] = []
            for call in tool_uses:
                outcome = await self.sandbox.execute(call, context, assistant_message.id)
                content = json.dumps(outcome.payload, ensure_ascii=False)
                self._emit(events, StreamEvent.tool_result(call.id, call.name, outcome.status.value, outcome.payload))
                await self.store.append_message(
                    conversation_id, MessageRole.TOOL_RESULT, content, tool_call_id=call.id
                )
                results.append(ToolResultBlock(tool_use_id=call.id, content=content))
            messages.append(LLMMessage(role="user", content=results))

        if final_text is None:
            log.warning(f"Reached the round limit ({settings.max_tool_rounds})")
            final_text = "\n\n".join(texts)
            stop_reason = "max_rounds"

        suggestions = generate_followups(tools_used)
        if suggestions:
            self._emit(events, StreamEvent.suggested_followups(suggestions))

        await self._update_title(conversation_id, message)
        await self.history.maybe_schedule_summary(conversation_id)

        log.info(
            f"Turn finished: {rounds} round(s), stop={stop_reason}, "
            f"tokens in={usage.input_tokens} out={usage.output_tokens}, tools={tools_used}"
        )

        return TurnResult(
            conversation_id=conversation_id,
            assistant_text=final_text,
            token_input=usage.input_tokens,
            token_output=usage.output_tokens,
            model=model,
            rounds=rounds,
            stop_reason=stop_reason,
            tools_used=tools_used,
            suggestions=suggestions,
        )

    async def _stream_round(
        self, request: ModelRequest, events: EventChannel | None, tools_used: list[str]
    ) -> LLMResponse:
        """Stream one model call, relaying increments in arrival order."""
        response: LLMResponse | None = None
        async for chunk in self.client.stream_message(request):
            if isinstance(chunk, TextDelta):
                self._emit(events, StreamEvent.text_delta(chunk.text))
            elif isinstance(chunk, ToolUseComplete):
                tools_used.append(chunk.block.name)
                self._emit(events, StreamEvent.tool_use_start(chunk.block.id, chunk.block.name))
            elif isinstance(chunk, StreamFinished):
                response = chunk.response

        if response is None:
            raise ModelCallError("Model stream ended without a final message")
        return response

    def _validate_message(self, message: str) -> None:
        if not message or not message.strip():
            raise ValueError("Message cannot be empty.")
        too_long = len(message) > self.settings.max_message_chars
        if not too_long:
            try:
                self.client.validate_message_tokens(message)
            except ValueError:
                too_long = True
        if too_long:
            raise ValueError("Your message is too long. Please shorten it and try again.")

    async def _update_title(self, conversation_id: str, message: str) -> None:
        if await self.store.count_messages(conversation_id, roles=(MessageRole.USER,)) > 1:
            return
        title = message[:TITLE_MAX_CHARS] + ("..." if len(message) > TITLE_MAX_CHARS else "")
        await self.store.set_title(conversation_id, title)

    def _user_name(self, user_id: str) -> str:
        name = self.platform.user_name(user_id) if self.platform else None
        return name or "User"

    @staticmethod
    def _emit(events: EventChannel | None, event: StreamEvent) -> None:
        if events is not None:
            events.emit(event)


def build_agent_loop(
    client: ModelClient,
    settings: AgentSettings | None = None,
    store: ConversationStore | None = None,
    platform: InMemoryPlatformStore | None = None,
    rate_limiter: RateLimiter | None = None,
    permission_gate: PermissionGate | None = None,
) -> AgentLoop:
    """Wire an agent loop with its catalog, sandbox and history manager."""
    settings = settings or AgentSettings()
    store = store or InMemoryConversationStore()
    platform = platform or InMemoryPlatformStore()
    rate_limiter = rate_limiter or RateLimiter()
    permission_gate = permission_gate or PermissionGate()

    catalog = build_catalog(platform, permission_gate)
    sandbox = ToolSandbox(catalog, permission_gate, rate_limiter, store, settings)
    history = HistoryManager(store, client, settings)

    return AgentLoop(
        client=client,
        store=store,
        catalog=catalog,
        sandbox=sandbox,
        history=history,
        rate_limiter=rate_limiter,
        permission_gate=permission_gate,
        settings=settings,
        platform=platform,
    )
