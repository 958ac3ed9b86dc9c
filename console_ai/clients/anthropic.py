"""Anthropic API client with streaming, retries and token estimation."""

import asyncio
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import tiktoken
from anthropic import APIError, AsyncAnthropic
from anthropic.types import Message

from console_ai.models.llm import (
    ContentBlock,
    LLMResponse,
    LLMUsage,
    ModelRequest,
    StreamChunk,
    StreamFinished,
    TextBlock,
    TextDelta,
    ToolUseBlock,
    ToolUseComplete,
)
from console_ai.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = os.getenv("AI_DEFAULT_MODEL", "claude-sonnet-4-6")
    max_tokens: int = int(os.getenv("AI_MAX_TOKENS", "4096"))
    temperature: float = 0.7
    max_retries: int = 3
    retry_delay: float = 1.0

    # Maximum tokens accepted for a single user message
    max_message_tokens: int = 2000


class AnthropicClient:
    """Low-level Anthropic API client.

    ``stream_message`` drives one agent round and is never retried here: a failure
    surfaces to the agent loop. ``create_message`` is used for background work
    (summaries) and retries rate limits and server errors.
    """

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.api_key = anthropic_api_key
        self.client = AsyncAnthropic(api_key=self.api_key, max_retries=0)
        self.config = config or AnthropicConfig()

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    def _request_params(self, request: ModelRequest) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": request.model or self.config.model,
            "max_tokens": request.max_tokens or self.config.max_tokens,
            "temperature": request.temperature if request.temperature is not None else self.config.temperature,
            "messages": [msg.model_dump(exclude_none=True) for msg in request.messages],
        }
        if request.system_prompt:
            params["system"] = request.system_prompt
        if request.tools:
            params["tools"] = [tool.model_dump(exclude_none=True) for tool in request.tools]
        return params

    async def stream_message(self, request: ModelRequest) -> AsyncIterator[StreamChunk]:
        """Stream one model call.

        Yields text deltas and completed tool-use blocks in arrival order, then a single
        ``StreamFinished`` carrying the final response and usage.
        """
        params = self._request_params(request)
        logger.debug(
            f"Streaming {params['model']} with {len(request.messages)} messages, {len(request.tools)} tools"
        )

        async with self.client.messages.stream(**params) as stream:
            async for event in stream:
                if event.type == "text":
                    yield TextDelta(text=event.text)
                elif event.type == "content_block_stop" and event.content_block.type == "tool_use":
                    block = event.content_block
                    yield ToolUseComplete(block=ToolUseBlock(id=block.id, name=block.name, input=dict(block.input)))
            final = await stream.get_final_message()

        response = self._convert_message(final)
        logger.debug(f"Stream finished - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}")
        yield StreamFinished(response=response)

    async def create_message(self, request: ModelRequest) -> LLMResponse:
        """Create a message without streaming, retrying transient failures."""
        params = self._request_params(request)
        logger.debug(f"Making Anthropic API call with model: {params['model']}")
        response: Message = await self._request_with_retries(lambda: self.client.messages.create(**params))
        return self._convert_message(response)

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIError as e:
                status_code = getattr(e, "status_code", None)
                if status_code == 429:
                    retry_after = 60
                    response = getattr(e, "response", None)
                    if response is not None and hasattr(response, "headers"):
                        retry_after = int(response.headers.get("retry-after", 60))

                    if retry_after < 120 and attempt < self.config.max_retries - 1:
                        await asyncio.sleep(retry_after)
                        continue

                elif status_code is not None and status_code >= 500 and attempt < self.config.max_retries - 1:
                    # Server error, retry with exponential backoff
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                raise

        raise Exception(f"Failed to complete request after {self.config.max_retries} attempts")

    def _convert_message(self, message: Message) -> LLMResponse:
        usage = LLMUsage()
        if message.usage:
            usage = LLMUsage(
                input_tokens=message.usage.input_tokens,
                output_tokens=message.usage.output_tokens,
                cache_creation_input_tokens=message.usage.cache_creation_input_tokens or 0,
                cache_read_input_tokens=message.usage.cache_read_input_tokens or 0,
            )
        return LLMResponse(
            content=self._convert_content_blocks(message.content),
            stop_reason=message.stop_reason,
            usage=usage,
            model=message.model,
        )

    def _convert_content_blocks(self, anthropic_content: list[Any]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            block_dict = block.model_dump() if hasattr(block, "model_dump") else dict(block)

            if block_dict.get("type") == "text":
                converted_blocks.append(TextBlock.model_validate(block_dict))
            elif block_dict.get("type") == "tool_use":
                converted_blocks.append(ToolUseBlock.model_validate(block_dict))
            else:
                logger.warning(f"Skipping unsupported content block type: {block_dict.get('type')}")

        return converted_blocks

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed token limits.

        Raises:
            ValueError: If message exceeds token limit
        """
        token_count = self.estimate_message_tokens(message)
        if token_count > self.config.max_message_tokens:
            raise ValueError(
                f"Message exceeds token limit: {token_count} tokens > {self.config.max_message_tokens} limit"
            )


_anthropic_client: AnthropicClient | None = None


def get_anthropic_client() -> AnthropicClient:
    """Get or create Anthropic client instance."""
    global _anthropic_client
    if _anthropic_client is None:
        _anthropic_client = AnthropicClient()
    return _anthropic_client
