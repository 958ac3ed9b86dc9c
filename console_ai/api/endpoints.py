"""API endpoints for the console AI assistant."""

import asyncio
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from console_ai import __version__
from console_ai.models.api import (
    ConversationResponse,
    CreateConversationRequest,
    HealthResponse,
    MessageResponse,
    ToolExecutionResponse,
    TurnRequest,
    TurnResponse,
)
from console_ai.models.events import StreamEvent
from console_ai.services.agent import AgentLoop
from console_ai.services.errors import ConversationNotFoundError, ModelCallError, TurnRateLimitedError
from console_ai.services.events import EventChannel
from console_ai.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Streamed turns keep running after the client goes away.
_background_turns: set[asyncio.Task[None]] = set()


def get_agent_loop(request: Request) -> AgentLoop:
    """Agent loop built once at startup."""
    return request.app.state.agent_loop


async def _require_conversation(agent: AgentLoop, conversation_id: str, user_id: str) -> None:
    conversation = await agent.store.get_conversation(conversation_id)
    # Other users' conversations are indistinguishable from missing ones.
    if conversation is None or conversation.user_id != user_id:
        raise HTTPException(status_code=404, detail=f"Conversation not found: {conversation_id}")


@router.post("/conversations", response_model=ConversationResponse, status_code=201, tags=["Conversation"])
async def create_conversation(
    request: CreateConversationRequest, agent: AgentLoop = Depends(get_agent_loop)
) -> ConversationResponse:
    """Create an empty conversation for a user."""
    conversation = await agent.store.create_conversation(request.user_id, tenant=request.tenant)
    logger.info(f"Created conversation {conversation.id} for user {request.user_id}")
    return ConversationResponse.model_validate(conversation.as_dict())


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageResponse], tags=["Conversation"])
async def list_messages(
    conversation_id: str, user_id: str = Query(min_length=1), agent: AgentLoop = Depends(get_agent_loop)
) -> list[MessageResponse]:
    """Replay a conversation's persisted messages in creation order."""
    await _require_conversation(agent, conversation_id, user_id)
    messages = await agent.store.list_messages(conversation_id)
    return [MessageResponse.model_validate(m.as_dict()) for m in messages]


@router.get(
    "/conversations/{conversation_id}/tool-executions",
    response_model=list[ToolExecutionResponse],
    tags=["Conversation"],
)
async def list_tool_executions(
    conversation_id: str, user_id: str = Query(min_length=1), agent: AgentLoop = Depends(get_agent_loop)
) -> list[ToolExecutionResponse]:
    """Audit rows of every tool call made in a conversation."""
    await _require_conversation(agent, conversation_id, user_id)
    executions = await agent.store.list_tool_executions(conversation_id=conversation_id)
    return [ToolExecutionResponse.model_validate(e.as_dict()) for e in executions]


@router.post("/conversations/{conversation_id}/messages", response_model=TurnResponse, tags=["Conversation"])
async def send_message(
    conversation_id: str, request: TurnRequest, agent: AgentLoop = Depends(get_agent_loop)
) -> TurnResponse:
    """Run one turn and return the assistant's final answer."""
    logger.info(f"Processing message for conversation {conversation_id}: {request.message[:50]}...")
    try:
        result = await agent.run_turn(
            conversation_id,
            request.message,
            user_id=request.user_id,
            role=request.role,
            tenant_overrides=request.tenant_overrides,
            current_page=request.current_page,
        )
    except TurnRateLimitedError as e:
        logger.warning(f"Turn rate limit hit for user {request.user_id}")
        raise HTTPException(status_code=429, detail=str(e)) from e
    except ValueError as e:
        logger.warning(f"Message validation error for conversation {conversation_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ModelCallError as e:
        raise HTTPException(status_code=502, detail="The assistant is temporarily unavailable.") from e

    return TurnResponse(
        response=result.assistant_text,
        conversation_id=result.conversation_id,
        token_input=result.token_input,
        token_output=result.token_output,
        model=result.model,
        suggestions=result.suggestions,
    )


@router.post("/conversations/{conversation_id}/stream", tags=["Conversation"])
async def stream_message(
    conversation_id: str, request: TurnRequest, agent: AgentLoop = Depends(get_agent_loop)
) -> StreamingResponse:
    """Run one turn, streaming its events as server-sent events."""
    channel = EventChannel()
    task = asyncio.create_task(_run_streamed_turn(agent, conversation_id, request, channel))
    _background_turns.add(task)
    task.add_done_callback(_background_turns.discard)

    return StreamingResponse(
        channel.sse(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


async def _run_streamed_turn(
    agent: AgentLoop, conversation_id: str, request: TurnRequest, channel: EventChannel
) -> None:
    try:
        await agent.run_turn(
            conversation_id,
            request.message,
            user_id=request.user_id,
            role=request.role,
            tenant_overrides=request.tenant_overrides,
            current_page=request.current_page,
            events=channel,
        )
    except TurnRateLimitedError as e:
        logger.warning(f"Turn rate limit hit for user {request.user_id}")
        channel.emit(StreamEvent.error(str(e), "rate_limited"))
    except ValueError as e:
        channel.emit(StreamEvent.error(str(e), "invalid_request"))
    except ConversationNotFoundError as e:
        channel.emit(StreamEvent.error(str(e), "not_found"))
    except ModelCallError:
        # The loop already reported it on the channel.
        logger.debug(f"Streamed turn for {conversation_id} ended on a model error")
    except Exception as e:
        logger.error(f"Streamed turn failed for conversation {conversation_id}: {e}", exc_info=True)
        channel.emit(StreamEvent.error("An internal error occurred."))
    finally:
        channel.close()


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
