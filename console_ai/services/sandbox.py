"""Guarded execution of a single tool call."""

import time
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from console_ai.config import AgentSettings
from console_ai.models.conversation import ToolExecutionStatus
from console_ai.models.llm import ToolUseBlock
from console_ai.services.conversation_store import ConversationStore
from console_ai.services.permissions import PermissionGate
from console_ai.services.rate_limit import RateLimiter
from console_ai.tools.base import ToolContext, ToolResult
from console_ai.tools.registry import ToolCatalog
from console_ai.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SandboxOutcome:
    """Structured result of one tool call, as reported to the model and the client."""

    status: ToolExecutionStatus
    result: ToolResult
    duration_ms: int

    @property
    def payload(self) -> dict[str, Any]:
        return self.result.to_payload()


class ToolSandbox:
    """Runs tool calls behind lookup, authorization, rate limiting and auditing.

    ``execute`` never raises because of the tool: every failure comes back as a failed
    ``ToolResult`` and every call leaves exactly one ToolExecution row.
    """

    def __init__(
        self,
        catalog: ToolCatalog,
        permission_gate: PermissionGate,
        rate_limiter: RateLimiter,
        store: ConversationStore,
        settings: AgentSettings | None = None,
    ):
        self.catalog = catalog
        self.permission_gate = permission_gate
        self.rate_limiter = rate_limiter
        self.store = store
        self.settings = settings or AgentSettings()

    async def execute(self, call: ToolUseBlock, context: ToolContext, message_id: str) -> SandboxOutcome:
        """Execute one tool call on behalf of ``context`` and audit it under ``message_id``."""
        started = time.perf_counter()
        output: Any = None
        error: str | None = None

        tool = self.catalog.find(call.name)
        if tool is None:
            logger.warning(f"Unknown tool requested: {call.name}")
            status, result = ToolExecutionStatus.ERROR, ToolResult.fail(f"tool not found: {call.name}")
        elif not self.permission_gate.has_permission(
            context.role, tool.module, tool.required_permission, context.tenant_overrides
        ):
            logger.warning(
                f"Permission denied for {call.name}: role {context.role} lacks "
                f"{tool.module}:{tool.required_permission}"
            )
            status, result = ToolExecutionStatus.DENIED, ToolResult.fail(f"permission denied for {call.name}")
        elif not self.rate_limiter.allow(
            f"ai:tool:{context.user_id}", self.settings.tool_rate_limit, self.settings.rate_limit_window_ms
        ):
            status, result = (
                ToolExecutionStatus.ERROR,
                ToolResult.fail("tool rate limit reached, please wait a moment before retrying"),
            )
        else:
            try:
                result = await tool.execute(call.input, context)
                if not isinstance(result, ToolResult):
                    raise TypeError(f"{call.name} returned {type(result).__name__} instead of a ToolResult")
                output = result.to_payload()
            except ValidationError as e:
                logger.warning(f"Invalid input for tool {call.name}: {e}")
                result = ToolResult.fail(f"invalid input: {e}")
            except Exception as e:
                logger.error(f"Tool {call.name} failed: {e}", exc_info=True)
                result = ToolResult.fail(str(e) or e.__class__.__name__)

            status = ToolExecutionStatus.SUCCESS if result.success else ToolExecutionStatus.ERROR

        if not result.success:
            error = result.error

        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.debug(f"Tool {call.name} finished with {status} in {duration_ms}ms")

        await self._audit(call, message_id, output, status, duration_ms, error)
        return SandboxOutcome(status=status, result=result, duration_ms=duration_ms)

    async def _audit(
        self,
        call: ToolUseBlock,
        message_id: str,
        output: Any,
        status: ToolExecutionStatus,
        duration_ms: int,
        error: str | None,
    ) -> None:
        try:
            await self.store.record_tool_execution(
                message_id=message_id,
                tool_call_id=call.id,
                tool_name=call.name,
                input=call.input,
                output=output,
                status=status,
                duration_ms=duration_ms,
                error=error,
            )
        except Exception as e:
            # Tool side effects are already applied at this point.
            logger.error(f"Failed to record execution of {call.name}: {e}", exc_info=True)
