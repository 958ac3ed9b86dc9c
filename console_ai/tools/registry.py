"""Capability catalog: the immutable set of tools the assistant may call."""

from collections.abc import Collection, Iterable
from types import MappingProxyType

from console_ai.models.llm import LLMTool
from console_ai.services.permissions import PermissionGate, TenantOverrides
from console_ai.services.platform import InMemoryPlatformStore
from console_ai.tools.base import ToolDefinition
from console_ai.tools.calendar import create_calendar_tools
from console_ai.tools.crm import create_crm_tools
from console_ai.tools.quotes import create_quote_tools
from console_ai.tools.reports import create_report_tools
from console_ai.tools.support import create_support_tools
from console_ai.tools.tasks import create_task_tools
from console_ai.tools.time_tracking import create_time_tools
from console_ai.utils.logging import get_logger

logger = get_logger(__name__)


class ToolCatalog:
    """Read-only registry of tool definitions, filtered per caller."""

    def __init__(self, tools: Iterable[ToolDefinition], permission_gate: PermissionGate):
        """Build the catalog.

        Raises:
            ValueError: If two tools share a name
        """
        by_name: dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in by_name:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            by_name[tool.name] = tool

        self._tools = MappingProxyType(by_name)
        self.permission_gate = permission_gate

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def find(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def list_for(
        self,
        role: str,
        tenant_overrides: TenantOverrides | None = None,
        enabled: Collection[str] | None = None,
    ) -> list[ToolDefinition]:
        """Tools the role may use, optionally narrowed to an enabled subset."""
        return [
            tool
            for tool in self._tools.values()
            if self.permission_gate.has_permission(role, tool.module, tool.required_permission, tenant_overrides)
            and (not enabled or tool.name in enabled)
        ]

    @staticmethod
    def to_llm_tools(tools: list[ToolDefinition]) -> list[LLMTool]:
        """Render tool definitions for the model, caching all definitions via the last one."""
        llm_tools = [
            LLMTool(name=tool.name, description=tool.description, input_schema=tool.get_json_schema())
            for tool in tools
        ]
        if llm_tools:
            llm_tools[-1].cache_control = {"type": "ephemeral"}
        return llm_tools


def build_catalog(store: InMemoryPlatformStore, permission_gate: PermissionGate) -> ToolCatalog:
    """Assemble the catalog from every domain slice."""
    tools = [
        *create_task_tools(store),
        *create_crm_tools(store),
        *create_quote_tools(store),
        *create_calendar_tools(store),
        *create_support_tools(store),
        *create_time_tools(store),
        *create_report_tools(store),
    ]
    catalog = ToolCatalog(tools, permission_gate)
    logger.info(f"Tool catalog built with {len(catalog)} tools")
    return catalog
