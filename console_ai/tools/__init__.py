"""Tools for the conversational AI assistant."""

from console_ai.tools.base import ToolContext, ToolDefinition, ToolResult
from console_ai.tools.registry import ToolCatalog, build_catalog

__all__ = ["ToolCatalog", "ToolContext", "ToolDefinition", "ToolResult", "build_catalog"]
