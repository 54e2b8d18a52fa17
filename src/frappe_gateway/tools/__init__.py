"""Gateway operations published as named tools."""

from frappe_gateway.tools.protocol import BaseTool, ToolDefinition, ToolProtocol
from frappe_gateway.tools.registry import ToolRegistry, build_registry

__all__ = ["BaseTool", "ToolDefinition", "ToolProtocol", "ToolRegistry", "build_registry"]
