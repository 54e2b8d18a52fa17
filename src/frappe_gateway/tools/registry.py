# Tool registry: lookup and dispatch of published operations.
# Created: 2026-02-16

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from frappe_gateway.tools.protocol import ToolProtocol

if TYPE_CHECKING:
    from frappe_gateway.gateway import FrappeGateway

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry of gateway tools.

    Usage:
        registry = build_registry(gateway)
        definitions = registry.get_definitions()
        result = await registry.execute("get_document", doctype="ToDo", name="TODO-0001")
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolProtocol] = {}

    def register(self, tool: ToolProtocol) -> None:
        self._tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)

    def get(self, name: str) -> ToolProtocol | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def get_definitions(self) -> list[dict[str, Any]]:
        return [tool.definition.to_schema() for tool in self._tools.values()]

    async def execute(self, name: str, /, **params: Any) -> str:
        """Run a tool by name. Unknown names and unexpected failures become error text."""
        tool = self._tools.get(name)
        if not tool:
            return f"Error: Tool '{name}' not found. Available: {list(self._tools)}"

        try:
            logger.debug("Executing %s with %s", name, params)
            result = await tool.execute(**params)
        except TypeError as e:
            # Missing or unexpected keyword arguments
            logger.warning("Bad arguments for %s: %s", name, e)
            return f"Error: Invalid arguments for {name}: {e}"
        except Exception as e:
            logger.error("%s failed: %s", name, e, exc_info=True)
            return f"Error executing {name}: {e}"

        log_result = result[:200] + "..." if len(result) > 200 else result
        logger.debug("%s result: %s", name, log_result)
        return result

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)


def build_registry(gateway: FrappeGateway | None = None) -> ToolRegistry:
    """Registry with every document and schema tool bound to *gateway*."""
    from frappe_gateway.tools.builtin.documents import DOCUMENT_TOOLS
    from frappe_gateway.tools.builtin.schema import SCHEMA_TOOLS

    registry = ToolRegistry()
    for tool_cls in (*DOCUMENT_TOOLS, *SCHEMA_TOOLS):
        registry.register(tool_cls(gateway))
    return registry
