# Tool protocol: named operations with JSON Schema parameter declarations.
# Created: 2026-02-16

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from frappe_gateway.errors import FrappeApiError, FrappeError

if TYPE_CHECKING:
    from frappe_gateway.gateway import FrappeGateway


@dataclass
class ToolDefinition:
    """Published description of one operation."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema

    def to_schema(self) -> dict[str, Any]:
        """Tool listing entry (``inputSchema`` naming, as MCP clients expect)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters,
        }


class ToolProtocol(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def definition(self) -> ToolDefinition: ...

    async def execute(self, **params: Any) -> str: ...


class BaseTool(ABC):
    """Base class for gateway tools.

    Tools take keyword parameters and return text: JSON for data, or an
    ``Error: ...`` line built from the domain error.
    """

    def __init__(self, gateway: FrappeGateway | None = None):
        self._gateway = gateway

    @property
    def gateway(self) -> FrappeGateway:
        if self._gateway is None:
            from frappe_gateway.gateway import get_gateway

            self._gateway = get_gateway()
        return self._gateway

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    @abstractmethod
    async def execute(self, **params: Any) -> str: ...

    def _error(self, error: FrappeError | str) -> str:
        if isinstance(error, FrappeApiError) and error.status_code:
            return f"Error: {error} (HTTP {error.status_code})"
        return f"Error: {error}"

    def _json(self, data: Any) -> str:
        return json.dumps(data, indent=2, default=str)
