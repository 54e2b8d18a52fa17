# Schema tools: DocType schema, field options, catalogues, health.
# Created: 2026-02-16

from typing import Any

from frappe_gateway.errors import FrappeError
from frappe_gateway.tools.protocol import BaseTool


class GetDocTypeSchemaTool(BaseTool):
    @property
    def name(self) -> str:
        return "get_doctype_schema"

    @property
    def description(self) -> str:
        return "Get the normalized schema (fields, permissions, flags) of a DocType."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"doctype": {"type": "string", "description": "DocType name"}},
            "required": ["doctype"],
        }

    async def execute(self, doctype: str) -> str:
        try:
            schema = await self.gateway.schema.get_schema(doctype)
        except FrappeError as e:
            return self._error(e)
        return self._json(schema.model_dump())


class GetFieldOptionsTool(BaseTool):
    @property
    def name(self) -> str:
        return "get_field_options"

    @property
    def description(self) -> str:
        return "List the allowed values of a Link or Select field."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "doctype": {"type": "string", "description": "DocType name"},
                "fieldname": {"type": "string", "description": "Field name"},
                "filters": {
                    "type": ["object", "array"],
                    "description": "Filters for the linked DocType (Link fields only)",
                },
            },
            "required": ["doctype", "fieldname"],
        }

    async def execute(self, doctype: str, fieldname: str, filters: Any = None) -> str:
        try:
            options = await self.gateway.schema.get_field_options(doctype, fieldname, filters)
        except FrappeError as e:
            return self._error(e)
        return self._json(options)


class GetDocTypesTool(BaseTool):
    @property
    def name(self) -> str:
        return "get_doctypes"

    @property
    def description(self) -> str:
        return "List the names of all DocTypes on the site."

    async def execute(self) -> str:
        try:
            return self._json(await self.gateway.schema.get_all_doctypes())
        except FrappeError as e:
            return self._error(e)


class GetModulesTool(BaseTool):
    @property
    def name(self) -> str:
        return "get_modules"

    @property
    def description(self) -> str:
        return "List the installed modules (Module Def)."

    async def execute(self) -> str:
        try:
            return self._json(await self.gateway.schema.get_all_modules())
        except FrappeError as e:
            return self._error(e)


class CheckHealthTool(BaseTool):
    @property
    def name(self) -> str:
        return "check_health"

    @property
    def description(self) -> str:
        return "Check connectivity to the Frappe site with token and password auth."

    async def execute(self) -> str:
        status = await self.gateway.check_health()
        return self._json(status.model_dump())


SCHEMA_TOOLS = (
    GetDocTypeSchemaTool,
    GetFieldOptionsTool,
    GetDocTypesTool,
    GetModulesTool,
    CheckHealthTool,
)
