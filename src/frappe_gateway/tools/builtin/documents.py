# Document tools: get, create, update, delete, list, call_method.
# Created: 2026-02-16

import logging
from typing import Any

from frappe_gateway.documents import DocumentOperations
from frappe_gateway.errors import FrappeError
from frappe_gateway.tools.protocol import BaseTool

logger = logging.getLogger(__name__)

_AUTH_METHOD = {
    "type": "string",
    "enum": ["token", "password"],
    "description": "Authentication to use (default: token if configured, else password)",
}
_DOCTYPE = {"type": "string", "description": "DocType name"}
_NAME = {"type": "string", "description": "Document name (ID)"}


class _DocumentTool(BaseTool):
    def _ops(self, auth_method: str | None) -> DocumentOperations:
        return self.gateway.documents(auth_method)


class GetDocumentTool(_DocumentTool):
    @property
    def name(self) -> str:
        return "get_document"

    @property
    def description(self) -> str:
        return "Retrieve a document by DocType and name."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "doctype": _DOCTYPE,
                "name": _NAME,
                "fields": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Fields to return (default: all)",
                },
                "auth_method": _AUTH_METHOD,
            },
            "required": ["doctype", "name"],
        }

    async def execute(
        self,
        doctype: str,
        name: str,
        fields: list[str] | None = None,
        auth_method: str | None = None,
    ) -> str:
        try:
            document = await self._ops(auth_method).get(doctype, name, fields)
        except FrappeError as e:
            return self._error(e)
        return self._json(document)


class CreateDocumentTool(_DocumentTool):
    @property
    def name(self) -> str:
        return "create_document"

    @property
    def description(self) -> str:
        return (
            "Create a document and verify it can be read back. Unconfirmed "
            "creates are returned with a _verification report. Set retry to "
            "repeat unconfirmed creates up to 3 times."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "doctype": _DOCTYPE,
                "values": {"type": "object", "description": "Field values for the new document"},
                "retry": {
                    "type": "boolean",
                    "description": "Retry with backoff until creation is verified (default: false)",
                    "default": False,
                },
                "auth_method": _AUTH_METHOD,
            },
            "required": ["doctype", "values"],
        }

    async def execute(
        self,
        doctype: str,
        values: dict[str, Any],
        retry: bool = False,
        auth_method: str | None = None,
    ) -> str:
        ops = self._ops(auth_method)
        try:
            if retry:
                document = await ops.create_logged(doctype, values)
            else:
                document = await ops.create(doctype, values)
        except FrappeError as e:
            return self._error(e)
        return self._json(document)


class UpdateDocumentTool(_DocumentTool):
    @property
    def name(self) -> str:
        return "update_document"

    @property
    def description(self) -> str:
        return "Update fields of an existing document. Updates are not verified."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "doctype": _DOCTYPE,
                "name": _NAME,
                "values": {"type": "object", "description": "Field values to change"},
                "auth_method": _AUTH_METHOD,
            },
            "required": ["doctype", "name", "values"],
        }

    async def execute(
        self,
        doctype: str,
        name: str,
        values: dict[str, Any],
        auth_method: str | None = None,
    ) -> str:
        try:
            document = await self._ops(auth_method).update(doctype, name, values)
        except FrappeError as e:
            return self._error(e)
        return self._json(document)


class DeleteDocumentTool(_DocumentTool):
    @property
    def name(self) -> str:
        return "delete_document"

    @property
    def description(self) -> str:
        return "Delete a document by DocType and name."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"doctype": _DOCTYPE, "name": _NAME, "auth_method": _AUTH_METHOD},
            "required": ["doctype", "name"],
        }

    async def execute(self, doctype: str, name: str, auth_method: str | None = None) -> str:
        try:
            result = await self._ops(auth_method).delete(doctype, name)
        except FrappeError as e:
            return self._error(e)
        return self._json({"success": True, "doctype": doctype, "name": name, "result": result})


class ListDocumentsTool(_DocumentTool):
    @property
    def name(self) -> str:
        return "list_documents"

    @property
    def description(self) -> str:
        return (
            "List documents of a DocType. Filters may be a field->value map, a "
            'field->[operator, value] map, or a list of [field, operator, value] '
            'triples. order_by accepts a trailing "asc"/"desc".'
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "doctype": _DOCTYPE,
                "filters": {
                    "type": ["object", "array"],
                    "description": "Filters passed to Frappe unchanged",
                },
                "fields": {"type": "array", "items": {"type": "string"}},
                "limit": {"type": "integer", "description": "Maximum documents to return"},
                "order_by": {"type": "string", "description": 'e.g. "creation desc"'},
                "limit_start": {"type": "integer", "description": "Offset for pagination"},
                "auth_method": _AUTH_METHOD,
            },
            "required": ["doctype"],
        }

    async def execute(
        self,
        doctype: str,
        filters: Any = None,
        fields: list[str] | None = None,
        limit: int | None = None,
        order_by: str | None = None,
        limit_start: int | None = None,
        auth_method: str | None = None,
    ) -> str:
        try:
            documents = await self._ops(auth_method).list(
                doctype,
                filters=filters,
                fields=fields,
                limit=limit,
                order_by=order_by,
                limit_start=limit_start,
            )
        except FrappeError as e:
            return self._error(e)
        return self._json(documents)


class CallMethodTool(_DocumentTool):
    @property
    def name(self) -> str:
        return "call_method"

    @property
    def description(self) -> str:
        return "Call a whitelisted Frappe method (POST /api/method/<method>)."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "method": {"type": "string", "description": "Dotted method path"},
                "params": {"type": "object", "description": "Method arguments"},
                "auth_method": _AUTH_METHOD,
            },
            "required": ["method"],
        }

    async def execute(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        auth_method: str | None = None,
    ) -> str:
        try:
            result = await self._ops(auth_method).call_method(method, params)
        except FrappeError as e:
            return self._error(e)
        return self._json(result)


DOCUMENT_TOOLS = (
    GetDocumentTool,
    CreateDocumentTool,
    UpdateDocumentTool,
    DeleteDocumentTool,
    ListDocumentsTool,
    CallMethodTool,
)
