# Schema normalizer: DocType metadata from two endpoint shapes, one model.
# Created: 2026-02-15
#
# Frappe exposes DocType metadata through a whitelisted method (a bundle of
# doctype info + fields + permissions) and through the DocType document
# itself. Both are mapped through normalize_field() so the resulting field
# list is identical whichever path answered.

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from frappe_gateway.auth import AuthMethod, CredentialManager
from frappe_gateway.channel import Channel
from frappe_gateway.errors import (
    FrappeApiError,
    FrappeError,
    SchemaUnavailableError,
    ValidationError,
    translate_error,
)

logger = logging.getLogger(__name__)

LINK_OPTIONS_LIMIT = 50
DOCTYPE_LIST_LIMIT = 1000
MODULE_LIST_LIMIT = 100


def _flag(value: Any) -> bool:
    """Frappe stores checkboxes as 0/1 (sometimes as strings)."""
    return value == 1 or value == "1"


class FieldDescriptor(BaseModel):
    fieldname: str = ""
    label: str | None = None
    fieldtype: str | None = None
    required: bool = False
    description: str | None = None
    default: Any = None
    options: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_value: Any = None
    max_value: Any = None
    linked_doctype: str | None = None
    child_doctype: str | None = None
    in_list_view: bool = False
    in_standard_filter: bool = False
    in_global_search: bool = False
    bold: bool = False
    hidden: bool = False
    read_only: bool = False
    allow_on_submit: bool = False
    set_only_once: bool = False
    allow_bulk_edit: bool = False
    translatable: bool = False


_DISPLAY_FLAGS = (
    "in_list_view",
    "in_standard_filter",
    "in_global_search",
    "bold",
    "hidden",
    "read_only",
    "allow_on_submit",
    "set_only_once",
    "allow_bulk_edit",
    "translatable",
)


class CanonicalSchema(BaseModel):
    """DocType metadata, independent of the endpoint that produced it."""

    name: str
    label: str
    description: str | None = None
    module: str | None = None
    issingle: bool = False
    istable: bool = False
    custom: bool = False
    is_submittable: bool = False
    quick_entry: bool = False
    track_changes: bool = False
    track_views: bool = False
    has_web_view: bool = False
    allow_rename: bool = False
    allow_copy: bool = False
    allow_import: bool = False
    allow_events_in_timeline: bool = False
    allow_auto_repeat: bool = False
    fields: list[FieldDescriptor] = Field(default_factory=list)
    permissions: list[dict[str, Any]] = Field(default_factory=list)
    autoname: str | None = None
    name_case: str | None = None
    workflow: Any = None
    document_type: str | None = None
    icon: str | None = None
    max_attachments: int | None = None

    def get_field(self, fieldname: str) -> FieldDescriptor | None:
        return next((f for f in self.fields if f.fieldname == fieldname), None)

    def display_field(self) -> str | None:
        """Field used to label links: ``title`` if present, else the first bold field."""
        title = self.get_field("title")
        if title is not None:
            return title.fieldname
        bold = next((f for f in self.fields if f.bold), None)
        return bold.fieldname if bold else None


_DOCTYPE_FLAGS = (
    "issingle",
    "istable",
    "custom",
    "is_submittable",
    "quick_entry",
    "track_changes",
    "track_views",
    "has_web_view",
    "allow_rename",
    "allow_copy",
    "allow_import",
    "allow_events_in_timeline",
    "allow_auto_repeat",
)


def normalize_field(raw: dict[str, Any]) -> FieldDescriptor:
    fieldtype = raw.get("fieldtype")
    options = raw.get("options")
    return FieldDescriptor(
        fieldname=raw.get("fieldname") or "",
        label=raw.get("label"),
        fieldtype=fieldtype,
        required=_flag(raw.get("reqd")),
        description=raw.get("description"),
        default=raw.get("default"),
        options=options,
        min_length=raw.get("min_length"),
        max_length=raw.get("max_length"),
        min_value=raw.get("min_value"),
        max_value=raw.get("max_value"),
        linked_doctype=options if fieldtype == "Link" else None,
        child_doctype=options if fieldtype == "Table" else None,
        **{flag: _flag(raw.get(flag)) for flag in _DISPLAY_FLAGS},
    )


def build_schema(
    doctype: str,
    info: dict[str, Any],
    fields: list[dict[str, Any]],
    permissions: list[dict[str, Any]],
    workflow: Any = None,
) -> CanonicalSchema:
    return CanonicalSchema(
        name=doctype,
        label=info.get("name") or doctype,
        description=info.get("description"),
        module=info.get("module"),
        fields=[normalize_field(f) for f in fields],
        permissions=permissions,
        autoname=info.get("autoname"),
        name_case=info.get("name_case"),
        workflow=workflow,
        document_type=info.get("document_type"),
        icon=info.get("icon"),
        max_attachments=info.get("max_attachments"),
        **{flag: _flag(info.get(flag)) for flag in _DOCTYPE_FLAGS},
    )


def select_options(options: str | None) -> list[dict[str, str]]:
    """Newline-separated Select options as value/label pairs, blanks and repeats dropped."""
    values = dict.fromkeys(line.strip() for line in (options or "").split("\n"))
    return [{"value": v, "label": v} for v in values if v]


class SchemaNormalizer:
    """Fetches DocType schemas and derives field options."""

    def __init__(
        self,
        credentials: CredentialManager,
        method: AuthMethod | str | None = None,
        meta_method: str = "frappe.get_meta",
    ):
        self.credentials = credentials
        self.method = AuthMethod(method) if method else None
        self.meta_method = meta_method

    async def _channel(self, operation: str) -> Channel:
        try:
            return await self.credentials.get_channel(self.method)
        except FrappeError:
            raise
        except Exception as e:
            raise translate_error(e, operation) from e

    async def _from_meta_endpoint(self, channel: Channel, doctype: str) -> CanonicalSchema | None:
        body = await channel.call(self.meta_method, {"doctype": doctype})
        bundle = body.get("message", body) if isinstance(body, dict) else None
        if not isinstance(bundle, dict) or not bundle:
            return None
        # Either {"doctype": {...}, "fields": [...], ...} or a flat DocType document
        info = bundle["doctype"] if isinstance(bundle.get("doctype"), dict) else bundle
        return build_schema(
            doctype,
            info,
            bundle.get("fields") or info.get("fields") or [],
            bundle.get("permissions") or info.get("permissions") or [],
            workflow=bundle.get("workflow"),
        )

    async def _from_doctype_document(self, channel: Channel, doctype: str) -> CanonicalSchema:
        document = await channel.get_doc("DocType", doctype)
        if not document:
            raise FrappeApiError(f"DocType {doctype} not found")
        return build_schema(
            doctype,
            document,
            document.get("fields") or [],
            document.get("permissions") or [],
        )

    async def get_schema(self, doctype: str) -> CanonicalSchema:
        if not doctype:
            raise ValidationError("DocType name is required")
        operation = f"get_doctype_schema({doctype})"
        channel = await self._channel(operation)

        meta_error: Exception | None = None
        try:
            schema = await self._from_meta_endpoint(channel, doctype)
        except Exception as e:
            meta_error = e
            schema = None
            logger.info("Metadata endpoint failed for %s: %s", doctype, e)
        if schema is not None:
            return schema

        logger.info("Falling back to DocType document for %s", doctype)
        try:
            return await self._from_doctype_document(channel, doctype)
        except Exception as e:
            logger.warning("DocType document fetch failed for %s: %s", doctype, e)
            raise SchemaUnavailableError(
                f"Could not retrieve schema for DocType {doctype} using any available method",
                operation=operation,
                details={
                    "meta_error": str(meta_error) if meta_error else "empty response",
                    "document_error": str(e),
                },
            ) from e

    async def get_field_options(
        self, doctype: str, fieldname: str, filters: Any = None
    ) -> list[dict[str, str]]:
        if not doctype:
            raise ValidationError("DocType name is required")
        if not fieldname:
            raise ValidationError("Field name is required")
        operation = f"get_field_options({doctype}, {fieldname})"

        schema = await self.get_schema(doctype)
        field = schema.get_field(fieldname)
        if field is None:
            raise FrappeApiError(
                f"Field {fieldname} not found in DocType {doctype}", operation=operation
            )

        if field.fieldtype == "Link":
            return await self._link_options(field, filters, operation)
        if field.fieldtype == "Select":
            return select_options(field.options)

        logger.debug("Field %s is type %s, no options available", fieldname, field.fieldtype)
        return []

    async def _link_options(
        self, field: FieldDescriptor, filters: Any, operation: str
    ) -> list[dict[str, str]]:
        linked = field.linked_doctype
        if not linked:
            raise FrappeApiError(
                f"Link field {field.fieldname} has no linked DocType specified",
                operation=operation,
            )
        channel = await self._channel(operation)

        try:
            display = (await self.get_schema(linked)).display_field()
            fields = ["name", display] if display else ["name"]
            rows = await channel.get_doc_list(
                linked, fields=fields, filters=filters, limit=LINK_OPTIONS_LIMIT
            )
            if rows is None:
                raise FrappeApiError(f"Invalid response for DocType {linked}")
            return [
                {
                    "value": row["name"],
                    "label": f"{row['name']} - {row[display]}"
                    if display and row.get(display)
                    else row["name"],
                }
                for row in rows
                if row.get("name")
            ]
        except Exception as e:
            logger.warning("Labelled options for %s failed, using names only: %s", linked, e)

        try:
            rows = await channel.get_doc_list(
                linked, fields=["name"], filters=filters, limit=LINK_OPTIONS_LIMIT
            )
        except Exception as e:
            raise translate_error(e, operation) from e
        names = (row.get("name") for row in rows or [])
        return [{"value": name, "label": name} for name in names if name]

    async def get_all_doctypes(self) -> list[str]:
        operation = "get_all_doctypes"
        channel = await self._channel(operation)
        try:
            rows = await channel.get_doc_list("DocType", fields=["name"], limit=DOCTYPE_LIST_LIMIT)
        except FrappeError:
            raise
        except Exception as e:
            raise translate_error(e, operation) from e
        if rows is None:
            raise FrappeApiError("Invalid response format for DocType list", operation=operation)
        return [row["name"] for row in rows if row.get("name")]

    async def get_all_modules(self) -> list[str]:
        operation = "get_all_modules"
        channel = await self._channel(operation)
        try:
            rows = await channel.get_doc_list(
                "Module Def", fields=["name", "module_name"], limit=MODULE_LIST_LIMIT
            )
        except FrappeError:
            raise
        except Exception as e:
            raise translate_error(e, operation) from e
        if rows is None:
            raise FrappeApiError("Invalid response format for Module list", operation=operation)
        names = (row.get("name") or row.get("module_name") for row in rows)
        return [name for name in names if name]
