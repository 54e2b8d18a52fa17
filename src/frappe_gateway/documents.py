# Document operations: CRUD, list and method calls over either channel.
# Created: 2026-02-14

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from frappe_gateway.auth import AuthMethod, CredentialManager
from frappe_gateway.channel import Channel
from frappe_gateway.errors import (
    FrappeApiError,
    FrappeError,
    ValidationError,
    VerificationFailedError,
    translate_error,
)
from frappe_gateway.verification import VerificationEngine

logger = logging.getLogger(__name__)

MAX_CREATE_ATTEMPTS = 3
VERIFICATION_KEY = "_verification"

_DIRECTIONS = ("asc", "desc")

_OPERATION_LEVELS = {"failure": logging.WARNING, "error": logging.ERROR}

# Patched in tests
_sleep = asyncio.sleep


def _require(value: Any, message: str) -> None:
    if not value:
        raise ValidationError(message)


def split_order_by(order_by: str | None, direction: str | None = None) -> dict[str, str] | None:
    """Split ``"creation desc"`` into ``{"field": "creation", "order": "desc"}``.

    An explicit *direction* wins over a trailing token; the default is ``asc``.
    A multi-column clause (``"modified desc, name"``) is passed through whole
    with an empty ``order``.
    """
    if not order_by:
        return None
    if direction and direction.lower() not in _DIRECTIONS:
        raise ValidationError(f"Invalid sort direction: {direction}")

    field = order_by.strip()
    if "," in field:
        if direction:
            raise ValidationError("A sort direction cannot be applied to a multi-column order_by")
        return {"field": field, "order": ""}

    order = "asc"
    head, _, tail = field.rpartition(" ")
    if head and tail.lower() in _DIRECTIONS:
        field, order = head.strip(), tail.lower()
    if direction:
        order = direction.lower()
    return {"field": field, "order": order}


class DocumentOperations:
    """Public document surface bound to one authentication method.

    Token and password variants share every line of validation and error
    handling; only the channel handed over by the CredentialManager differs.
    """

    def __init__(self, credentials: CredentialManager, method: AuthMethod | str = AuthMethod.TOKEN):
        self.credentials = credentials
        self.method = AuthMethod(method)

    def _label(self, operation: str, *args: str) -> str:
        suffix = "_with_auth" if self.method is AuthMethod.PASSWORD else ""
        return f"{operation}{suffix}({', '.join(args)})"

    async def _channel(self) -> Channel:
        return await self.credentials.get_channel(self.method)

    @asynccontextmanager
    async def _translating(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except FrappeError:
            raise
        except Exception as e:
            raise translate_error(e, operation) from e

    # -- read --

    async def get(
        self, doctype: str, name: str, fields: list[str] | None = None
    ) -> dict[str, Any]:
        _require(doctype, "DocType is required")
        _require(name, "Document name is required")
        operation = self._label("get_document", doctype, name)

        async with self._translating(operation):
            channel = await self._channel()
            document = await channel.get_doc(doctype, name)

        if not document:
            raise FrappeApiError(f"Document {doctype}/{name} not found", operation=operation)
        if fields:
            document = {key: document[key] for key in fields if key in document}
        return document

    async def list(
        self,
        doctype: str,
        filters: Any = None,
        fields: list[str] | None = None,
        limit: int | None = None,
        order_by: str | None = None,
        limit_start: int | None = None,
        direction: str | None = None,
    ) -> list[dict[str, Any]]:
        _require(doctype, "DocType is required")
        order = split_order_by(order_by, direction)
        operation = self._label("list_documents", doctype)
        logger.debug(
            "Listing %s filters=%s fields=%s limit=%s order=%s start=%s",
            doctype,
            json.dumps(filters, default=str) if filters else None,
            fields,
            limit,
            order,
            limit_start,
        )

        async with self._translating(operation):
            channel = await self._channel()
            documents = await channel.get_doc_list(
                doctype,
                fields=fields,
                filters=filters,
                order_by=order,
                limit=limit,
                limit_start=limit_start,
            )

        if documents is None:
            raise FrappeApiError(
                f"Invalid response format for listing {doctype}", operation=operation
            )
        logger.debug("Retrieved %d %s documents", len(documents), doctype)
        return documents

    # -- write --

    def _check_create(self, doctype: str, values: dict[str, Any]) -> None:
        _require(doctype, "DocType is required")
        _require(values, "Document values are required")

    async def create(self, doctype: str, values: dict[str, Any]) -> dict[str, Any]:
        """Create a document and verify it can be read back.

        An unconfirmed create is not an error: the document comes back with a
        ``_verification`` report attached instead.
        """
        self._check_create(doctype, values)
        operation = self._label("create_document", doctype)

        async with self._translating(operation):
            channel = await self._channel()
            response = await channel.create_doc(doctype, values) or {}
            verification = await VerificationEngine(channel).verify(doctype, values, response)

        if not verification.success:
            logger.warning("Creation of %s not verified: %s", doctype, verification.message)
            return {**response, VERIFICATION_KEY: verification.to_dict()}
        return response

    async def create_with_retry(
        self,
        doctype: str,
        values: dict[str, Any],
        max_attempts: int = MAX_CREATE_ATTEMPTS,
    ) -> dict[str, Any]:
        """Create with verification, retrying unverified or failed attempts.

        Waits 1s, 2s, 4s... between attempts. Raises the last error once
        *max_attempts* are exhausted.
        """
        self._check_create(doctype, values)
        operation = self._label("create_document", doctype)
        last_error: FrappeError | None = None

        for attempt in range(1, max_attempts + 1):
            logger.info("Attempt %d to create document of type %s", attempt, doctype)
            try:
                channel = await self._channel()
                response = await channel.create_doc(doctype, values) or {}
                verification = await VerificationEngine(channel).verify(doctype, values, response)
            except Exception as e:
                last_error = translate_error(e, operation)
                logger.warning("Error on attempt %d: %s", attempt, last_error)
            else:
                if verification.success:
                    logger.info("Document creation verified on attempt %d", attempt)
                    return {**response, VERIFICATION_KEY: verification.to_dict()}
                last_error = VerificationFailedError(
                    f"Verification failed: {verification.message}",
                    operation=operation,
                    details=verification.to_dict(),
                )
                logger.warning(
                    "Verification failed on attempt %d: %s", attempt, verification.message
                )

            if attempt < max_attempts:
                await _sleep(2 ** (attempt - 1))

        if last_error is None:
            last_error = FrappeApiError(
                f"Failed to create document after {max_attempts} attempts", operation=operation
            )
        raise last_error

    async def create_logged(self, doctype: str, values: dict[str, Any]) -> dict[str, Any]:
        """``create_with_retry`` wrapped in operation records.

        ``failure`` marks a create that was never verified, ``error`` any
        other exception.
        """
        self._check_create(doctype, values)
        operation_id = f"create_{doctype}_{int(time.time() * 1000)}"
        self._log_operation(operation_id, "start", {"doctype": doctype, "values": values})
        try:
            result = await self.create_with_retry(doctype, values)
        except VerificationFailedError as e:
            self._log_operation(
                operation_id, "failure", {"error": str(e), "verification": e.details}
            )
            raise
        except FrappeError as e:
            self._log_operation(operation_id, "error", {"error": str(e)})
            raise
        self._log_operation(
            operation_id,
            "success",
            {"name": result.get("name"), "verification": result.get(VERIFICATION_KEY)},
        )
        return result

    @staticmethod
    def _log_operation(operation_id: str, status: str, data: dict[str, Any]) -> None:
        logger.log(
            _OPERATION_LEVELS.get(status, logging.INFO),
            "[Operation %s] %s: %s",
            operation_id,
            status,
            json.dumps(data, default=str),
        )

    async def update(self, doctype: str, name: str, values: dict[str, Any]) -> dict[str, Any]:
        """Update a document. Updates are not verified."""
        _require(doctype, "DocType is required")
        _require(name, "Document name is required")
        _require(values, "Update values are required")
        operation = self._label("update_document", doctype, name)

        async with self._translating(operation):
            channel = await self._channel()
            response = await channel.update_doc(doctype, name, values)

        if not response:
            raise FrappeApiError(
                f"Invalid response format for updating {doctype}/{name}", operation=operation
            )
        return response

    async def delete(self, doctype: str, name: str) -> Any:
        _require(doctype, "DocType is required")
        _require(name, "Document name is required")
        operation = self._label("delete_document", doctype, name)

        async with self._translating(operation):
            channel = await self._channel()
            return await channel.delete_doc(doctype, name)

    # -- RPC --

    async def call_method(self, method: str, params: dict[str, Any] | None = None) -> Any:
        _require(method, "Method name is required")
        operation = self._label("call_method", method)

        async with self._translating(operation):
            channel = await self._channel()
            return await channel.call(method, params)
