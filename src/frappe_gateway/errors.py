"""Domain errors and translation of raw transport failures.

Every failure that leaves the gateway is a ``FrappeError``. Validation
problems are raised directly by the operation that detects them; everything
else passes through ``translate_error`` so callers never see a raw httpx
exception.

Created: 2026-02-14
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

__all__ = [
    "AuthenticationError",
    "FrappeApiError",
    "FrappeError",
    "SchemaUnavailableError",
    "UpstreamTransportError",
    "ValidationError",
    "VerificationFailedError",
    "translate_error",
    "unwrap_json",
]

logger = logging.getLogger(__name__)


class FrappeError(Exception):
    """Base class for all gateway errors."""


class ValidationError(FrappeError, ValueError):
    """A required argument was missing or empty. Never retried."""


class FrappeApiError(FrappeError):
    """An operation against the upstream failed."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        status_code: int | None = None,
        endpoint: str | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.status_code = status_code
        self.endpoint = endpoint
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "operation": self.operation,
            "status_code": self.status_code,
            "endpoint": self.endpoint,
        }


class UpstreamTransportError(FrappeApiError):
    """Network or HTTP failure, always built by ``translate_error``."""


class SchemaUnavailableError(FrappeApiError):
    """Neither the metadata endpoint nor the DocType document could be read."""


class AuthenticationError(FrappeApiError):
    """The password channel was requested but login did not succeed."""


class VerificationFailedError(FrappeApiError):
    """A create was acknowledged but could not be confirmed upstream."""


def unwrap_json(value: Any) -> Any:
    """Recursively decode JSON-encoded strings, keeping literals as-is.

    Frappe nests JSON inside JSON strings (``_server_messages`` is a JSON list
    of JSON objects). Strings that do not decode to a list or object are
    returned unchanged.
    """
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return value
        if isinstance(parsed, (dict, list)):
            return unwrap_json(parsed)
        return value
    if isinstance(value, list):
        return [unwrap_json(item) for item in value]
    if isinstance(value, dict):
        return {key: unwrap_json(item) for key, item in value.items()}
    return value


def _request_url(error: httpx.HTTPError) -> str:
    try:
        return str(error.request.url)
    except RuntimeError:
        # .request is unset when the error was raised outside a client call
        return "unknown"


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _server_message_text(raw: Any) -> tuple[str, list[Any]]:
    messages = unwrap_json(raw)
    if not isinstance(messages, list):
        messages = [messages]
    texts = []
    for msg in messages:
        if isinstance(msg, dict) and msg.get("message"):
            texts.append(str(msg["message"]))
        else:
            texts.append(str(msg))
    return "; ".join(texts), messages


def _from_http_error(error: httpx.HTTPError, operation: str) -> UpstreamTransportError:
    endpoint = _request_url(error)
    status_code = None
    message = f"Frappe API error during {operation}: {error}"
    details = None

    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        data = _response_body(error.response)
        if isinstance(data, dict):
            if data.get("exception"):
                message = f"Frappe exception during {operation}: {data['exception']}"
                details = data
            elif data.get("_server_messages"):
                text, messages = _server_message_text(data["_server_messages"])
                message = f"Frappe server message during {operation}: {text}"
                details = {"server_messages": messages}
            elif data.get("message"):
                message = f"Frappe API error during {operation}: {data['message']}"
                details = data

    return UpstreamTransportError(
        message,
        operation=operation,
        status_code=status_code,
        endpoint=endpoint,
        details=details,
    )


def translate_error(error: BaseException, operation: str) -> FrappeError:
    """Convert *error* into a domain error labelled with *operation*.

    Errors that are already ``FrappeError`` instances pass through unchanged.
    """
    if isinstance(error, FrappeError):
        return error
    if isinstance(error, httpx.HTTPError):
        translated = _from_http_error(error, operation)
        logger.debug(
            "Translated %s during %s: status=%s endpoint=%s",
            type(error).__name__,
            operation,
            translated.status_code,
            translated.endpoint,
        )
        return translated
    return FrappeApiError(f"Error during {operation}: {error}", operation=operation)
