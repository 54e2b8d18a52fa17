# Frappe channel: authenticated httpx transport for the Frappe REST API.
# Created: 2026-02-14
#
# A channel knows nothing about validation, retries or error translation.
# It issues one HTTP request per call and raises httpx errors as-is.

from __future__ import annotations

import json
import logging
import urllib.parse
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


class Channel(Protocol):
    """Capability consumed by the document and schema layers."""

    async def get_doc(self, doctype: str, name: str) -> dict[str, Any] | None: ...

    async def create_doc(self, doctype: str, values: dict[str, Any]) -> dict[str, Any] | None: ...

    async def update_doc(
        self, doctype: str, name: str, values: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    async def delete_doc(self, doctype: str, name: str) -> Any: ...

    async def get_doc_list(
        self,
        doctype: str,
        *,
        fields: list[str] | None = None,
        filters: Any = None,
        order_by: dict[str, str] | None = None,
        limit: int | None = None,
        limit_start: int | None = None,
    ) -> list[dict[str, Any]] | None: ...

    async def call(self, method: str, params: dict[str, Any] | None = None) -> Any: ...


def _quote(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


class FrappeChannel:
    """One httpx client bound to one authentication scheme.

    With ``token`` set, every request is self-signed with
    ``Authorization: token <key>:<secret>``. Without it the channel relies on
    the session cookie obtained through ``login()``, which the underlying
    client keeps for its lifetime.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        team_name: str = "",
        timeout: float = 30.0,
        label: str = "token",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.label = label
        self._token = token
        self._team_name = team_name
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # -- plumbing --

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json", "X-Press-Team": self._team_name}
            if self._token:
                headers["Authorization"] = f"token {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
                event_hooks={"request": [self._log_request], "response": [self._log_response]},
            )
        return self._client

    async def _log_request(self, request: httpx.Request) -> None:
        logger.debug("[%s] %s %s", self.label, request.method, request.url)

    async def _log_response(self, response: httpx.Response) -> None:
        logger.debug(
            "[%s] %s %s -> %s",
            self.label,
            response.request.method,
            response.request.url,
            response.status_code,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self._get_client().request(method, path, **kwargs)
        resp.raise_for_status()
        if not resp.content:
            return None
        return resp.json()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # -- document API --

    async def get_doc(self, doctype: str, name: str) -> dict[str, Any] | None:
        body = await self._request("GET", f"/api/resource/{_quote(doctype)}/{_quote(name)}")
        return (body or {}).get("data")

    async def create_doc(self, doctype: str, values: dict[str, Any]) -> dict[str, Any] | None:
        body = await self._request("POST", f"/api/resource/{_quote(doctype)}", json=values)
        return (body or {}).get("data")

    async def update_doc(
        self, doctype: str, name: str, values: dict[str, Any]
    ) -> dict[str, Any] | None:
        body = await self._request(
            "PUT", f"/api/resource/{_quote(doctype)}/{_quote(name)}", json=values
        )
        return (body or {}).get("data")

    async def delete_doc(self, doctype: str, name: str) -> Any:
        body = await self._request("DELETE", f"/api/resource/{_quote(doctype)}/{_quote(name)}")
        if isinstance(body, dict) and "message" in body:
            return body["message"]
        return body

    async def get_doc_list(
        self,
        doctype: str,
        *,
        fields: list[str] | None = None,
        filters: Any = None,
        order_by: dict[str, str] | None = None,
        limit: int | None = None,
        limit_start: int | None = None,
    ) -> list[dict[str, Any]] | None:
        params: dict[str, Any] = {}
        if fields:
            params["fields"] = json.dumps(fields)
        if filters:
            params["filters"] = json.dumps(filters)
        if order_by:
            order = order_by.get("order")
            params["order_by"] = f"{order_by['field']} {order}" if order else order_by["field"]
        if limit is not None:
            params["limit_page_length"] = limit
        if limit_start is not None:
            params["limit_start"] = limit_start

        body = await self._request("GET", f"/api/resource/{_quote(doctype)}", params=params)
        return (body or {}).get("data")

    async def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("POST", f"/api/method/{method}", json=params or {})

    async def login(self, username: str, password: str) -> Any:
        """Open a cookie session. Raises ``httpx.HTTPStatusError`` on rejection."""
        return await self._request(
            "POST", "/api/method/login", data={"usr": username, "pwd": password}
        )
