# Gateway facade: wires settings, channels and operations together.
# Created: 2026-02-15

from __future__ import annotations

import logging

from frappe_gateway.auth import AuthMethod, CredentialManager
from frappe_gateway.config import Settings, get_settings
from frappe_gateway.documents import DocumentOperations
from frappe_gateway.health import HealthStatus, check_health
from frappe_gateway.schema import SchemaNormalizer

logger = logging.getLogger(__name__)


class FrappeGateway:
    """Entry point for callers: document operations per auth method plus schema access.

    Usage:
        gateway = get_gateway()
        todo = await gateway.documents().create_with_retry("ToDo", {"description": "Call"})
        schema = await gateway.schema.get_schema("ToDo")
    """

    def __init__(self, credentials: CredentialManager, meta_method: str = "frappe.get_meta"):
        self.credentials = credentials
        self._operations = {
            method: DocumentOperations(credentials, method) for method in AuthMethod
        }
        self.schema = SchemaNormalizer(credentials, meta_method=meta_method)

    @classmethod
    def from_settings(cls, settings: Settings) -> FrappeGateway:
        logger.info("Initializing Frappe gateway: %s", settings.describe())
        return cls(CredentialManager.from_settings(settings), meta_method=settings.meta_method)

    def documents(self, method: AuthMethod | str | None = None) -> DocumentOperations:
        """Operations for *method*; the preferred method when omitted."""
        method = AuthMethod(method) if method else self.credentials.preferred_method
        return self._operations[method]

    async def check_health(self) -> HealthStatus:
        return await check_health(self.credentials)

    async def aclose(self) -> None:
        await self.credentials.aclose()

_gateway: FrappeGateway | None = None


def get_gateway() -> FrappeGateway:
    """Get the process-wide gateway, built from environment settings."""
    global _gateway
    if _gateway is None:
        _gateway = FrappeGateway.from_settings(get_settings())
    return _gateway


async def close_gateway() -> None:
    """Close the process-wide gateway's HTTP clients and forget it.

    Call from the host application's shutdown path. A later ``get_gateway()``
    builds a fresh instance.
    """
    global _gateway
    gateway, _gateway = _gateway, None
    if gateway is not None:
        await gateway.aclose()
        logger.debug("Frappe gateway closed")


def reset_gateway() -> None:
    """Forget the process-wide gateway without closing it (test teardown)."""
    global _gateway
    _gateway = None
