# Health check: probe both authentication paths against the upstream.
# Created: 2026-02-15

from __future__ import annotations

import logging

from pydantic import BaseModel

from frappe_gateway.auth import CredentialManager

logger = logging.getLogger(__name__)


class HealthStatus(BaseModel):
    """Reachability of the upstream through each channel."""

    healthy: bool = False
    token_auth: bool = False
    password_auth: bool = False
    message: str = ""


async def check_health(credentials: CredentialManager) -> HealthStatus:
    """Probe token and password channels independently.

    Healthy when at least one of them can list a DocType.
    """
    status = HealthStatus()

    if credentials.token_configured:
        try:
            await credentials.token_channel.get_doc_list("DocType", limit=1)
            status.token_auth = True
        except Exception as e:
            logger.warning("Token authentication health check failed: %s", e)

    try:
        if await credentials.authenticate_with_password():
            await credentials.password_channel.get_doc_list("DocType", limit=1)
            status.password_auth = True
    except Exception as e:
        logger.warning("Password authentication health check failed: %s", e)

    status.healthy = status.token_auth or status.password_auth
    if status.healthy:
        status.message = (
            f"API connection healthy. Token auth: {status.token_auth}, "
            f"Password auth: {status.password_auth}"
        )
    else:
        status.message = "API connection unhealthy. Both authentication methods failed."
    return status
