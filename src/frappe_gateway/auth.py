# Credential manager: token channel + password session lifecycle.
# Created: 2026-02-14

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import httpx

from frappe_gateway.channel import Channel, FrappeChannel
from frappe_gateway.config import Settings
from frappe_gateway.errors import AuthenticationError

logger = logging.getLogger(__name__)

# A password session stays valid this long after the last successful login
SESSION_TTL = 30 * 60


class AuthMethod(str, Enum):
    """Authentication scheme used by a channel."""

    TOKEN = "token"  # API key/secret, every request self-signed
    PASSWORD = "password"  # username/password, cookie session


@dataclass
class CredentialSession:
    """Authentication state for one scheme. Mutated only by CredentialManager."""

    method: AuthMethod
    authenticated: bool = False
    last_success_at: float | None = None
    auth_in_progress: bool = False


class CredentialManager:
    """Owns both channels and the password session state machine.

    The token channel is ready by construction. The password channel is
    handed out only after ``authenticate_with_password()`` succeeds; at most
    one login round-trip is ever in flight and concurrent callers share it.
    """

    def __init__(
        self,
        token_channel: Channel,
        password_channel: FrappeChannel,
        *,
        api_key: str | None = None,
        api_secret: str | None = None,
        username: str | None = None,
        password: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.token_channel = token_channel
        self.password_channel = password_channel
        self._username = username
        self._password = password
        self._clock = clock
        self.token_configured = bool(api_key and api_secret)
        self.token_session = CredentialSession(
            method=AuthMethod.TOKEN, authenticated=self.token_configured
        )
        self.password_session = CredentialSession(method=AuthMethod.PASSWORD)
        self._inflight: asyncio.Task[bool] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialManager:
        token = f"{settings.api_key}:{settings.api_secret}" if settings.token_configured else None
        token_channel = FrappeChannel(
            settings.url,
            token=token,
            team_name=settings.team_name,
            timeout=settings.timeout,
            label="token",
        )
        password_channel = FrappeChannel(
            settings.url,
            team_name=settings.team_name,
            timeout=settings.timeout,
            label="password",
        )
        return cls(
            token_channel,
            password_channel,
            api_key=settings.api_key,
            api_secret=settings.api_secret,
            username=settings.username,
            password=settings.password,
        )

    @property
    def password_configured(self) -> bool:
        return bool(self._username and self._password)

    @property
    def preferred_method(self) -> AuthMethod:
        """Token auth when it is configured, password auth otherwise."""
        if self.token_configured or not self.password_configured:
            return AuthMethod.TOKEN
        return AuthMethod.PASSWORD

    def _session_is_fresh(self) -> bool:
        session = self.password_session
        return (
            session.authenticated
            and session.last_success_at is not None
            and self._clock() - session.last_success_at < SESSION_TTL
        )

    async def authenticate_with_password(self) -> bool:
        """Ensure the password session is logged in.

        Returns False when credentials are missing or the login fails for any reason.
        """
        if self._inflight is not None:
            logger.debug("Authentication already in progress, waiting")
            return await asyncio.shield(self._inflight)

        if not self.password_configured:
            logger.warning("Username or password not configured")
            self.password_session.authenticated = False
            return False

        if self._session_is_fresh():
            logger.debug("Using existing authentication session")
            return True

        self.password_session.auth_in_progress = True
        self._inflight = asyncio.ensure_future(self._login())
        return await asyncio.shield(self._inflight)

    async def _login(self) -> bool:
        session = self.password_session
        try:
            logger.info("Logging in to Frappe as %s", self._username)
            await self.password_channel.login(self._username, self._password)
        except httpx.HTTPStatusError as e:
            logger.warning("Login with username/password rejected: %s", e)
            session.authenticated = False
            return False
        except Exception as e:
            logger.warning("Login with username/password failed: %s", e, exc_info=True)
            session.authenticated = False
            return False
        else:
            session.authenticated = True
            session.last_success_at = self._clock()
            logger.info("Password session established")
            return True
        finally:
            session.auth_in_progress = False
            self._inflight = None

    async def get_channel(self, method: AuthMethod | str | None = None) -> Channel:
        """Return a ready channel for *method* (defaults to ``preferred_method``)."""
        method = AuthMethod(method) if method else self.preferred_method
        if method is AuthMethod.TOKEN:
            return self.token_channel
        if not await self.authenticate_with_password():
            raise AuthenticationError(
                "Failed to authenticate with username/password",
                operation="authenticate",
            )
        return self.password_channel

    async def aclose(self) -> None:
        for channel in (self.token_channel, self.password_channel):
            close = getattr(channel, "aclose", None)
            if close is not None:
                await close()
