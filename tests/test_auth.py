# Tests for auth.py: password session state machine and channel selection.
# Created: 2026-02-16

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import make_http_error
from frappe_gateway.auth import SESSION_TTL, AuthMethod, CredentialManager
from frappe_gateway.channel import FrappeChannel
from frappe_gateway.config import Settings
from frappe_gateway.errors import AuthenticationError


class TestAuthenticateWithPassword:
    async def test_missing_credentials_is_policy_false(self, token_channel, password_channel):
        manager = CredentialManager(token_channel, password_channel, username="admin")

        assert await manager.authenticate_with_password() is False
        assert manager.password_session.authenticated is False
        password_channel.login.assert_not_called()

    async def test_success_marks_session(self, credentials, password_channel, clock):
        assert await credentials.authenticate_with_password() is True

        session = credentials.password_session
        assert session.authenticated is True
        assert session.last_success_at == clock.now
        assert session.auth_in_progress is False
        password_channel.login.assert_awaited_once_with("admin@example.com", "pw")

    async def test_fresh_session_is_reused(self, credentials, password_channel, clock):
        await credentials.authenticate_with_password()
        clock.advance(SESSION_TTL - 1)

        assert await credentials.authenticate_with_password() is True
        assert password_channel.login.await_count == 1

    async def test_expired_session_logs_in_again(self, credentials, password_channel, clock):
        await credentials.authenticate_with_password()
        clock.advance(SESSION_TTL + 1)

        assert await credentials.authenticate_with_password() is True
        assert password_channel.login.await_count == 2
        assert credentials.password_session.last_success_at == clock.now

    async def test_rejection_returns_false_without_timestamp(self, credentials, password_channel):
        password_channel.login.side_effect = make_http_error(401, {"message": "Invalid login"})

        assert await credentials.authenticate_with_password() is False
        assert credentials.password_session.authenticated is False
        assert credentials.password_session.last_success_at is None
        assert credentials.password_session.auth_in_progress is False

    async def test_failed_attempt_does_not_extend_window(
        self, credentials, password_channel, clock
    ):
        await credentials.authenticate_with_password()
        first_success = clock.now
        clock.advance(SESSION_TTL + 1)
        password_channel.login.side_effect = make_http_error(401)

        assert await credentials.authenticate_with_password() is False
        assert credentials.password_session.last_success_at == first_success

        # Still stale: the next call tries again instead of trusting the old session
        password_channel.login.side_effect = None
        assert await credentials.authenticate_with_password() is True
        assert password_channel.login.await_count == 3


class TestConcurrentAuthentication:
    async def test_single_login_for_concurrent_callers(self, credentials, password_channel):
        gate = asyncio.Event()

        async def slow_login(username, password):
            await gate.wait()
            return {"message": "Logged In"}

        password_channel.login.side_effect = slow_login

        first = asyncio.create_task(credentials.authenticate_with_password())
        second = asyncio.create_task(credentials.authenticate_with_password())
        await asyncio.sleep(0)
        assert credentials.password_session.auth_in_progress is True

        gate.set()
        results = await asyncio.gather(first, second)

        assert results == [True, True]
        assert password_channel.login.await_count == 1
        assert credentials.password_session.auth_in_progress is False

    async def test_concurrent_callers_share_failure(self, credentials, password_channel):
        gate = asyncio.Event()

        async def rejected_login(username, password):
            await gate.wait()
            raise make_http_error(401)

        password_channel.login.side_effect = rejected_login

        tasks = [asyncio.create_task(credentials.authenticate_with_password()) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()

        assert await asyncio.gather(*tasks) == [False, False, False]
        assert password_channel.login.await_count == 1


class TestChannelSelection:
    async def test_token_channel_needs_no_login(self, credentials, token_channel, password_channel):
        assert await credentials.get_channel(AuthMethod.TOKEN) is token_channel
        password_channel.login.assert_not_called()

    async def test_password_channel_after_login(self, credentials, password_channel):
        assert await credentials.get_channel("password") is password_channel
        password_channel.login.assert_awaited_once()

    async def test_password_channel_login_failure(self, credentials, password_channel):
        password_channel.login.side_effect = make_http_error(401)
        with pytest.raises(AuthenticationError, match="username/password"):
            await credentials.get_channel(AuthMethod.PASSWORD)

    def test_preferred_method_token_when_configured(self, credentials):
        assert credentials.preferred_method is AuthMethod.TOKEN
        assert credentials.token_session.authenticated is True

    def test_preferred_method_falls_back_to_password(self):
        manager = CredentialManager(AsyncMock(), AsyncMock(), username="u", password="p")
        assert manager.token_configured is False
        assert manager.token_session.authenticated is False
        assert manager.preferred_method is AuthMethod.PASSWORD

    async def test_aclose_closes_both_channels(self, credentials, token_channel, password_channel):
        await credentials.aclose()
        token_channel.aclose.assert_awaited_once()
        password_channel.aclose.assert_awaited_once()


class TestFromSettings:
    def test_builds_token_and_password_channels(self):
        settings = Settings(
            url="http://frappe.test/",
            api_key="key",
            api_secret="secret",
            username="u",
            password="p",
            team_name="acme",
        )
        manager = CredentialManager.from_settings(settings)

        assert manager.token_configured is True
        assert manager.password_configured is True
        assert manager.token_channel.base_url == "http://frappe.test"
        assert manager.token_channel.label == "token"
        assert manager.password_channel.label == "password"


class TestLoginTransportFailures:
    """Login failures that are not HTTP status errors still resolve to False."""

    @staticmethod
    def _manager(responses, clock):
        replies = iter(responses)

        def handler(request: httpx.Request) -> httpx.Response:
            return next(replies)

        channel = FrappeChannel(
            "http://frappe.test", label="password", transport=httpx.MockTransport(handler)
        )
        manager = CredentialManager(
            AsyncMock(), channel, username="admin@example.com", password="pw", clock=clock
        )
        return manager, channel

    async def test_non_json_login_page_returns_false(self, clock):
        manager, channel = self._manager(
            [httpx.Response(200, text="<html>proxy</html>")], clock
        )

        assert await manager.authenticate_with_password() is False
        assert manager.password_session.authenticated is False
        assert manager.password_session.auth_in_progress is False
        await channel.aclose()

    async def test_non_json_relogin_clears_previous_session(self, clock):
        manager, channel = self._manager(
            [
                httpx.Response(200, json={"message": "Logged In"}),
                httpx.Response(200, text="<html>proxy</html>"),
                httpx.Response(200, text="<html>proxy</html>"),
            ],
            clock,
        )

        assert await manager.authenticate_with_password() is True
        clock.advance(SESSION_TTL + 1)

        assert await manager.authenticate_with_password() is False
        assert manager.password_session.authenticated is False
        with pytest.raises(AuthenticationError):
            await manager.get_channel(AuthMethod.PASSWORD)
        await channel.aclose()

    async def test_connection_error_returns_false(self, clock, password_channel):
        password_channel.login.side_effect = httpx.ConnectError("Connection refused")
        manager = CredentialManager(
            AsyncMock(), password_channel, username="u", password="p", clock=clock
        )

        assert await manager.authenticate_with_password() is False
