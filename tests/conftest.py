# Shared fixtures for frappe_gateway tests.
# Created: 2026-02-16

from unittest.mock import AsyncMock

import httpx
import pytest

from frappe_gateway.auth import CredentialManager
from frappe_gateway.config import get_settings
from frappe_gateway.gateway import reset_gateway

BASE_URL = "http://frappe.test"


def make_http_error(status: int, body=None, path: str = "/api/resource/ToDo"):
    """Build a real httpx.HTTPStatusError with an optional JSON body."""
    request = httpx.Request("GET", f"{BASE_URL}{path}")
    if body is None:
        response = httpx.Response(status, request=request)
    else:
        response = httpx.Response(status, json=body, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _reset_singletons():
    get_settings.cache_clear()
    yield
    reset_gateway()
    get_settings.cache_clear()


@pytest.fixture
def token_channel():
    return AsyncMock()


@pytest.fixture
def password_channel():
    return AsyncMock()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def credentials(token_channel, password_channel, clock):
    return CredentialManager(
        token_channel,
        password_channel,
        api_key="key",
        api_secret="secret",
        username="admin@example.com",
        password="pw",
        clock=clock,
    )
