from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import aiohttp
import pytest

from pyplace.auth import TokenProvider
from pyplace.config import PlaceConfig
from pyplace.exceptions import PlaceAuthenticationError, PlaceTransportError

_CREDENTIALS = PlaceConfig(username="user", password="pw", oauth_client="client", oauth_secret="secret")


class _FakeTransport:
    def __init__(self, *responses: dict[str, Any] | Exception) -> None:
        self._responses = list(responses)
        self.requests: list[tuple[str, dict[str, str], aiohttp.BasicAuth | None]] = []

    async def post_form(
        self,
        url: str,
        data: Mapping[str, str],
        *,
        auth: aiohttp.BasicAuth | None = None,
    ) -> dict[str, Any]:
        self.requests.append((url, dict(data), auth))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def download(self, url: str, destination: Path, *, timeout: float | None = None) -> int:
        raise AssertionError("unexpected download")


@pytest.mark.asyncio
async def test_static_token_skips_password_grant() -> None:
    transport = _FakeTransport()
    provider = TokenProvider(PlaceConfig(auth_token="static-token"), transport)

    assert await provider.get_token() == "static-token"
    assert transport.requests == []

    provider.invalidate()
    assert await provider.get_token() == "static-token"


@pytest.mark.asyncio
async def test_password_grant_is_cached() -> None:
    transport = _FakeTransport({"access_token": "fetched", "expires_in": 3600})
    provider = TokenProvider(_CREDENTIALS, transport)

    assert await provider.get_token() == "fetched"
    assert await provider.get_token() == "fetched"

    assert len(transport.requests) == 1
    url, data, auth = transport.requests[0]
    assert url == _CREDENTIALS.access_token_url
    assert data == {"grant_type": "password", "username": "user", "password": "pw"}
    assert auth == aiohttp.BasicAuth("client", "secret")


@pytest.mark.asyncio
async def test_expired_token_is_refreshed() -> None:
    transport = _FakeTransport(
        {"access_token": "first", "expires_in": 0},
        {"access_token": "second", "expires_in": 3600},
    )
    provider = TokenProvider(_CREDENTIALS, transport)

    assert await provider.get_token() == "first"
    assert await provider.get_token() == "second"


@pytest.mark.asyncio
async def test_invalidate_forces_new_grant() -> None:
    transport = _FakeTransport(
        {"access_token": "first", "expires_in": 3600},
        {"access_token": "second", "expires_in": 3600},
    )
    provider = TokenProvider(_CREDENTIALS, transport)
    await provider.get_token()

    provider.invalidate()

    assert await provider.get_token() == "second"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        {"error": "invalid_grant"},
        {"token_type": "bearer"},
        {"access_token": "   "},
        {"access_token": "tok", "expires_in": "later"},
        PlaceTransportError("HTTP 401", status_code=401),
    ],
)
async def test_failed_grant_raises_authentication_error(response: dict[str, Any] | Exception) -> None:
    provider = TokenProvider(_CREDENTIALS, _FakeTransport(response))

    with pytest.raises(PlaceAuthenticationError):
        await provider.get_token()

    assert provider.cached is None


@pytest.mark.asyncio
async def test_missing_credentials_raise_before_any_request() -> None:
    transport = _FakeTransport()
    provider = TokenProvider(PlaceConfig(username="user"), transport)

    with pytest.raises(PlaceAuthenticationError):
        await provider.get_token()

    assert transport.requests == []


@pytest.mark.asyncio
async def test_grant_without_expiry_can_still_be_invalidated() -> None:
    transport = _FakeTransport({"access_token": "first"}, {"access_token": "second"})
    provider = TokenProvider(_CREDENTIALS, transport)

    assert await provider.get_token() == "first"
    assert provider.cached is not None and not provider.cached.is_static

    provider.invalidate()

    assert await provider.get_token() == "second"
