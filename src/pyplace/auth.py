"""Bearer token acquisition and caching."""

from __future__ import annotations

import asyncio
import logging

from pyplace._api.access_token import build_token_request, parse_token_response
from pyplace._transport import Transport
from pyplace.config import PlaceConfig
from pyplace.exceptions import PlaceAuthenticationError, PlaceTransportError
from pyplace.models.token import AccessToken

_logger = logging.getLogger(__name__)


class TokenProvider:
    """Hands out a valid bearer token.

    A configured static token is returned as-is and never refreshed.
    Otherwise a password grant is performed and the result is cached until
    its ``expires_in`` elapses.
    """

    def __init__(self, config: PlaceConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport
        self._token: AccessToken | None = AccessToken.static(config.auth_token) if config.auth_token else None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> AccessToken | None:
        return self._token

    def invalidate(self) -> None:
        """Drop a fetched token so the next call re-authenticates."""
        if self._token is not None and not self._token.is_static:
            self._token = None

    async def get_token(self) -> str:
        """Return a bearer token, fetching a new one if needed.

        Raises
        ------
        PlaceAuthenticationError
            If the token endpoint rejects the credentials or is unreachable.
        """
        async with self._lock:
            token = self._token
            if token is not None and not token.is_expired:
                return token.token

            data, client_auth = build_token_request(self._config)
            _logger.info("Authenticating as %s", self._config.username)
            try:
                response = await self._transport.post_form(self._config.access_token_url, data, auth=client_auth)
            except PlaceTransportError as exc:
                raise PlaceAuthenticationError(f"Authentication request failed: {exc}") from exc

            self._token = parse_token_response(response)
            _logger.info("Authentication successful (expires in %.0fs)", self._token.ttl)
            return self._token.token
