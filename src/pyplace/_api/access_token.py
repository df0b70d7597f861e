"""OAuth access-token endpoint.

Exchanges account credentials for a bearer token with the password grant.
"""

from __future__ import annotations

import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from pyplace._redact import redact_for_log
from pyplace.config import PlaceConfig
from pyplace.exceptions import PlaceAuthenticationError
from pyplace.models.token import AccessToken

_logger = logging.getLogger(__name__)


def build_token_request(config: PlaceConfig) -> tuple[dict[str, str], aiohttp.BasicAuth]:
    """Build the form body and client credentials for a password grant.

    Raises
    ------
    PlaceAuthenticationError
        If any credential is missing.
    """
    if not config.has_credentials:
        raise PlaceAuthenticationError("Password grant requires username, password and OAuth client credentials")
    assert config.username and config.password  # noqa: S101
    assert config.oauth_client and config.oauth_secret  # noqa: S101

    data = {
        "grant_type": "password",
        "username": config.username,
        "password": config.password,
    }
    return data, aiohttp.BasicAuth(config.oauth_client, config.oauth_secret)


def parse_token_response(response: dict[str, Any]) -> AccessToken:
    """Parse the token endpoint reply into an :class:`AccessToken`.

    Raises
    ------
    PlaceAuthenticationError
        If the reply carries an error or no ``access_token``.
    """
    _logger.debug("Access token response: %s", redact_for_log(response))

    if "error" in response:
        raise PlaceAuthenticationError(f"Token endpoint returned error: {response.get('error')}")

    token = response.get("access_token")
    if not isinstance(token, str) or not token.strip():
        raise PlaceAuthenticationError("No access token in token endpoint response")

    expires_in = response.get("expires_in")
    try:
        if expires_in is None:
            return AccessToken(token=token)
        return AccessToken(token=token, ttl=float(expires_in))
    except (TypeError, ValueError, ValidationError) as exc:
        raise PlaceAuthenticationError(f"Invalid expires_in in token response: {expires_in!r}") from exc
