"""HTTP transport for token exchange and tile downloads."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

import aiohttp

from pyplace._constants import DOWNLOAD_CHUNK_SIZE
from pyplace._redact import redact_for_log
from pyplace.exceptions import PlaceTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the auth and download modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def post_form(
        self,
        url: str,
        data: Mapping[str, str],
        *,
        auth: aiohttp.BasicAuth | None = None,
    ) -> dict[str, Any]:
        ...

    async def download(self, url: str, destination: Path, *, timeout: float | None = None) -> int:
        ...


class HttpTransport:
    """aiohttp-backed transport sending the configured ``User-Agent``."""

    def __init__(self, http_session: aiohttp.ClientSession, *, user_agent: str) -> None:
        self._http = http_session
        self._user_agent = user_agent

    def _headers(self) -> dict[str, str]:
        return {"user-agent": self._user_agent}

    async def post_form(
        self,
        url: str,
        data: Mapping[str, str],
        *,
        auth: aiohttp.BasicAuth | None = None,
    ) -> dict[str, Any]:
        """POST form-encoded *data* and return the decoded JSON object."""
        _logger.debug("POST %s %s", url, redact_for_log(dict(data)))

        try:
            async with self._http.post(url, data=dict(data), auth=auth, headers=self._headers()) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise PlaceTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except PlaceTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise PlaceTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PlaceTransportError(f"Invalid JSON from {url}: {text[:200]}", url=url) from exc

        if not isinstance(body, dict):
            raise PlaceTransportError(f"Expected a JSON object from {url}", url=url)
        return body

    async def download(self, url: str, destination: Path, *, timeout: float | None = None) -> int:
        """Stream the body of *url* into *destination*; returns bytes written."""
        client_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        written = 0
        _logger.debug("GET %s -> %s", url, destination)

        try:
            async with self._http.get(url, headers=self._headers(), timeout=client_timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise PlaceTransportError(
                        f"HTTP {resp.status} from {url}",
                        status_code=resp.status,
                        url=url,
                    )
                with destination.open("wb") as fh:
                    async for chunk in resp.content.iter_chunked(DOWNLOAD_CHUNK_SIZE):
                        fh.write(chunk)
                        written += len(chunk)
        except PlaceTransportError:
            raise
        except TimeoutError as exc:
            raise PlaceTransportError(f"Download of {url} timed out after {timeout}s", url=url) from exc
        except aiohttp.ClientError as exc:
            raise PlaceTransportError(f"Download of {url} failed: {exc}", url=url) from exc

        return written
