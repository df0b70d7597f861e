"""Internal realtime websocket runtime.

Opens the ``graphql-ws`` connection, starts the configuration and per-tile
subscriptions, and yields decoded :mod:`pyplace.models.messages` events in
arrival order.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import aiohttp

from pyplace._api.subscriptions import (
    build_canvas_start,
    build_configuration_start,
    build_connection_init,
)
from pyplace._constants import CONFIG_SUBSCRIPTION_ID, FIRST_CANVAS_SUBSCRIPTION_ID
from pyplace._redact import redact_for_log
from pyplace.config import PlaceConfig
from pyplace.exceptions import PlaceError, PlaceProtocolError, PlaceTransportError
from pyplace.models.messages import RealtimeEvent, decode_realtime_message


class Subscription(Protocol):
    """Event source consumed by the ingestion controller."""

    async def __aenter__(self) -> Any:
        ...

    async def __aexit__(self, *exc: Any) -> None:
        ...

    def __aiter__(self) -> AsyncIterator[RealtimeEvent]:
        ...

    async def subscribe_canvas(self, index: int) -> None:
        ...

    async def close(self) -> None:
        ...


class RealtimeSubscription:
    """aiohttp websocket subscription to the realtime gateway.

    Usage::

        async with RealtimeSubscription(http, config, token) as subscription:
            async for event in subscription:
                ...
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        config: PlaceConfig,
        token: str,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._http = http_session
        self._config = config
        self._token = token
        self._logger = logger or logging.getLogger(__name__)
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._next_id = FIRST_CANVAS_SUBSCRIPTION_ID
        self._canvas_ids: dict[int, str] = {}
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    @property
    def canvas_subscriptions(self) -> dict[int, str]:
        """Subscription id per tile index."""
        return dict(self._canvas_ids)

    async def __aenter__(self) -> RealtimeSubscription:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def __aiter__(self) -> AsyncIterator[RealtimeEvent]:
        return self.events()

    def _require_ws(self) -> aiohttp.ClientWebSocketResponse:
        if self._ws is None:
            raise PlaceError("Subscription not open. Use 'async with RealtimeSubscription(...)'")
        return self._ws

    async def _send(self, message: str) -> None:
        ws = self._require_ws()
        self._logger.debug("WS send %s", redact_for_log(json.loads(message)))
        try:
            await ws.send_str(message)
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            raise PlaceTransportError(f"Realtime send failed: {exc}", url=self._config.realtime_url) from exc

    async def open(self) -> None:
        """Connect, authenticate and start the configuration subscription."""
        url = self._config.realtime_url
        headers = {
            "User-Agent": self._config.user_agent,
            "Origin": self._config.realtime_origin,
        }
        self._logger.info("Connecting to realtime gateway %s", url)
        try:
            self._ws = await self._http.ws_connect(url, headers=headers)
        except aiohttp.WSServerHandshakeError as exc:
            raise PlaceTransportError(
                f"Realtime handshake rejected: HTTP {exc.status}",
                status_code=exc.status,
                url=url,
            ) from exc
        except aiohttp.ClientError as exc:
            raise PlaceTransportError(f"Realtime connection failed: {exc}", url=url) from exc

        self._closing = False
        self._logger.info("Connected to realtime gateway")
        await self._send(build_connection_init(self._token))
        await self._send(build_configuration_start(CONFIG_SUBSCRIPTION_ID, team_owner=self._config.team_owner))

    async def subscribe_canvas(self, index: int) -> None:
        """Start the frame subscription for tile *index* (once per index)."""
        if index in self._canvas_ids:
            return
        subscription_id = str(self._next_id)
        self._next_id += 1
        self._canvas_ids[index] = subscription_id
        self._logger.debug("Subscribing to canvas %s as id=%s", index, subscription_id)
        await self._send(build_canvas_start(subscription_id, index, team_owner=self._config.team_owner))

    async def close(self) -> None:
        """Stop delivery; a pending iteration ends without error."""
        ws = self._ws
        self._closing = True
        if ws is None or ws.closed:
            return
        self._logger.debug("Closing realtime connection")
        await ws.close()

    async def events(self) -> AsyncIterator[RealtimeEvent]:
        """Yield decoded events until the connection closes.

        Raises
        ------
        PlaceTransportError
            On a websocket error that was not caused by :meth:`close`.
        """
        ws = self._require_ws()
        while True:
            try:
                msg = await ws.receive()
            except aiohttp.ClientError as exc:
                if self._closing:
                    return
                raise PlaceTransportError(f"Realtime receive failed: {exc}", url=self._config.realtime_url) from exc

            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                try:
                    event = decode_realtime_message(msg.data)
                except PlaceProtocolError as exc:
                    self._logger.warning("Dropping undecodable realtime message: %s", exc)
                    continue
                yield event
            elif msg.type == aiohttp.WSMsgType.ERROR:
                if self._closing:
                    return
                raise PlaceTransportError(
                    f"Realtime connection error: {ws.exception()}",
                    url=self._config.realtime_url,
                )
            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                if not self._closing:
                    self._logger.info("Realtime connection closed by server (code=%s)", ws.close_code)
                return
