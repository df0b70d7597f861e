"""High-level async client for canvas ingestion."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp

from pyplace._realtime import RealtimeSubscription, Subscription
from pyplace._transport import HttpTransport
from pyplace.auth import TokenProvider
from pyplace.compositor import Compositor
from pyplace.config import PlaceConfig
from pyplace.downloader import TileDownloader
from pyplace.exceptions import PlaceComposeFailedError, PlaceError
from pyplace.ingestion.controller import IngestionController, IngestionResult
from pyplace.models.artifacts import CompositeRef, TilePlacement
from pyplace.storage import ArtifactStore

_logger = logging.getLogger(__name__)


class PlaceClient:
    """Async client that ingests one canvas epoch per :meth:`run_once`.

    Usage::

        async with PlaceClient(config) as client:
            result = await client.run_once()
    """

    def __init__(
        self,
        config: PlaceConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        subscription_factory: Callable[[aiohttp.ClientSession, PlaceConfig, str], Subscription] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._subscription_factory = subscription_factory
        self._clock = clock
        self._store = ArtifactStore(config.output_dir)
        self._transport: HttpTransport | None = None
        self._auth: TokenProvider | None = None
        self._compositor = Compositor(self._store)
        self._run_lock = asyncio.Lock()

    @property
    def store(self) -> ArtifactStore:
        return self._store

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PlaceClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._http_session, user_agent=self._config.user_agent)
        self._auth = TokenProvider(self._config, self._transport)
        self._store.ensure_root()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._auth = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> HttpTransport:
        if self._transport is None:
            raise PlaceError("Client not initialized. Use 'async with PlaceClient(...) as client:'")
        return self._transport

    def _require_auth(self) -> TokenProvider:
        if self._auth is None:
            raise PlaceError("Client not initialized. Use 'async with PlaceClient(...) as client:'")
        return self._auth

    def _open_subscription(self, token: str) -> Subscription:
        assert self._http_session is not None  # noqa: S101
        if self._subscription_factory is not None:
            return self._subscription_factory(self._http_session, self._config, token)
        return RealtimeSubscription(self._http_session, self._config, token, logger=_logger)

    def _build_controller(self) -> IngestionController:
        downloader = TileDownloader(
            self._require_transport(),
            self._store,
            timeout=self._config.download_timeout,
            retries=self._config.download_retries,
            retry_delay=self._config.download_retry_delay,
        )
        kwargs: dict[str, Any] = {}
        if self._clock is not None:
            kwargs["clock"] = self._clock
        return IngestionController(
            downloader=downloader,
            compositor=self._compositor,
            store=self._store,
            run_timeout=self._config.run_timeout,
            cleanup_partial=self._config.cleanup_partial,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_token(self) -> str:
        """Return a bearer token (see :class:`~pyplace.auth.TokenProvider`)."""
        return await self._require_auth().get_token()

    async def run_once(self) -> IngestionResult:
        """Authenticate, ingest one epoch and composite it.

        Raises
        ------
        PlaceAuthenticationError
            If no token could be obtained; nothing is subscribed.
        PlaceTransportError
            If the realtime connection cannot be opened.
        """
        async with self._run_lock:
            self._config.validate_credentials()
            token = await self.get_token()

            subscription = self._open_subscription(token)
            controller = self._build_controller()
            async with subscription:
                result = await controller.run(subscription)

        if result.succeeded:
            assert result.composite is not None  # noqa: S101
            _logger.info("Composite for epoch %s written to %s", result.composite.epoch_id, result.composite.path)
        else:
            _logger.error("Epoch ended without composite: %s", result.error)
        return result

    async def recompose(self, epoch_id: int) -> CompositeRef:
        """Re-render the composite of *epoch_id* from its stored tiles.

        Raises
        ------
        PlaceComposeFailedError
            If the manifest names a slot whose tile was never stored, or
            rendering fails.
        """
        manifest = self._store.read_manifest(epoch_id)
        stored = self._store.stored_tiles(epoch_id)
        missing = [slot.index for slot in manifest.slots if slot.index not in stored]
        if missing:
            raise PlaceComposeFailedError(f"Epoch {epoch_id} is missing tiles for slots {missing}")

        tiles = [
            TilePlacement(image_path=stored[slot.index], index=slot.index, dx=slot.dx, dy=slot.dy)
            for slot in manifest.slots
            if slot.index is not None and slot.dx is not None and slot.dy is not None
        ]
        return await self._compositor.compose(tiles, epoch_id)
