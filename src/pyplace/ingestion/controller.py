"""Ingestion state machine.

Consumes realtime events in arrival order, drives :class:`CanvasState`,
starts one download task per slot and triggers the compositor exactly once
when every slot is complete.

States::

    AWAITING_CONFIG -> STREAMING -> DRAINING -> DONE
            \\______________\\_________________/ (abort)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Protocol

from pyplace._realtime import Subscription
from pyplace.exceptions import (
    PlaceComposeFailedError,
    PlaceDownloadFailedError,
    PlaceError,
    PlaceInvalidConfigError,
    PlaceMalformedFrameNameError,
    PlaceRunTimeoutError,
    PlaceTransportError,
    PlaceUnknownSlotError,
)
from pyplace.ingestion.frames import parse_frame_index
from pyplace.models.artifacts import CompositeRef, EpochManifest, StoredTile, TilePlacement
from pyplace.models.canvas import SlotConfig
from pyplace.models.messages import (
    ConfigurationEvent,
    ConnectionErrorEvent,
    FrameEvent,
    RealtimeEvent,
    UnknownEvent,
)
from pyplace.state.epoch import Epoch
from pyplace.state.store import CanvasState
from pyplace.storage import ArtifactStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ControllerState(StrEnum):
    AWAITING_CONFIG = "awaiting_config"
    STREAMING = "streaming"
    DRAINING = "draining"
    DONE = "done"


class TileFetcher(Protocol):
    async def fetch(self, url: str, index: int, epoch_id: int) -> StoredTile:
        ...


class TileCompositor(Protocol):
    async def compose(self, tiles: Sequence[TilePlacement], epoch_id: int) -> CompositeRef:
        ...


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of one ingestion run."""

    state: ControllerState
    epoch: Epoch | None = None
    composite: CompositeRef | None = None
    error: PlaceError | None = None

    @property
    def succeeded(self) -> bool:
        return self.composite is not None


class IngestionController:
    """Single owner of the canvas state for one epoch.

    Every slot mutation and the completion check run under one
    ``asyncio.Lock``; download tasks report back through it, so completions
    may arrive in any order without double-triggering the compositor.
    """

    def __init__(
        self,
        *,
        downloader: TileFetcher,
        compositor: TileCompositor,
        store: ArtifactStore | None = None,
        canvas: CanvasState | None = None,
        run_timeout: float | None = None,
        cleanup_partial: bool = False,
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._downloader = downloader
        self._compositor = compositor
        self._store = store
        self._canvas = canvas if canvas is not None else CanvasState()
        self._run_timeout = run_timeout if run_timeout and run_timeout > 0 else None
        self._cleanup_partial = cleanup_partial
        self._clock = clock
        self._logger = logger or _logger

        self._state = ControllerState.AWAITING_CONFIG
        self._epoch: Epoch | None = None
        self._subscription: Subscription | None = None
        self._lock = asyncio.Lock()
        self._downloads: dict[int, asyncio.Task[None]] = {}
        self._pending_urls: dict[int, str] = {}
        self._error: PlaceError | None = None
        self._close_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def canvas(self) -> CanvasState:
        return self._canvas

    @property
    def epoch(self) -> Epoch | None:
        return self._epoch

    @property
    def downloads_in_flight(self) -> list[int]:
        return sorted(self._downloads)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self, subscription: Subscription) -> IngestionResult:
        """Consume *subscription* until the epoch completes or aborts."""
        if self._state is not ControllerState.AWAITING_CONFIG:
            raise PlaceError("IngestionController instances run once")
        self._subscription = subscription

        try:
            async with asyncio.timeout(self._run_timeout):
                async for event in subscription:
                    await self.handle_event(event)
                    if self._state in (ControllerState.DRAINING, ControllerState.DONE):
                        break
        except PlaceTransportError as exc:
            self._logger.error("Realtime transport failed: %s", exc)
            self._error = exc
        except TimeoutError:
            self._error = PlaceRunTimeoutError(f"Run did not complete within {self._run_timeout}s")
            self._logger.error("%s (pending canvases: %s)", self._error, self._canvas.pending_indices())

        if self._state is not ControllerState.DRAINING:
            await self._close_subscription()
        # The last download may have completed while the subscription closed.
        if self._state is ControllerState.DRAINING:
            if self._error is not None:
                self._logger.info("Every canvas arrived despite: %s", self._error)
                self._error = None
            return await self._drain()

        if self._error is None:
            self._error = PlaceTransportError("Subscription ended before every canvas was received")
            self._logger.error("%s (pending canvases: %s)", self._error, self._canvas.pending_indices())
        await self._finish()
        return IngestionResult(state=self._state, epoch=self._epoch, error=self._error)

    async def handle_event(self, event: RealtimeEvent) -> None:
        """Apply one realtime event."""
        if isinstance(event, ConfigurationEvent):
            await self._on_configuration(event)
        elif isinstance(event, FrameEvent):
            await self._on_frame(event)
        elif isinstance(event, ConnectionErrorEvent):
            await self._on_connection_error(event)
        elif isinstance(event, UnknownEvent):
            self._logger.debug(
                "Ignoring realtime message type=%s typename=%s id=%s",
                event.message_type,
                event.typename,
                event.subscription_id,
            )

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def _on_configuration(self, event: ConfigurationEvent) -> None:
        if self._state not in (ControllerState.AWAITING_CONFIG, ControllerState.STREAMING):
            self._logger.debug("Ignoring canvas config while %s", self._state)
            return

        async with self._lock:
            try:
                created = self._canvas.register_slots(event.slots)
            except PlaceInvalidConfigError as exc:
                self._logger.warning("Dropping canvas config: %s", exc)
                return
            if not len(self._canvas):
                self._logger.warning("Canvas config announced no slots")
                return
            if self._epoch is None:
                self._prepare_store()
                self._epoch = Epoch.start(clock=self._clock)
            self._epoch.expect(created)
            self._write_manifest()
            self._state = ControllerState.STREAMING

        self._logger.info(
            "Received canvas config: %s slot(s), %s new (epoch %s)",
            len(self._canvas),
            len(created),
            self._epoch.epoch_id,
        )
        subscription = self._subscription
        if subscription is None:
            return
        for index in created:
            await subscription.subscribe_canvas(index)

    async def _on_frame(self, event: FrameEvent) -> None:
        if self._state is not ControllerState.STREAMING:
            self._logger.debug("Ignoring frame %s while %s", event.name, self._state)
            return

        try:
            index = parse_frame_index(event.name)
            slot = self._canvas.get(index)
        except (PlaceMalformedFrameNameError, PlaceUnknownSlotError) as exc:
            self._logger.warning("Dropping frame event: %s", exc)
            return

        async with self._lock:
            if slot.completed:
                self._logger.debug("Canvas %s already complete; ignoring %s", index, event.name)
                return
            if index in self._downloads:
                self._pending_urls[index] = event.name
                self._logger.debug("Canvas %s download in flight; holding %s", index, event.name)
                return
            self._canvas.set_url(index, event.name)
            self._start_download(index, event.name)

    async def _on_connection_error(self, event: ConnectionErrorEvent) -> None:
        if self._state in (ControllerState.DRAINING, ControllerState.DONE):
            return
        self._error = PlaceTransportError(
            f"Realtime {event.message_type} (id={event.subscription_id}): {event.payload}",
        )
        self._logger.error("%s", self._error)
        await self._close_subscription()
        await self._finish()

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    def _start_download(self, index: int, url: str) -> None:
        self._logger.info("Requesting image for canvas %s (%s)", index, url)
        task = asyncio.create_task(self._download(index, url), name=f"pyplace-download-{index}")
        self._downloads[index] = task

    async def _download(self, index: int, url: str) -> None:
        assert self._epoch is not None  # noqa: S101
        try:
            stored = await self._downloader.fetch(url, index, self._epoch.epoch_id)
        except PlaceError as exc:
            await self._on_download_failed(index, url, exc)
            return
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("Unexpected error downloading canvas %s", index)
            failure = PlaceDownloadFailedError(f"Could not download canvas {index}: {exc!r}", index=index, url=url)
            await self._on_download_failed(index, url, failure)
            return
        await self._on_download_complete(index, stored)

    async def _on_download_complete(self, index: int, stored: StoredTile) -> None:
        async with self._lock:
            self._downloads.pop(index, None)
            self._pending_urls.pop(index, None)
            if self._state is not ControllerState.STREAMING:
                self._logger.debug("Discarding canvas %s result (run is %s)", index, self._state)
                return
            self._canvas.mark_complete(index, artifact_key=str(stored.path))
            if not self._canvas.is_fully_complete():
                self._logger.debug("Canvas %s complete; waiting for %s", index, self._canvas.pending_indices())
                return
            self._state = ControllerState.DRAINING

        assert self._epoch is not None  # noqa: S101
        self._logger.info(
            "All canvases fetched for epoch %s (%s)",
            self._epoch.epoch_id,
            self._epoch.started_at.isoformat(),
        )
        await self._close_subscription()

    async def _on_download_failed(self, index: int, url: str, exc: PlaceError) -> None:
        async with self._lock:
            self._downloads.pop(index, None)
            if self._state is not ControllerState.STREAMING:
                return
            # A frame announced during the failed fetch is tried next, even
            # when it repeats the same URL.
            pending = self._pending_urls.pop(index, None)
            if pending is not None:
                self._logger.info("Canvas %s failed; fetching latest frame %s", index, pending)
                self._canvas.set_url(index, pending)
                self._start_download(index, pending)
                return
        self._logger.error("Canvas %s will not complete until a new frame arrives: %s", index, exc)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def _drain(self) -> IngestionResult:
        assert self._epoch is not None  # noqa: S101
        await self._close_subscription()
        tiles = [
            TilePlacement(image_path=Path(slot.artifact_key), index=slot.index, dx=slot.dx, dy=slot.dy)
            for slot in self._canvas.snapshot()
        ]
        composite: CompositeRef | None = None
        try:
            composite = await self._compositor.compose(tiles, self._epoch.epoch_id)
        except PlaceComposeFailedError as exc:
            self._error = exc
            self._logger.error(
                "Composite for epoch %s failed; tiles are kept for recompose: %s",
                self._epoch.epoch_id,
                exc,
            )
        finally:
            await self._finish()
        return IngestionResult(state=self._state, epoch=self._epoch, composite=composite, error=self._error)

    async def _close_subscription(self) -> None:
        """Close the subscription once; later callers wait for the same close."""
        if self._subscription is None:
            return
        if self._close_task is None:
            self._close_task = asyncio.create_task(self._do_close(self._subscription))
        await self._close_task

    async def _do_close(self, subscription: Subscription) -> None:
        try:
            await subscription.close()
        except PlaceError as exc:
            self._logger.warning("Closing realtime subscription failed: %s", exc)

    async def _finish(self) -> None:
        self._state = ControllerState.DONE
        tasks = list(self._downloads.values())
        self._downloads.clear()
        self._pending_urls.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self._logger.debug("Cancelled %s in-flight download(s)", len(tasks))

    # ------------------------------------------------------------------
    # Artifact bookkeeping
    # ------------------------------------------------------------------

    def _prepare_store(self) -> None:
        store = self._store
        if store is None:
            return
        partial = store.partial_epochs()
        if not partial:
            return
        if self._cleanup_partial:
            for epoch_id in partial:
                store.discard_epoch(epoch_id)
            self._logger.info("Removed artifacts of %s incomplete epoch(s): %s", len(partial), partial)
        else:
            self._logger.warning("Found incomplete epoch(s) without composite: %s", partial)

    def _write_manifest(self) -> None:
        store = self._store
        epoch = self._epoch
        if store is None or epoch is None:
            return
        manifest = EpochManifest(
            epoch_id=epoch.epoch_id,
            started_at=epoch.started_at,
            slots=[SlotConfig(index=slot.index, dx=slot.dx, dy=slot.dy) for slot in self._canvas],
        )
        try:
            store.write_manifest(manifest)
        except OSError as exc:
            self._logger.warning("Could not write manifest for epoch %s: %s", epoch.epoch_id, exc)
