"""Tile image downloads."""

from __future__ import annotations

import asyncio
import logging

from pyplace._transport import Transport
from pyplace.exceptions import PlaceDownloadFailedError, PlaceTransportError
from pyplace.models.artifacts import StoredTile
from pyplace.storage import ArtifactStore

_logger = logging.getLogger(__name__)


class TileDownloader:
    """Fetches one tile image and persists it under ``(epoch_id, index)``.

    Each attempt streams into a ``.part`` file that replaces the artifact
    only when the body was received completely, so re-fetching the same key
    is safe.
    """

    def __init__(
        self,
        transport: Transport,
        store: ArtifactStore,
        *,
        timeout: float | None = 60.0,
        retries: int = 2,
        retry_delay: float = 1.0,
    ) -> None:
        self._transport = transport
        self._store = store
        self._timeout = timeout
        self._retries = max(0, retries)
        self._retry_delay = max(0.0, retry_delay)

    async def fetch(self, url: str, index: int, epoch_id: int) -> StoredTile:
        """Download *url* into the tile artifact for ``(epoch_id, index)``.

        Raises
        ------
        PlaceDownloadFailedError
            When every attempt failed.
        """
        destination = self._store.tile_path(epoch_id, index)
        attempts = self._retries + 1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                with self._store.atomic_path(destination) as partial:
                    size = await self._transport.download(url, partial, timeout=self._timeout)
            except (PlaceTransportError, OSError) as exc:
                last_error = exc
                _logger.warning(
                    "Download of canvas %s failed (attempt %s/%s): %s",
                    index,
                    attempt,
                    attempts,
                    exc,
                )
                if attempt < attempts and self._retry_delay:
                    await asyncio.sleep(self._retry_delay * attempt)
                continue

            _logger.info("Fetched canvas %s (saved to %s)", index, destination)
            return StoredTile(epoch_id=epoch_id, index=index, path=destination, size_bytes=size, url=url)

        raise PlaceDownloadFailedError(
            f"Could not download canvas {index} from {url}: {last_error}",
            index=index,
            url=url,
        ) from last_error
