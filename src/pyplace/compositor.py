"""Composite rendering with Pillow."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from PIL import Image, UnidentifiedImageError

from pyplace.exceptions import PlaceComposeFailedError
from pyplace.models.artifacts import CompositeRef, TilePlacement
from pyplace.storage import ArtifactStore

_logger = logging.getLogger(__name__)


def _load_tiles(tiles: Sequence[TilePlacement]) -> list[tuple[TilePlacement, Image.Image]]:
    loaded: list[tuple[TilePlacement, Image.Image]] = []
    for tile in tiles:
        try:
            with Image.open(tile.image_path) as img:
                loaded.append((tile, img.convert("RGBA")))
        except (OSError, UnidentifiedImageError) as exc:
            raise PlaceComposeFailedError(f"Cannot load tile {tile.index} from {tile.image_path}: {exc}") from exc
    return loaded


def compute_bounds(placements: Sequence[tuple[int, int, int, int]]) -> tuple[int, int, int, int]:
    """Return ``(left, top, width, height)`` covering all placements.

    Each placement is ``(x, y, width, height)``. The origin is included,
    so tiles keep their absolute offsets unless one is negative.
    """
    left = min([0, *(x for x, _, _, _ in placements)])
    top = min([0, *(y for _, y, _, _ in placements)])
    right = max([0, *(x + w for x, _, w, _ in placements)])
    bottom = max([0, *(y + h for _, y, _, h in placements)])
    return left, top, right - left, bottom - top


class Compositor:
    """Pastes tiles at their offsets onto one transparent canvas.

    Tiles are drawn in the given order at integer-truncated offsets; a later
    tile overwrites overlapping pixels of an earlier one.
    """

    def __init__(self, store: ArtifactStore) -> None:
        self._store = store

    def render(self, tiles: Sequence[TilePlacement]) -> Image.Image:
        if not tiles:
            raise PlaceComposeFailedError("No tiles to compose")
        loaded = _load_tiles(tiles)
        placements = [(int(tile.dx), int(tile.dy), img.width, img.height) for tile, img in loaded]
        left, top, width, height = compute_bounds(placements)

        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        for (x, y, _, _), (_, img) in zip(placements, loaded, strict=True):
            canvas.paste(img, (x - left, y - top))
        return canvas

    def _compose_sync(self, tiles: Sequence[TilePlacement], epoch_id: int) -> CompositeRef:
        try:
            canvas = self.render(tiles)
        except (ValueError, OverflowError, MemoryError) as exc:
            raise PlaceComposeFailedError(f"Cannot render composite for epoch {epoch_id}: {exc!r}") from exc
        final = self._store.composite_path(epoch_id)
        try:
            with self._store.atomic_path(final) as partial:
                canvas.save(partial, format="PNG")
        except OSError as exc:
            raise PlaceComposeFailedError(f"Cannot write composite {final}: {exc}") from exc
        return CompositeRef(
            epoch_id=epoch_id,
            path=final,
            width=canvas.width,
            height=canvas.height,
            tile_count=len(tiles),
        )

    async def compose(self, tiles: Sequence[TilePlacement], epoch_id: int) -> CompositeRef:
        """Render *tiles* and write the composite artifact for *epoch_id*.

        Raises
        ------
        PlaceComposeFailedError
            If a tile cannot be loaded or the output cannot be written.
        """
        ref = await asyncio.to_thread(self._compose_sync, tiles, epoch_id)
        _logger.info("Combined %s tiles for epoch %s (%sx%s): %s", ref.tile_count, epoch_id, ref.width, ref.height, ref.path)
        return ref
