"""File-system artifact store.

Layout under ``root``::

    <epoch>-<index>.png        tile images
    <epoch>-manifest.json      slot layout of the epoch
    <epoch>-combined.png       composite image

Writes go to a ``.part`` sibling first and are renamed into place, so a
path that exists always holds a complete file.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path

from pydantic import ValidationError

from pyplace._constants import COMPOSITE_SUFFIX, MANIFEST_SUFFIX, PARTIAL_SUFFIX, TILE_SUFFIX
from pyplace.exceptions import PlaceError
from pyplace.models.artifacts import EpochManifest

_logger = logging.getLogger(__name__)

_TILE_RE = re.compile(r"^(\d+)-(\d+)\.png$")
_EPOCH_FILE_RE = re.compile(r"^(\d+)-")


class ArtifactStore:
    """Tile, manifest and composite files addressed by epoch id."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> Path:
        self._root.mkdir(parents=True, exist_ok=True)
        return self._root

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def tile_path(self, epoch_id: int, index: int) -> Path:
        return self._root / f"{epoch_id}-{index}{TILE_SUFFIX}"

    def composite_path(self, epoch_id: int) -> Path:
        return self._root / f"{epoch_id}{COMPOSITE_SUFFIX}"

    def manifest_path(self, epoch_id: int) -> Path:
        return self._root / f"{epoch_id}{MANIFEST_SUFFIX}"

    @staticmethod
    def partial_path(path: Path) -> Path:
        return path.with_name(path.name + PARTIAL_SUFFIX)

    @contextlib.contextmanager
    def atomic_path(self, final: Path) -> Iterator[Path]:
        """Yield a temporary path that replaces *final* on clean exit."""
        self.ensure_root()
        partial = self.partial_path(final)
        try:
            yield partial
            os.replace(partial, final)
        finally:
            partial.unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Manifests
    # ------------------------------------------------------------------

    def write_manifest(self, manifest: EpochManifest) -> Path:
        final = self.manifest_path(manifest.epoch_id)
        with self.atomic_path(final) as partial:
            partial.write_text(manifest.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
        _logger.debug("Wrote manifest for epoch %s to %s", manifest.epoch_id, final)
        return final

    def read_manifest(self, epoch_id: int) -> EpochManifest:
        path = self.manifest_path(epoch_id)
        try:
            return EpochManifest.model_validate_json(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise PlaceError(f"No manifest for epoch {epoch_id} in {self._root}") from exc
        except ValidationError as exc:
            raise PlaceError(f"Manifest for epoch {epoch_id} is invalid") from exc

    # ------------------------------------------------------------------
    # Epoch inventory
    # ------------------------------------------------------------------

    def stored_tiles(self, epoch_id: int) -> dict[int, Path]:
        """Tile files persisted for *epoch_id*, keyed by slot index."""
        if not self._root.is_dir():
            return {}
        tiles: dict[int, Path] = {}
        for path in self._root.iterdir():
            match = _TILE_RE.match(path.name)
            if match and int(match.group(1)) == epoch_id:
                tiles[int(match.group(2))] = path
        return tiles

    def epochs(self) -> list[int]:
        """All epoch ids with at least one artifact, oldest first."""
        if not self._root.is_dir():
            return []
        found: set[int] = set()
        for path in self._root.iterdir():
            match = _EPOCH_FILE_RE.match(path.name)
            if match:
                found.add(int(match.group(1)))
        return sorted(found)

    def partial_epochs(self) -> list[int]:
        """Epochs with persisted artifacts but no composite."""
        return [epoch_id for epoch_id in self.epochs() if not self.composite_path(epoch_id).exists()]

    def discard_epoch(self, epoch_id: int) -> int:
        """Delete every artifact of *epoch_id*; returns the number removed."""
        removed = 0
        prefix = f"{epoch_id}-"
        for path in list(self._root.iterdir()) if self._root.is_dir() else []:
            if path.name.startswith(prefix) and path.is_file():
                path.unlink(missing_ok=True)
                removed += 1
        _logger.debug("Discarded %s artifact(s) of epoch %s", removed, epoch_id)
        return removed
