"""Persisted artifact references."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from pyplace.models.canvas import SlotConfig


class StoredTile(BaseModel):
    """A tile image durably written to the artifact store."""

    model_config = ConfigDict(frozen=True)

    epoch_id: int
    index: int
    path: Path
    size_bytes: int = 0
    url: str | None = None


class TilePlacement(BaseModel):
    """A stored tile image and where it goes on the composite."""

    model_config = ConfigDict(frozen=True)

    image_path: Path
    index: int
    dx: float
    dy: float


class CompositeRef(BaseModel):
    """The composite image written for an epoch."""

    model_config = ConfigDict(frozen=True)

    epoch_id: int
    path: Path
    width: int
    height: int
    tile_count: int


class EpochManifest(BaseModel):
    """Slot layout of an epoch, persisted next to its tiles."""

    model_config = ConfigDict(frozen=True)

    epoch_id: int
    started_at: datetime
    slots: list[SlotConfig] = Field(default_factory=list)
