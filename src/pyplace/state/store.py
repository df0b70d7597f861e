"""Deterministic in-memory canvas state.

This is the only component that tracks slot completion. The ingestion
controller is its single writer.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from pyplace.exceptions import PlaceInvalidConfigError, PlaceNoUrlError, PlaceUnknownSlotError
from pyplace.models.canvas import SlotConfig


class TileSlot(BaseModel):
    """One canvas partition within an epoch."""

    model_config = ConfigDict(extra="forbid")

    index: int
    dx: float
    dy: float
    url: str | None = None
    completed: bool = False
    artifact_key: str | None = None


class SlotSnapshot(BaseModel):
    """Read-only view of a completed slot, handed to the compositor."""

    model_config = ConfigDict(frozen=True)

    artifact_key: str
    index: int
    dx: float
    dy: float


def _coerce_entry(entry: SlotConfig | Mapping[str, Any]) -> SlotConfig:
    if isinstance(entry, SlotConfig):
        return entry
    try:
        return SlotConfig.model_validate(entry)
    except ValidationError as exc:
        raise PlaceInvalidConfigError(f"Invalid slot entry {dict(entry)!r}") from exc


class CanvasState:
    """Mapping from slot index to :class:`TileSlot` for the current epoch.

    Slots are append-only: configuration may be re-delivered and only
    updates offsets, never completion.
    """

    def __init__(self) -> None:
        self._slots: dict[int, TileSlot] = {}
        self._completion_order: list[int] = []

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, index: object) -> bool:
        return index in self._slots

    def __iter__(self) -> Iterator[TileSlot]:
        return iter(self._slots.values())

    @property
    def indices(self) -> list[int]:
        return list(self._slots)

    def get(self, index: int) -> TileSlot:
        slot = self._slots.get(index)
        if slot is None:
            raise PlaceUnknownSlotError(index)
        return slot

    def register_slots(self, entries: Iterable[SlotConfig | Mapping[str, Any]]) -> list[int]:
        """Upsert slots from a configuration event.

        All entries are validated before any is applied. Returns the
        indices that did not exist before, in announcement order.

        Raises
        ------
        PlaceInvalidConfigError
            If an entry lacks ``index``, ``dx`` or ``dy``, or an index
            repeats within the call.
        """
        validated: list[SlotConfig] = []
        seen: set[int] = set()
        for raw in entries:
            entry = _coerce_entry(raw)
            if entry.index is None:
                raise PlaceInvalidConfigError("Slot entry is missing its index")
            if entry.dx is None or entry.dy is None:
                raise PlaceInvalidConfigError(f"Slot {entry.index} is missing dx/dy")
            if entry.index in seen:
                raise PlaceInvalidConfigError(f"Slot {entry.index} is announced twice")
            seen.add(entry.index)
            validated.append(entry)

        created: list[int] = []
        for entry in validated:
            assert entry.index is not None and entry.dx is not None and entry.dy is not None  # noqa: S101
            existing = self._slots.get(entry.index)
            if existing is None:
                self._slots[entry.index] = TileSlot(index=entry.index, dx=entry.dx, dy=entry.dy)
                created.append(entry.index)
            else:
                existing.dx = entry.dx
                existing.dy = entry.dy
        return created

    def set_url(self, index: int, url: str) -> None:
        self.get(index).url = url

    def mark_complete(self, index: int, *, artifact_key: str | None = None) -> None:
        """Mark a slot's image as durably persisted.

        Raises
        ------
        PlaceUnknownSlotError
            If *index* was never registered.
        PlaceNoUrlError
            If the slot has no image URL yet.
        """
        slot = self.get(index)
        if slot.url is None:
            raise PlaceNoUrlError(index)
        if artifact_key is not None:
            slot.artifact_key = artifact_key
        if not slot.completed:
            slot.completed = True
            self._completion_order.append(index)

    def is_fully_complete(self) -> bool:
        """True iff at least one slot exists and every slot is completed."""
        if not self._slots:
            return False
        return all(slot.completed for slot in self._slots.values())

    def pending_indices(self) -> list[int]:
        return [slot.index for slot in self._slots.values() if not slot.completed]

    def snapshot(self) -> list[SlotSnapshot]:
        """Completed slots in the order they completed."""
        result: list[SlotSnapshot] = []
        for index in self._completion_order:
            slot = self._slots[index]
            result.append(
                SlotSnapshot(
                    artifact_key=slot.artifact_key or str(index),
                    index=slot.index,
                    dx=slot.dx,
                    dy=slot.dy,
                )
            )
        return result
