"""State layer.

:class:`~pyplace.state.store.CanvasState` is the single source of truth for
which slots an epoch expects and which of them have a persisted image.
Only the ingestion controller mutates it.
"""

from pyplace.state.epoch import Epoch
from pyplace.state.store import CanvasState, SlotSnapshot, TileSlot

__all__ = ["CanvasState", "Epoch", "SlotSnapshot", "TileSlot"]
