"""Canvas layout models."""

from __future__ import annotations

from pydantic import Field

from pyplace.models._base import PlaceBaseModel

CANVAS_CONFIGURATION_TYPENAME = "CanvasConfiguration"


class SlotConfig(PlaceBaseModel):
    """One ``canvasConfigurations`` entry of a configuration message.

    Fields are optional at the wire boundary; :class:`~pyplace.state.store.CanvasState`
    rejects entries without an index or offsets.
    """

    index: int | None = Field(default=None, ge=0)
    dx: float | None = Field(default=None, allow_inf_nan=False)
    dy: float | None = Field(default=None, allow_inf_nan=False)
