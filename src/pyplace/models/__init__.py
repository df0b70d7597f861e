"""Data models for realtime gateway payloads and persisted artifacts."""

from pyplace.models._base import PlaceBaseModel
from pyplace.models.artifacts import CompositeRef, EpochManifest, StoredTile, TilePlacement
from pyplace.models.canvas import SlotConfig
from pyplace.models.messages import (
    ConfigurationEvent,
    ConnectionErrorEvent,
    FrameEvent,
    RealtimeEvent,
    UnknownEvent,
    decode_realtime_message,
)
from pyplace.models.token import AccessToken

__all__ = [
    "AccessToken",
    "CompositeRef",
    "ConfigurationEvent",
    "ConnectionErrorEvent",
    "EpochManifest",
    "FrameEvent",
    "PlaceBaseModel",
    "RealtimeEvent",
    "SlotConfig",
    "StoredTile",
    "TilePlacement",
    "UnknownEvent",
    "decode_realtime_message",
]
