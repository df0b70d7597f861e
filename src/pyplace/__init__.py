"""pyplace - Async ingestion and compositing of a live partitioned canvas."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyplace")
except PackageNotFoundError:
    __version__ = "0+local"
from pyplace.auth import TokenProvider
from pyplace.client import PlaceClient
from pyplace.compositor import Compositor
from pyplace.config import PlaceConfig
from pyplace.downloader import TileDownloader
from pyplace.exceptions import (
    PlaceAuthenticationError,
    PlaceComposeFailedError,
    PlaceConfigError,
    PlaceDownloadFailedError,
    PlaceError,
    PlaceEventError,
    PlaceInvalidConfigError,
    PlaceMalformedFrameNameError,
    PlaceNoUrlError,
    PlaceProtocolError,
    PlaceRunTimeoutError,
    PlaceTransportError,
    PlaceUnknownSlotError,
)
from pyplace.ingestion.controller import ControllerState, IngestionController, IngestionResult
from pyplace.models import (
    AccessToken,
    CompositeRef,
    ConfigurationEvent,
    ConnectionErrorEvent,
    FrameEvent,
    SlotConfig,
    StoredTile,
    TilePlacement,
    UnknownEvent,
)
from pyplace.state import CanvasState, Epoch, SlotSnapshot, TileSlot
from pyplace.storage import ArtifactStore

__all__ = [
    "__version__",
    "AccessToken",
    "ArtifactStore",
    "CanvasState",
    "CompositeRef",
    "Compositor",
    "ConfigurationEvent",
    "ConnectionErrorEvent",
    "ControllerState",
    "Epoch",
    "FrameEvent",
    "IngestionController",
    "IngestionResult",
    "PlaceAuthenticationError",
    "PlaceClient",
    "PlaceComposeFailedError",
    "PlaceConfig",
    "PlaceConfigError",
    "PlaceDownloadFailedError",
    "PlaceError",
    "PlaceEventError",
    "PlaceInvalidConfigError",
    "PlaceMalformedFrameNameError",
    "PlaceNoUrlError",
    "PlaceProtocolError",
    "PlaceRunTimeoutError",
    "PlaceTransportError",
    "PlaceUnknownSlotError",
    "SlotConfig",
    "SlotSnapshot",
    "StoredTile",
    "TileDownloader",
    "TilePlacement",
    "TileSlot",
    "TokenProvider",
    "UnknownEvent",
]
