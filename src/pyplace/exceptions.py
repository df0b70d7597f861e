"""Custom exception hierarchy for pyplace."""

from __future__ import annotations


class PlaceError(Exception):
    """Base exception for all pyplace errors."""


class PlaceConfigError(PlaceError):
    """Invalid or missing configuration."""


class PlaceAuthenticationError(PlaceError):
    """Access token could not be obtained."""


class PlaceTransportError(PlaceError):
    """HTTP or websocket failure (network, non-2xx, closed connection)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class PlaceProtocolError(PlaceError):
    """A realtime message could not be decoded into a known shape."""


class PlaceEventError(PlaceError):
    """A single event could not be applied.

    These are logged and the event is dropped; they never abort a run.
    """


class PlaceInvalidConfigError(PlaceEventError):
    """A configuration event carried malformed slot entries."""


class PlaceUnknownSlotError(PlaceEventError):
    """A slot index that was never registered."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Unknown slot index {index}")


class PlaceNoUrlError(PlaceEventError):
    """A slot was marked complete before it had an image URL."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Slot {index} has no image URL")


class PlaceMalformedFrameNameError(PlaceEventError):
    """A frame name does not carry ``<timestamp>-<index>``."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Cannot extract tile index from frame name {name!r}")


class PlaceDownloadFailedError(PlaceError):
    """A tile image could not be downloaded or persisted."""

    def __init__(self, message: str, *, index: int, url: str) -> None:
        self.index = index
        self.url = url
        super().__init__(message)


class PlaceComposeFailedError(PlaceError):
    """The composite image could not be rendered or written.

    Tile artifacts are left in place so the epoch can be re-composited.
    """


class PlaceRunTimeoutError(PlaceError):
    """An ingestion run did not complete within the configured time."""
