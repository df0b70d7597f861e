"""Frame-name parsing."""

from __future__ import annotations

from pyplace._constants import FRAME_NAME_PATTERN
from pyplace.exceptions import PlaceMalformedFrameNameError


def parse_frame_index(name: str) -> int:
    """Extract the tile index from a frame name.

    Frame names carry a 13-digit millisecond timestamp followed by ``-``
    and the tile index, e.g. ``1690000000000-3`` or
    ``https://.../canvas-images/1690000000000-3-f-abc.png``. When several
    candidates appear, the last one wins.

    Raises
    ------
    PlaceMalformedFrameNameError
        If *name* does not contain the pattern.
    """
    matches = FRAME_NAME_PATTERN.findall(name or "")
    if not matches:
        raise PlaceMalformedFrameNameError(name)
    _timestamp, index = matches[-1]
    return int(index)
