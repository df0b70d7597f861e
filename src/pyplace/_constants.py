"""Internal constants shared across the library."""

import re
from importlib.metadata import PackageNotFoundError, version

REALTIME_URL = "wss://gql-realtime-2.reddit.com/query"
# The realtime gateway answers 403 without this Origin.
REALTIME_ORIGIN = "https://hot-potato.reddit.com"
ACCESS_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
CHANNEL_TEAM_OWNER = "AFD2022"

CONFIG_SUBSCRIPTION_ID = "1"
FIRST_CANVAS_SUBSCRIPTION_ID = 2

# Frame names carry ``<13-digit ms timestamp>-<tile index>``.
FRAME_NAME_PATTERN = re.compile(r"(?<!\d)(\d{13})-(\d+)")

TILE_SUFFIX = ".png"
COMPOSITE_SUFFIX = "-combined.png"
MANIFEST_SUFFIX = "-manifest.json"
PARTIAL_SUFFIX = ".part"

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def package_version() -> str:
    try:
        return version("pyplace")
    except PackageNotFoundError:
        return "0+local"
