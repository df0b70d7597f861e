"""Masking of credentials in DEBUG logs.

Two payloads carry secrets: the password-grant form and its token reply,
and the websocket ``connection_init`` with its ``Authorization`` header.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "oauth_secret",
        "auth_token",
        "access_token",
        "refresh_token",
        "authorization",
    }
)


def _mask_string(value: str, max_string: int) -> str:
    scheme, sep, _ = value.partition(" ")
    if sep and scheme.lower() == "bearer":
        return f"Bearer {REDACTED}"
    if len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Copy *value* with secret keys and bearer strings masked.

    Mappings and lists are walked; long strings are truncated to
    *max_string* characters. Other values are returned unchanged.
    """
    if isinstance(value, str):
        return _mask_string(value, max_string)
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if str(key).lower() in _SECRET_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [redact_for_log(item, max_string=max_string) for item in value]
    return value
