"""Access token model."""

from __future__ import annotations

import math
import time

from pydantic import BaseModel, ConfigDict, Field


class AccessToken(BaseModel):
    """Bearer token with an optional lifetime.

    Parameters
    ----------
    token : str
        The bearer token sent in ``connection_init``.
    created_at : float
        Monotonic timestamp (``time.monotonic()``) when the token was
        obtained.  Defaults to *now* if not provided.
    ttl : float
        Lifetime in seconds.  ``inf`` when the issuer gave none.
    refreshable : bool
        ``False`` for a configured static token, which is never dropped
        or re-fetched.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    token: str = Field(min_length=1)
    created_at: float = Field(default_factory=time.monotonic)
    ttl: float = math.inf
    refreshable: bool = True

    @classmethod
    def static(cls, token: str) -> AccessToken:
        return cls(token=token, refreshable=False)

    @property
    def is_static(self) -> bool:
        return not self.refreshable

    @property
    def is_expired(self) -> bool:
        """Whether the token has exceeded its TTL."""
        return (time.monotonic() - self.created_at) >= self.ttl

    @property
    def age(self) -> float:
        """Seconds since the token was obtained."""
        return time.monotonic() - self.created_at
