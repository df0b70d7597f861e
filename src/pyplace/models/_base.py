"""Base model for realtime gateway payloads.

Every wire model inherits from :class:`PlaceBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase keys (``canvasConfigurations``,
  ``canvasWidth``) map automatically to snake_case fields.
* Unknown keys are ignored; the gateway adds fields freely.
* A ``typename`` field bound to the GraphQL ``__typename`` key.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PlaceBaseModel(BaseModel):
    """Base for realtime gateway models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    typename: str | None = Field(default=None, alias="__typename")
    """GraphQL ``__typename`` of the object, when sent."""
