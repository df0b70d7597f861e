"""Realtime gateway messages.

The gateway speaks the ``graphql-ws`` protocol. Every inbound frame is
decoded into exactly one tagged event at this boundary:

* :class:`ConfigurationEvent`: canvas layout (``ConfigurationMessageData``)
* :class:`FrameEvent`: current full-frame image name for one tile
  (``FullFrameMessageData``)
* :class:`ConnectionErrorEvent`: ``connection_error`` / ``error`` frames
* :class:`UnknownEvent`: anything else (acks, keep-alives, diff frames)

Frames that claim a known shape but fail validation raise
:class:`~pyplace.exceptions.PlaceProtocolError`.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pyplace.exceptions import PlaceProtocolError
from pyplace.models._base import PlaceBaseModel
from pyplace.models.canvas import CANVAS_CONFIGURATION_TYPENAME, SlotConfig

CONFIGURATION_TYPENAME = "ConfigurationMessageData"
FULL_FRAME_TYPENAME = "FullFrameMessageData"

_ERROR_MESSAGE_TYPES = frozenset({"connection_error", "error"})


# ---------------------------------------------------------------------------
# Decoded events
# ---------------------------------------------------------------------------


class ConfigurationEvent(BaseModel):
    """Full set of canvas slots for the current epoch."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["configuration"] = "configuration"
    slots: list[SlotConfig] = Field(default_factory=list)
    canvas_width: int | None = None
    canvas_height: int | None = None
    subscription_id: str | None = None


class FrameEvent(BaseModel):
    """Announces the current image for one slot.

    ``name`` is the image URL; the slot index is encoded in it.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["frame"] = "frame"
    name: str
    timestamp: float | None = None
    subscription_id: str | None = None


class ConnectionErrorEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["connection_error"] = "connection_error"
    message_type: str = "connection_error"
    subscription_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


class UnknownEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"
    message_type: str | None = None
    typename: str | None = None
    subscription_id: str | None = None


RealtimeEvent = Annotated[
    ConfigurationEvent | FrameEvent | ConnectionErrorEvent | UnknownEvent,
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Wire envelopes
# ---------------------------------------------------------------------------


class _MessageData(PlaceBaseModel):
    """``payload.data.subscribe.data``: the typed message body."""

    model_config = ConfigDict(extra="allow")


class _Subscribe(PlaceBaseModel):
    data: _MessageData


class _PayloadData(PlaceBaseModel):
    subscribe: _Subscribe


class _Payload(PlaceBaseModel):
    data: _PayloadData


class _DataEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = None
    type: Literal["data"]
    payload: _Payload


class _ConfigurationData(PlaceBaseModel):
    canvas_configurations: list[dict[str, Any]] = Field(default_factory=list)
    canvas_width: int | None = None
    canvas_height: int | None = None


class _FullFrameData(PlaceBaseModel):
    name: str = Field(min_length=1)
    timestamp: float | None = None


def _loads(raw: str | bytes) -> dict[str, Any]:
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PlaceProtocolError(f"Realtime frame is not JSON: {str(raw)[:64]}") from exc
    if not isinstance(message, dict):
        raise PlaceProtocolError("Realtime frame is not a JSON object")
    return message


def _decode_configuration(body: dict[str, Any], subscription_id: str | None) -> ConfigurationEvent:
    data = _ConfigurationData.model_validate(body)
    slots: list[SlotConfig] = []
    for item in data.canvas_configurations:
        typename = item.get("__typename")
        if typename is not None and typename != CANVAS_CONFIGURATION_TYPENAME:
            continue
        slots.append(SlotConfig.model_validate(item))
    return ConfigurationEvent(
        slots=slots,
        canvas_width=data.canvas_width,
        canvas_height=data.canvas_height,
        subscription_id=subscription_id,
    )


def decode_realtime_message(raw: str | bytes | dict[str, Any]) -> RealtimeEvent:
    """Decode one inbound realtime frame into a typed event.

    Raises
    ------
    PlaceProtocolError
        If the frame is not JSON, or a ``data`` frame does not match the
        shape its ``__typename`` promises.
    """
    message = raw if isinstance(raw, dict) else _loads(raw)
    message_type = message.get("type")
    subscription_id = message.get("id")
    if subscription_id is not None:
        subscription_id = str(subscription_id)

    if message_type in _ERROR_MESSAGE_TYPES:
        payload = message.get("payload")
        if not isinstance(payload, dict):
            payload = {"message": payload} if payload is not None else {}
        return ConnectionErrorEvent(
            message_type=str(message_type),
            subscription_id=subscription_id,
            payload=payload,
        )

    if message_type != "data":
        return UnknownEvent(
            message_type=message_type if isinstance(message_type, str) else None,
            subscription_id=subscription_id,
        )

    try:
        envelope = _DataEnvelope.model_validate(message)
        body_model = envelope.payload.data.subscribe.data
        body = dict(body_model.model_extra or {})
        typename = body_model.typename
        if typename == CONFIGURATION_TYPENAME:
            return _decode_configuration(body, subscription_id)
        if typename == FULL_FRAME_TYPENAME:
            frame = _FullFrameData.model_validate(body)
            return FrameEvent(name=frame.name, timestamp=frame.timestamp, subscription_id=subscription_id)
    except ValidationError as exc:
        raise PlaceProtocolError(f"Malformed realtime data message: {exc.error_count()} error(s)") from exc

    return UnknownEvent(message_type="data", typename=typename, subscription_id=subscription_id)
