from __future__ import annotations

import json
from typing import Any

import pytest

from pyplace.exceptions import PlaceProtocolError
from pyplace.models.messages import (
    ConfigurationEvent,
    ConnectionErrorEvent,
    FrameEvent,
    UnknownEvent,
    decode_realtime_message,
)


def _data_message(body: dict[str, Any], subscription_id: str = "1") -> str:
    return json.dumps(
        {
            "id": subscription_id,
            "type": "data",
            "payload": {
                "data": {
                    "subscribe": {
                        "id": "abc",
                        "data": body,
                        "__typename": "BasicMessage",
                    }
                }
            },
        }
    )


def test_decodes_configuration_message() -> None:
    raw = _data_message(
        {
            "__typename": "ConfigurationMessageData",
            "colorPalette": {"colors": [{"hex": "#FF4500", "index": 2}]},
            "canvasConfigurations": [
                {"index": 0, "dx": 0, "dy": 0, "__typename": "CanvasConfiguration"},
                {"index": 1, "dx": 1000, "dy": 0, "__typename": "CanvasConfiguration"},
                {"index": 9, "dx": 5, "dy": 5, "__typename": "SomethingElse"},
            ],
            "canvasWidth": 1000,
            "canvasHeight": 1000,
        }
    )

    event = decode_realtime_message(raw)

    assert isinstance(event, ConfigurationEvent)
    assert [slot.index for slot in event.slots] == [0, 1]
    assert event.slots[1].dx == 1000
    assert event.canvas_width == 1000
    assert event.subscription_id == "1"


def test_configuration_entry_without_offsets_is_kept_for_state_validation() -> None:
    raw = _data_message(
        {
            "__typename": "ConfigurationMessageData",
            "canvasConfigurations": [{"index": 0, "__typename": "CanvasConfiguration"}],
        }
    )

    event = decode_realtime_message(raw)

    assert isinstance(event, ConfigurationEvent)
    assert event.slots[0].dx is None


def test_decodes_full_frame_message() -> None:
    raw = _data_message(
        {
            "__typename": "FullFrameMessageData",
            "name": "https://example.test/1690000000000-3-f-abc.png",
            "timestamp": 1690000000000,
        },
        subscription_id="5",
    )

    event = decode_realtime_message(raw)

    assert isinstance(event, FrameEvent)
    assert event.name.endswith("1690000000000-3-f-abc.png")
    assert event.subscription_id == "5"


def test_diff_frames_are_unknown_events() -> None:
    raw = _data_message({"__typename": "DiffFrameMessageData", "name": "x", "currentTimestamp": 1})

    event = decode_realtime_message(raw)

    assert isinstance(event, UnknownEvent)
    assert event.typename == "DiffFrameMessageData"


@pytest.mark.parametrize("message_type", ["connection_ack", "ka", "complete"])
def test_non_data_messages_are_unknown_events(message_type: str) -> None:
    event = decode_realtime_message(json.dumps({"type": message_type}))

    assert isinstance(event, UnknownEvent)
    assert event.message_type == message_type


def test_connection_error_is_typed() -> None:
    event = decode_realtime_message(json.dumps({"type": "connection_error", "payload": {"message": "bad token"}}))

    assert isinstance(event, ConnectionErrorEvent)
    assert event.payload == {"message": "bad token"}


def test_rejects_non_json() -> None:
    with pytest.raises(PlaceProtocolError):
        decode_realtime_message("not json")


def test_rejects_non_object_json() -> None:
    with pytest.raises(PlaceProtocolError):
        decode_realtime_message("[1, 2]")


def test_rejects_data_message_without_subscribe_body() -> None:
    with pytest.raises(PlaceProtocolError):
        decode_realtime_message(json.dumps({"type": "data", "payload": {"data": None}}))


def test_rejects_full_frame_without_name() -> None:
    with pytest.raises(PlaceProtocolError):
        decode_realtime_message(_data_message({"__typename": "FullFrameMessageData", "timestamp": 1}))


def test_rejects_configuration_with_infinite_offset() -> None:
    raw = _data_message(
        {
            "__typename": "ConfigurationMessageData",
            "canvasConfigurations": [{"index": 0, "dx": float("inf"), "dy": 0, "__typename": "CanvasConfiguration"}],
        }
    )

    with pytest.raises(PlaceProtocolError):
        decode_realtime_message(raw)
