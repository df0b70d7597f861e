"""``graphql-ws`` messages sent to the realtime gateway."""

from __future__ import annotations

import json
from typing import Any

CONFIGURATION_QUERY = (
    "subscription configuration($input:SubscribeInput!){subscribe(input:$input){id...on BasicMessage{data{"
    "__typename...on ConfigurationMessageData{colorPalette{colors{hex index __typename}__typename}"
    "canvasConfigurations{index dx dy __typename}canvasWidth canvasHeight __typename}}__typename}__typename}}"
)

CANVAS_QUERY = (
    "subscription replace($input:SubscribeInput!){subscribe(input:$input){id...on BasicMessage{data{"
    "__typename...on FullFrameMessageData{__typename name timestamp}"
    "...on DiffFrameMessageData{__typename name currentTimestamp previousTimestamp}}__typename}__typename}}"
)


def _dumps(message: dict[str, Any]) -> str:
    return json.dumps(message, separators=(",", ":"))


def build_connection_init(token: str) -> str:
    return _dumps({"type": "connection_init", "payload": {"Authorization": f"Bearer {token}"}})


def _build_start(
    subscription_id: str,
    *,
    operation_name: str,
    query: str,
    channel: dict[str, str],
) -> str:
    return _dumps(
        {
            "id": subscription_id,
            "type": "start",
            "payload": {
                "variables": {"input": {"channel": channel}},
                "extensions": {},
                "operationName": operation_name,
                "query": query,
            },
        }
    )


def build_configuration_start(subscription_id: str, *, team_owner: str) -> str:
    """Start the canvas configuration subscription."""
    return _build_start(
        subscription_id,
        operation_name="configuration",
        query=CONFIGURATION_QUERY,
        channel={"teamOwner": team_owner, "category": "CONFIG"},
    )


def build_canvas_start(subscription_id: str, index: int, *, team_owner: str) -> str:
    """Start the frame subscription of one canvas tile."""
    return _build_start(
        subscription_id,
        operation_name="replace",
        query=CANVAS_QUERY,
        channel={"teamOwner": team_owner, "category": "CANVAS", "tag": str(index)},
    )


def build_stop(subscription_id: str) -> str:
    return _dumps({"id": subscription_id, "type": "stop"})
