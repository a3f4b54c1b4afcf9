"""Relay frame definitions.

Frames are what the relay itself understands. Channel membership is managed
with ``join``/``leave``; everything else travels inside an opaque ``relay``
frame whose ``message`` is only meaningful to the endpoints.

Wire format (one JSON object per websocket text frame):
    {"type": "join", "channel_id": "design-1"}
    {"type": "relay", "channel_id": "design-1", "message": {...}}
    {"type": "system", "message": "Joined channel: design-1", "channel_id": "design-1"}
    {"type": "error", "message": "...", "code": "not_joined"}
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .envelopes import summarize_validation_error


class FrameType(str, Enum):
    """All frame types understood by the relay."""

    # Peer -> relay
    JOIN = "join"
    LEAVE = "leave"

    # Both directions
    RELAY = "relay"

    # Relay -> peer
    SYSTEM = "system"
    ERROR = "error"


class JoinFrame(BaseModel):
    """Request membership of a channel."""

    type: Literal["join"] = "join"
    channel_id: str = Field(min_length=1)
    id: str | None = None


class LeaveFrame(BaseModel):
    """Give up membership of the current channel."""

    type: Literal["leave"] = "leave"
    id: str | None = None


class RelayFrame(BaseModel):
    """Opaque envelope forwarded to every other peer of the sender's channel.

    ``channel_id`` is stamped by the relay on delivery; whatever the sender
    puts there is ignored.
    """

    type: Literal["relay"] = "relay"
    channel_id: str | None = None
    message: dict[str, Any]


class SystemFrame(BaseModel):
    """Relay acknowledgement or informational frame."""

    type: Literal["system"] = "system"
    message: str
    channel_id: str | None = None
    id: str | None = None


class ErrorFrame(BaseModel):
    """Relay-level failure reported to a single peer."""

    type: Literal["error"] = "error"
    message: str
    code: str = "relay_error"
    id: str | None = None


Frame = JoinFrame | LeaveFrame | RelayFrame | SystemFrame | ErrorFrame


def parse_frame(data: str | bytes | dict[str, Any]) -> Frame:
    """Parse a frame by matching on its ``type`` discriminator.

    Raises:
        ValidationError: if the frame is not JSON, has an unknown type,
            or does not match the frame schema.
    """
    if isinstance(data, str | bytes):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise ValidationError(f"frame is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise ValidationError("frame must be a JSON object")

    model: type[BaseModel]
    match data.get("type"):
        case FrameType.JOIN.value:
            model = JoinFrame
        case FrameType.LEAVE.value:
            model = LeaveFrame
        case FrameType.RELAY.value:
            model = RelayFrame
        case FrameType.SYSTEM.value:
            model = SystemFrame
        case FrameType.ERROR.value:
            model = ErrorFrame
        case other:
            raise ValidationError(f"unknown frame type: {other!r}", identifier=str(other))

    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except PydanticValidationError as e:
        raise ValidationError(f"invalid {data['type']} frame: {summarize_validation_error(e)}") from e


def dump_frame(frame: Frame) -> dict[str, Any]:
    """Serialize a frame to a JSON-compatible dict."""
    return frame.model_dump(mode="json", exclude_none=True)
