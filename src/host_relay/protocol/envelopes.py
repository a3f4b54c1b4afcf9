"""Envelope definitions carried inside relay frames.

Envelopes are opaque to the relay; only the endpoints understand them.
Each envelope is tagged by a ``type`` discriminator:

- ``command``: client -> host request, correlated by ``id``
- ``result`` / ``error``: host -> client response, exactly one per command
- ``progress``: advisory host -> client status for an in-flight command
- ``notify``: uncorrelated host -> client notification

Example (command):
    {"type": "command", "id": "cmd_abc123", "command": "echo", "params": {"v": 1}}

Example (response):
    {"type": "result", "id": "cmd_abc123", "result": {"v": 1}}
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError, describe_exception


def new_command_id() -> str:
    """Generate a correlation id for a command."""
    return f"cmd_{uuid.uuid4().hex[:12]}"


def utc_now() -> str:
    return datetime.now(UTC).isoformat()


class MessageType(str, Enum):
    """All envelope types exchanged between endpoints."""

    COMMAND = "command"
    RESULT = "result"
    ERROR = "error"
    PROGRESS = "progress"
    NOTIFY = "notify"


class ProgressStatus(str, Enum):
    """Lifecycle of a progress stream. ``completed`` and ``error`` are terminal."""

    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProgressStatus.COMPLETED, ProgressStatus.ERROR)


class CommandEnvelope(BaseModel):
    """A single request unit: command name, parameters and correlation id.

    Immutable once created. Uniqueness of ``id`` is the sender's
    responsibility; random ids are sufficient.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["command"] = "command"
    id: str = Field(default_factory=new_command_id)
    command: str
    params: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def create(
        cls,
        command: str,
        params: dict[str, Any] | None = None,
        command_id: str | None = None,
    ) -> CommandEnvelope:
        """Factory method for creating commands."""
        return cls(id=command_id or new_command_id(), command=command, params=params or {})


class ResultEnvelope(BaseModel):
    """Successful response to a command."""

    type: Literal["result"] = "result"
    id: str
    result: Any = None


class ErrorEnvelope(BaseModel):
    """Failed response to a command.

    ``error`` is the human-readable message, ``code`` the taxonomy kind.
    """

    type: Literal["error"] = "error"
    id: str
    error: str
    code: str = "internal_error"

    @classmethod
    def from_exception(cls, command_id: str, exc: BaseException) -> ErrorEnvelope:
        message, code = describe_exception(exc)
        return cls(id=command_id, error=message, code=code)


ResponseEnvelope = ResultEnvelope | ErrorEnvelope


class ProgressEvent(BaseModel):
    """Advisory status update correlated to an in-flight command.

    Progress events may be dropped without affecting correctness; the
    response envelope stays the only authoritative completion signal.
    """

    type: Literal["progress"] = "progress"
    command_id: str
    command_type: str
    status: ProgressStatus
    progress: int = Field(ge=0, le=100)
    total_items: int = Field(default=0, ge=0)
    processed_items: int = Field(default=0, ge=0)
    message: str = ""
    timestamp: str = Field(default_factory=utc_now)

    # Chunk position, present only for chunked operations
    current_chunk: int | None = None
    total_chunks: int | None = None
    chunk_size: int | None = None

    payload: dict[str, Any] | None = None

    def is_terminal(self) -> bool:
        return self.status.is_terminal


class Notification(BaseModel):
    """Uncorrelated host -> client message."""

    type: Literal["notify"] = "notify"
    message: str
    level: str = "info"


Message = CommandEnvelope | ResultEnvelope | ErrorEnvelope | ProgressEvent | Notification


def parse_message(data: str | bytes | dict[str, Any]) -> Message:
    """Parse an envelope by matching on its ``type`` discriminator.

    Raises:
        ValidationError: if the payload is not JSON, has an unknown type,
            or does not match the envelope schema.
    """
    if isinstance(data, str | bytes):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise ValidationError(f"message is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise ValidationError("message must be a JSON object")

    model: type[BaseModel]
    match data.get("type"):
        case MessageType.COMMAND.value:
            model = CommandEnvelope
        case MessageType.RESULT.value:
            model = ResultEnvelope
        case MessageType.ERROR.value:
            model = ErrorEnvelope
        case MessageType.PROGRESS.value:
            model = ProgressEvent
        case MessageType.NOTIFY.value:
            model = Notification
        case other:
            raise ValidationError(f"unknown message type: {other!r}", identifier=str(other))

    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except PydanticValidationError as e:
        raise ValidationError(
            f"invalid {data['type']} message: {summarize_validation_error(e)}",
            identifier=data.get("id") or data.get("command_id"),
        ) from e


def dump_message(message: Message) -> dict[str, Any]:
    """Serialize an envelope to a JSON-compatible dict for the wire."""
    return message.model_dump(mode="json", exclude_none=True)


def summarize_validation_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"{location}: {first.get('msg', 'invalid value')}"
