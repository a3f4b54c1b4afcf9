"""Wire protocol shared by the relay and its peers.

Two layers:
- Frames: what the relay understands (join, leave, relay, system, error)
- Envelopes: what endpoints exchange inside relay frames (command,
  result, error, progress, notify)

Correlation: every response and progress event carries the id of the
command that caused it. The relay never looks inside envelopes.
"""

from .envelopes import (
    CommandEnvelope,
    ErrorEnvelope,
    Message,
    MessageType,
    Notification,
    ProgressEvent,
    ProgressStatus,
    ResponseEnvelope,
    ResultEnvelope,
    dump_message,
    new_command_id,
    parse_message,
)
from .frames import (
    ErrorFrame,
    Frame,
    FrameType,
    JoinFrame,
    LeaveFrame,
    RelayFrame,
    SystemFrame,
    dump_frame,
    parse_frame,
)

__all__ = [
    # Envelopes
    "CommandEnvelope",
    "ResultEnvelope",
    "ErrorEnvelope",
    "ResponseEnvelope",
    "ProgressEvent",
    "ProgressStatus",
    "Notification",
    "Message",
    "MessageType",
    "new_command_id",
    "parse_message",
    "dump_message",
    # Frames
    "Frame",
    "FrameType",
    "JoinFrame",
    "LeaveFrame",
    "RelayFrame",
    "SystemFrame",
    "ErrorFrame",
    "parse_frame",
    "dump_frame",
]
