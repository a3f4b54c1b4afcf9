"""Error taxonomy shared by the relay, the gateway and the host runtime.

Every error renders as ``"<Kind>: <message>"`` so a single line tells the
caller what went wrong and which command, node or property was involved.
The ``code`` travels on the wire inside error envelopes; clients rebuild
the matching class with :func:`error_from_code`.
"""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base class for all relay errors."""

    kind = "RelayError"
    code = "relay_error"

    def __init__(self, message: str, *, identifier: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.identifier = identifier

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"error": str(self), "code": self.code}
        if self.identifier is not None:
            data["identifier"] = self.identifier
        return data


class ValidationError(RelayError):
    """Malformed or missing parameters. Never retried."""

    kind = "ValidationError"
    code = "validation_error"


class NotFoundError(RelayError):
    """Referenced entity is absent from host state."""

    kind = "NotFoundError"
    code = "not_found"


class UnsupportedError(RelayError):
    """Entity exists but does not support the requested capability."""

    kind = "UnsupportedError"
    code = "unsupported"


class RequestTimeoutError(RelayError, TimeoutError):
    """The wait for a response exceeded its budget.

    Only the wait is abandoned; work already started on the host keeps
    running and its late response is discarded.
    """

    kind = "TimeoutError"
    code = "timeout"


class PermissionDeniedError(RelayError):
    """The host refused the operation."""

    kind = "PermissionError"
    code = "permission_denied"


class TransportError(RelayError, ConnectionError):
    """Channel or connection failure."""

    kind = "TransportError"
    code = "transport_error"


class UnknownCommandError(RelayError):
    """No handler is registered under the command name."""

    kind = "UnknownCommandError"
    code = "unknown_command"


class ChannelMembershipError(ValidationError):
    """Peer tried to join a channel while still a member of another one."""

    code = "channel_membership"


class InternalError(RelayError):
    """Unexpected handler failure, reported without a stack trace."""

    kind = "InternalError"
    code = "internal_error"


class RemoteError(RelayError):
    """Error envelope carrying a code this client does not know."""

    kind = "RemoteError"
    code = "remote_error"


class RetryExhaustedError(RelayError):
    """All retry attempts failed."""

    kind = "RetryExhaustedError"
    code = "retry_exhausted"

    def __init__(self, attempts: int, errors: list[BaseException]) -> None:
        details = "; ".join(f"attempt {i + 1}: {err}" for i, err in enumerate(errors))
        super().__init__(f"gave up after {attempts} attempt(s) ({details})")
        self.attempts = attempts
        self.errors = errors

    @property
    def last_error(self) -> BaseException | None:
        return self.errors[-1] if self.errors else None


_ERRORS_BY_CODE: dict[str, type[RelayError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        NotFoundError,
        UnsupportedError,
        RequestTimeoutError,
        PermissionDeniedError,
        TransportError,
        UnknownCommandError,
        ChannelMembershipError,
        InternalError,
    )
}


def error_from_code(code: str | None, message: str) -> RelayError:
    """Rebuild a taxonomy error from a wire ``code`` and message.

    The wire message already carries the ``"<Kind>: "`` prefix; it is
    stripped so the rebuilt error does not repeat it.
    """
    cls = _ERRORS_BY_CODE.get(code or "", RemoteError)
    prefix = f"{cls.kind}: "
    if message.startswith(prefix):
        message = message[len(prefix) :]
    return cls(message)


def describe_exception(exc: BaseException) -> tuple[str, str]:
    """Return ``(message, code)`` for any exception, without a traceback."""
    if isinstance(exc, RelayError):
        return str(exc), exc.code
    text = str(exc) or exc.__class__.__name__
    return f"{InternalError.kind}: {text}", InternalError.code
