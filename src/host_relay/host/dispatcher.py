"""Command dispatcher.

Turns one command envelope into exactly one response envelope:

    received -> validating -> executing -> settling

Validation failures and unknown commands skip ``executing``. Handler
failures are contained in their own error envelope; the dispatcher itself
never raises.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..errors import RelayError, RequestTimeoutError, UnknownCommandError, ValidationError
from ..protocol.envelopes import (
    CommandEnvelope,
    ErrorEnvelope,
    ResponseEnvelope,
    ResultEnvelope,
)
from .context import CommandContext, HostSession
from .progress import ProgressReporter, ProgressSender
from .registry import CommandRegistry

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    """Lifecycle of a single dispatched command."""

    RECEIVED = "received"
    VALIDATING = "validating"
    EXECUTING = "executing"
    SETTLING = "settling"


class CommandDispatcher:
    """Runs commands from a registry against a host session."""

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry
        self.states: dict[str, DispatchState] = {}

    async def dispatch(
        self,
        envelope: CommandEnvelope,
        session: HostSession,
        send: ProgressSender | None = None,
    ) -> ResponseEnvelope:
        """Execute ``envelope`` and return its response envelope."""
        command_id = envelope.id
        self.states[command_id] = DispatchState.RECEIVED
        try:
            return await self._dispatch(envelope, session, send)
        finally:
            self.states.pop(command_id, None)

    def state_of(self, command_id: str) -> DispatchState | None:
        return self.states.get(command_id)

    async def _dispatch(
        self,
        envelope: CommandEnvelope,
        session: HostSession,
        send: ProgressSender | None,
    ) -> ResponseEnvelope:
        command_id = envelope.id
        spec = self.registry.get(envelope.command)
        if spec is None:
            return self._settle_error(
                command_id,
                UnknownCommandError(f"unknown command: {envelope.command}", identifier=envelope.command),
            )

        self.states[command_id] = DispatchState.VALIDATING
        try:
            params = spec.params_model.model_validate(envelope.params)
        except PydanticValidationError as e:
            return self._settle_error(command_id, _validation_error(envelope.command, e))

        self.states[command_id] = DispatchState.EXECUTING
        reporter = ProgressReporter(send, command_id, envelope.command)
        ctx = CommandContext(
            session=session,
            command_id=command_id,
            command=envelope.command,
            reporter=reporter,
        )

        try:
            if spec.timeout is not None:
                try:
                    result = await asyncio.wait_for(spec.handler(params, ctx), timeout=spec.timeout)
                except TimeoutError as e:
                    if isinstance(e, RelayError):
                        raise
                    raise RequestTimeoutError(
                        f"{envelope.command} exceeded its {spec.timeout}s ceiling",
                        identifier=command_id,
                    ) from e
            else:
                result = await spec.handler(params, ctx)
        except RelayError as e:
            logger.info(f"Command {envelope.command} ({command_id}) failed: {e}")
            await reporter.error(str(e))
            return self._settle_error(command_id, e)
        except Exception as e:
            logger.exception(f"Handler for {envelope.command} ({command_id}) raised")
            await reporter.error(str(e))
            return self._settle_error(command_id, e)

        self.states[command_id] = DispatchState.SETTLING
        try:
            response = ResultEnvelope(id=command_id, result=_serialize(result))
            # Results must have a JSON form
            response.model_dump(mode="json")
        except Exception as e:
            logger.exception(f"Result of {envelope.command} ({command_id}) cannot be serialized")
            await reporter.error(str(e))
            return self._settle_error(command_id, e)
        return response

    def _settle_error(self, command_id: str, error: BaseException) -> ErrorEnvelope:
        self.states[command_id] = DispatchState.SETTLING
        return ErrorEnvelope.from_exception(command_id, error)


def _validation_error(command: str, error: PydanticValidationError) -> ValidationError:
    first = error.errors()[0]
    parameter = ".".join(str(part) for part in first.get("loc", ())) or "params"
    return ValidationError(
        f"invalid parameter '{parameter}' for {command}: {first.get('msg', 'invalid value')}",
        identifier=parameter,
    )


def _serialize(result: Any) -> Any:
    if result is None:
        return {}
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result
