"""Retry with exponential backoff for idempotent commands.

Retrying a command re-sends it under a fresh id; if the first attempt
actually ran on the host, it runs twice. Callers must therefore assert
idempotency explicitly.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..errors import RetryExhaustedError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    *,
    idempotent: bool = False,
    base_delay: float = 0.5,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is reached.

    The delay before attempt ``n + 1`` is ``base_delay * 2**n``. A
    ``ValidationError`` is raised immediately since repeating a malformed
    request cannot succeed.

    Raises:
        ValidationError: if ``idempotent`` is not asserted or max_attempts < 1
        RetryExhaustedError: after the last failed attempt
    """
    if not idempotent:
        raise ValidationError("retry requires the operation to be declared idempotent")
    if max_attempts < 1:
        raise ValidationError(f"max_attempts must be at least 1, got {max_attempts}")

    errors: list[BaseException] = []
    for attempt in range(max_attempts):
        try:
            return await operation()
        except ValidationError:
            raise
        except Exception as e:
            errors.append(e)
            if attempt == max_attempts - 1:
                break
            delay = base_delay * 2**attempt
            logger.info(f"Attempt {attempt + 1}/{max_attempts} failed ({e}); retrying in {delay:.2f}s")
            await sleep(delay)

    raise RetryExhaustedError(len(errors), errors) from errors[-1]


def retryable(
    max_attempts: int = 3,
    *,
    idempotent: bool = False,
    base_delay: float = 0.5,
    sleep: Sleep = asyncio.sleep,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator form of :func:`with_retry`."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await with_retry(
                lambda: func(*args, **kwargs),
                max_attempts,
                idempotent=idempotent,
                base_delay=base_delay,
                sleep=sleep,
            )

        return wrapper

    return decorator
