"""Bounded retry combinator for async operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from envdiff.errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    backoff_seconds: float = 1.0,
    backoff_factor: float = 2.0,
    description: str = "operation",
    on_failure: Optional[Callable[[int, Exception], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is reached.

    Each failure is logged with its attempt number. Between attempts the
    combinator waits ``backoff_seconds * backoff_factor ** (attempt - 1)``.
    No delay follows the final attempt.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        max_attempts: Total attempts, including the first.
        backoff_seconds: Delay before the second attempt.
        backoff_factor: Multiplier applied to the delay after each failure.
        description: Label used in log messages.
        on_failure: Optional callback invoked with ``(attempt, error)``.
        sleep: Awaitable delay function, replaceable in tests.

    Returns:
        The value returned by the first successful attempt.

    Raises:
        RetryExhaustedError: If every attempt raised.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    history: list[Exception] = []
    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
            if attempt > 1:
                logger.info("%s succeeded on attempt %d/%d", description, attempt, max_attempts)
            return result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            history.append(e)
            logger.warning("Attempt %d/%d failed for %s: %s", attempt, max_attempts, description, e)
            if on_failure is not None:
                on_failure(attempt, e)
            if attempt < max_attempts:
                delay = backoff_seconds * (backoff_factor ** (attempt - 1))
                if delay > 0:
                    await sleep(delay)

    raise RetryExhaustedError(max_attempts, history[-1], history)
