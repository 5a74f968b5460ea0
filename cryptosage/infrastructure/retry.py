"""
Retry combinator with exponential backoff, built on tenacity.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from cryptosage.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    """Log a retry before sleeping."""
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Transient failure, retrying",
        attempt=retry_state.attempt_number,
        delay=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error),
    )


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    attempts: int,
    base_delay: float,
    is_retryable: Callable[[BaseException], bool],
    max_delay: float = 30.0,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Run an async operation, retrying failures classified as retryable.

    Delays grow as base_delay, 2 * base_delay, 4 * base_delay, ... capped
    at max_delay. Non-retryable errors propagate immediately; when attempts
    are exhausted the last error is re-raised unchanged.

    Args:
        operation: Zero-argument coroutine factory to run
        attempts: Total number of attempts (>= 1)
        base_delay: Delay before the second attempt, in seconds
        is_retryable: Predicate deciding whether an error is retried
        max_delay: Upper bound for a single delay
        sleep: Sleep coroutine (override in tests)

    Returns:
        The operation's result.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=base_delay, min=0, max=max_delay),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        sleep=sleep or asyncio.sleep,
        reraise=True,
    )
    return await retrying(operation)
