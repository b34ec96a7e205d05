"""
Retry utility module with bounded exponential backoff.
"""

import asyncio
import logging
import random
from typing import (
    Any,
    Awaitable,
    Callable,
    Iterator,
    Optional,
    TypeVar,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')
AsyncCallable = Callable[..., Awaitable[T]]
FailureCallback = Callable[[int, Exception], None]


class BackoffPolicy:
    """Bounded exponential backoff schedule."""

    def __init__(
        self,
        max_attempts: int = 30,
        initial_delay: float = 1.0,
        max_delay: float = 5.0,
        exponential_base: float = 2.0,
        jitter: float = 0.1
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry, ``max_attempts - 1`` values."""
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            jitter_amount = delay * self.jitter * random.uniform(-1.0, 1.0)
            yield max(0.0, min(delay + jitter_amount, self.max_delay))
            delay = min(delay * self.exponential_base, self.max_delay)


async def with_retry(
    operation: AsyncCallable[T],
    policy: BackoffPolicy,
    on_failure: Optional[FailureCallback] = None,
    operation_args: tuple = (),
    operation_kwargs: Optional[dict] = None
) -> T:
    """
    Execute an operation, retrying with exponential backoff.

    Args:
        operation: Async function to execute
        policy: Number of attempts and delays between them
        on_failure: Called with the attempt number and exception after
            every failed attempt
        operation_args: Positional arguments for the operation
        operation_kwargs: Keyword arguments for the operation

    Returns:
        The result of the first successful attempt

    Raises:
        Exception: The last failure, once every attempt has failed
    """
    operation_kwargs = operation_kwargs or {}
    delays = policy.delays()

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation(*operation_args, **operation_kwargs)
        except Exception as e:
            if on_failure:
                on_failure(attempt, e)

            if attempt == policy.max_attempts:
                logger.error(
                    f"Operation failed after {policy.max_attempts} "
                    f"attempts: {str(e)}"
                )
                raise

            actual_delay = next(delays)
            logger.warning(
                f"Operation failed (attempt {attempt}/{policy.max_attempts}), "
                f"retrying in {actual_delay:.2f}s: {str(e)}"
            )
            await asyncio.sleep(actual_delay)

    raise RuntimeError("Unreachable code - this should never happen")
