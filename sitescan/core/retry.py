"""
Retry policy and combinator.

A RetryPolicy describes how many attempts to make and how long to wait
between them; with_retry() drives any async operation with it.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from sitescan.core.base import FetchExhausted
from sitescan.core.logging import get_logger

T = TypeVar('T')

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff retry policy"""
    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: Optional[float] = None
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    give_up_on: Tuple[Type[BaseException], ...] = ()

    def delay_for(self, attempt: int) -> float:
        """Delay after a failed attempt (1-based): base * factor^(attempt-1)"""
        delay = self.base_delay * (self.backoff_factor ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def should_retry(self, error: BaseException) -> bool:
        if isinstance(error, self.give_up_on):
            return False
        return isinstance(error, self.retry_on)


async def with_retry(operation: Callable[[int], Awaitable[T]],
                     policy: RetryPolicy,
                     description: str = "operation",
                     sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> T:
    """
    Run an async operation under a retry policy.

    Args:
        operation: Coroutine factory receiving the 1-based attempt number
        policy: Retry policy to apply
        description: Label used in log messages and the exhaustion error
        sleep: Awaitable sleep function (injectable for tests)

    Returns:
        The operation's result

    Raises:
        FetchExhausted: When every attempt failed with a retryable error
        Any non-retryable error raised by the operation, unchanged
    """
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation(attempt)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not policy.should_retry(e):
                raise
            last_error = e
            if attempt == policy.max_attempts:
                break
            delay = policy.delay_for(attempt)
            logger.warning(f"Attempt {attempt}/{policy.max_attempts} for {description} failed: {e}; "
                           f"retrying in {delay:.1f}s")
            await sleep(delay)

    raise FetchExhausted(description, policy.max_attempts, last_error)
