"""Retry loop for outbound calls made during startup."""

from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from ..config.schema import RetryConfig
from ..errors import PlatformError, TransportError
from ..logging_config import get_logger
from .abort import CancellationHandle, sleep

logger = get_logger(__name__)

T = TypeVar("T")


class RetryStrategy(str, Enum):
    RETRY = "retry"
    RETHROW = "rethrow"


class Backoff:
    """Exponential delay between consecutive failures.

    The first retry is not delayed. Every further retry waits twice as
    long as the one before, starting at twice ``initial_delay`` and
    capped at ``max_delay``.
    """

    def __init__(self, initial_delay: float, max_delay: float) -> None:
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.last_delay = initial_delay
        self._fresh = True

    def reset(self) -> None:
        self.last_delay = self.initial_delay
        self._fresh = True

    async def wait(self, signal: Optional[CancellationHandle] = None) -> None:
        if not self._fresh:
            await sleep(self.last_delay, signal)
        self._fresh = False
        self.last_delay = min(self.max_delay, 2 * self.last_delay)


async def classify(
    error: BaseException,
    backoff: Backoff,
    signal: Optional[CancellationHandle] = None,
) -> RetryStrategy:
    """Decide what to do about ``error``, sleeping where needed."""
    delay = False
    strategy = RetryStrategy.RETHROW

    if isinstance(error, TransportError):
        delay = True
        strategy = RetryStrategy.RETRY
    elif isinstance(error, PlatformError):
        if error.error_code >= 500:
            delay = True
            strategy = RetryStrategy.RETRY
        elif error.error_code == 429:
            retry_after = error.retry_after
            if retry_after is not None:
                # Server-dictated wait replaces the backoff, then starts it over
                await sleep(retry_after, signal)
                backoff.reset()
            else:
                delay = True
            strategy = RetryStrategy.RETRY

    if delay:
        await backoff.wait(signal)

    return strategy


async def with_retries(
    task: Callable[[], Awaitable[T]],
    *,
    signal: Optional[CancellationHandle] = None,
    config: Optional[RetryConfig] = None,
) -> T:
    """Run ``task`` until it succeeds or fails with a non-retryable error.

    Network failures, server errors and rate limits are retried. Anything
    else, including cancellation, is raised to the caller.
    """
    config = config or RetryConfig()
    backoff = Backoff(config.initial_delay_seconds, config.max_delay_seconds)
    attempt = 0

    while True:
        attempt += 1
        try:
            return await task()
        except Exception as e:
            logger.debug(
                f"Attempt {attempt} failed: {e}",
                extra={"extra_fields": {"attempt": attempt, "error_type": type(e).__name__}},
            )
            strategy = await classify(e, backoff, signal)
            if strategy is RetryStrategy.RETHROW:
                raise
