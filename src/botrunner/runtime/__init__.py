"""Runtime: polling driver, retry loop and cancellation."""

from .abort import CancellationHandle, sleep
from .bot import DEFAULT_UPDATE_TYPES, Bot, PollingStatus, RuntimeState, validate_allowed_updates
from .retry import Backoff, RetryStrategy, with_retries

__all__ = [
    "Bot",
    "PollingStatus",
    "RuntimeState",
    "DEFAULT_UPDATE_TYPES",
    "validate_allowed_updates",
    "CancellationHandle",
    "sleep",
    "Backoff",
    "RetryStrategy",
    "with_retries",
]
