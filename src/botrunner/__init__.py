"""botrunner - event dispatch runtime for bot platform clients."""

from .context import Context
from .errors import (
    ApiError,
    BotNotInitializedError,
    BotRunnerError,
    ConfigurationError,
    ContinuationError,
    ListenerRegistrationError,
    PipelineError,
    PlatformError,
    RequestCancelledError,
    TransportError,
)
from .models import BotIdentity, Update
from .pipeline import Composer
from .runtime import Bot, CancellationHandle, PollingStatus

__version__ = "0.1.0"

__all__ = [
    "Bot",
    "Composer",
    "Context",
    "Update",
    "BotIdentity",
    "PollingStatus",
    "CancellationHandle",
    "BotRunnerError",
    "ConfigurationError",
    "ApiError",
    "TransportError",
    "PlatformError",
    "RequestCancelledError",
    "PipelineError",
    "ContinuationError",
    "BotNotInitializedError",
    "ListenerRegistrationError",
]
