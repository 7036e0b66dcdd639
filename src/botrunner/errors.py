"""Application-wide error definitions."""

from typing import Any, Dict, Optional


class BotRunnerError(Exception):
    """Base exception for all botrunner errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class ConfigurationError(BotRunnerError):
    """Configuration is invalid or missing."""
    pass


class BotNotInitializedError(BotRunnerError):
    """Bot identity is not known yet."""
    pass


class ListenerRegistrationError(BotRunnerError):
    """Middleware was registered on a bot that is already running."""
    pass


class ContinuationError(BotRunnerError):
    """A middleware called its continuation more than once.

    This is a bug in pipeline composition, not a runtime condition, so
    error boundaries never recover from it.
    """
    pass


# === Outbound calls


class ApiError(BotRunnerError):
    """Base exception for failed outbound calls."""

    def __init__(self, message: str, method: str = "", **context: Any) -> None:
        super().__init__(message, method=method, **context)
        self.method = method


class TransportError(ApiError):
    """The platform could not be reached at all."""

    def __init__(self, method: str, cause: BaseException) -> None:
        super().__init__(f"Network request for '{method}' failed: {cause}", method=method)
        self.cause = cause


class PlatformError(ApiError):
    """The platform answered with a structured rejection."""

    def __init__(
        self,
        method: str,
        error_code: int,
        description: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            f"Call to '{method}' failed! ({error_code}: {description})",
            method=method,
            error_code=error_code,
        )
        self.error_code = error_code
        self.description = description
        self.parameters: Dict[str, Any] = parameters or {}

    @property
    def retry_after(self) -> Optional[float]:
        """Seconds the platform asked us to wait, if it said so."""
        value = self.parameters.get("retry_after")
        return value if isinstance(value, (int, float)) else None


class RequestCancelledError(ApiError):
    """The cancellation handle fired while a call was in flight."""

    def __init__(self, method: str = "") -> None:
        super().__init__("Request was cancelled", method=method)


# === Middleware


class PipelineError(BotRunnerError):
    """An error raised inside middleware, bundled with its context.

    ``error`` is the exception raised by the middleware and ``ctx`` the
    processing context of the update that was being handled.
    """

    def __init__(self, error: BaseException, ctx: Any) -> None:
        super().__init__(_describe(error))
        self.error = error
        self.ctx = ctx


def _describe(error: BaseException) -> str:
    text = str(error)
    if len(text) > 200:
        text = text[:200] + "..."
    if text:
        return f"{type(error).__name__} in middleware: {text}"
    return f"{type(error).__name__} in middleware!"
