"""Runtime driver: bot lifecycle and the long polling loop."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Set, Union

from ..client.base import BotClient
from ..client.envelope import EnvelopeClient, ReplyEnvelope
from ..config.schema import Config, PollingConfig, RetryConfig
from ..context import Context
from ..errors import (
    BotNotInitializedError,
    ConfigurationError,
    ContinuationError,
    ListenerRegistrationError,
    PipelineError,
    PlatformError,
    RequestCancelledError,
)
from ..logging_config import get_logger
from ..models import BotIdentity, Update
from ..pipeline.composer import Composer
from ..pipeline.nodes import maybe_await, run
from .abort import CancellationHandle, sleep
from .retry import with_retries

logger = get_logger(__name__)

DEFAULT_UPDATE_TYPES = [
    "message",
    "edited_message",
    "channel_post",
    "edited_channel_post",
    "business_connection",
    "business_message",
    "edited_business_message",
    "deleted_business_messages",
    "inline_query",
    "chosen_inline_result",
    "callback_query",
    "shipping_query",
    "pre_checkout_query",
    "poll",
    "poll_answer",
    "my_chat_member",
    "chat_join_request",
    "chat_boost",
    "removed_chat_boost",
]

ErrorHandlerFn = Callable[[PipelineError], Any]


class PollingStatus(str, Enum):
    """Lifecycle of the polling driver."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class RuntimeState:
    """Mutable state owned by one :class:`Bot`.

    ``last_update_id`` is advanced before an update is dispatched, so an
    update that crashes the process is not fetched again on restart.
    """

    status: PollingStatus = PollingStatus.STOPPED
    running: bool = False
    cancellation: Optional[CancellationHandle] = None
    last_update_id: int = 0


class Bot(Composer):
    """A bot: a middleware pipeline plus the driver that feeds it.

    Register middleware with the :class:`Composer` methods, then either
    ``await bot.start()`` to long poll, or hand pushed updates to
    :meth:`handle_update` from another delivery driver.

    Args:
        client: Outbound client used for polling and passed to middleware.
        identity: Known bot identity; skips the startup handshake.
        retry: Backoff used for startup calls.
        polling: Defaults for :meth:`start`.
    """

    def __init__(
        self,
        client: BotClient,
        *,
        identity: Optional[BotIdentity] = None,
        retry: Optional[RetryConfig] = None,
        polling: Optional[PollingConfig] = None,
    ) -> None:
        super().__init__()
        self.client = client
        self.retry_config = retry or RetryConfig()
        self.polling_config = polling or PollingConfig()
        self._me = identity
        self._me_task: Optional["asyncio.Future[BotIdentity]"] = None
        self._state = RuntimeState()
        self._observed_update_types: Set[str] = set()
        self._sealed = False
        self._error_handler: ErrorHandlerFn = self._default_error_handler

    @classmethod
    def from_config(cls, config: Config, client: Optional[BotClient] = None) -> "Bot":
        """Build a bot from loaded configuration.

        Without an explicit client, an :class:`HttpBotClient` is created
        from the ``[bot]`` section.
        """
        if client is None:
            if not config.bot.token:
                raise ConfigurationError("Empty bot token! Set bot.token or BOTRUNNER_BOT_TOKEN.")
            from ..client.http import HttpBotClient

            client = HttpBotClient(
                config.bot.token,
                base_url=config.bot.api_base_url,
                timeout=config.bot.request_timeout_seconds,
            )
        return cls(client, retry=config.retry, polling=config.polling)

    # ------------------------------------------------------------------
    # State (read-only to callers)
    # ------------------------------------------------------------------

    @property
    def status(self) -> PollingStatus:
        return self._state.status

    @property
    def is_running(self) -> bool:
        return self._state.running

    @property
    def last_update_id(self) -> int:
        return self._state.last_update_id

    @property
    def me(self) -> BotIdentity:
        if self._me is None:
            raise BotNotInitializedError(
                "Bot information unavailable! Call `await bot.init()` first "
                "or pass `identity` to the constructor."
            )
        return self._me

    def is_inited(self) -> bool:
        return self._me is not None

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, *middleware: Any) -> Composer:
        if self._sealed:
            raise ListenerRegistrationError(
                "Middleware was registered on a bot that is already running. "
                "Registering listeners from inside other listeners makes the "
                "pipeline grow with every update. Mount a Composer before "
                "starting and extend that one instead."
            )
        return super().register(*middleware)

    def on(self, update_types: Union[str, Iterable[str]], *middleware: Any) -> Composer:
        types = [update_types] if isinstance(update_types, str) else list(update_types)
        self._observed_update_types.update(types)
        return super().on(types, *middleware)

    def catch(self, handler: ErrorHandlerFn) -> None:
        """Install the handler for errors no error boundary recovered."""
        self._error_handler = handler

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def init(self, signal: Optional[CancellationHandle] = None) -> None:
        """Fetch the bot's identity unless it is already known."""
        if not self.is_inited():
            logger.debug("Initializing bot")
            if self._me_task is None:
                self._me_task = asyncio.ensure_future(
                    with_retries(
                        lambda: self.client.get_me(signal=signal),
                        signal=signal,
                        config=self.retry_config,
                    )
                )
            task = self._me_task
            try:
                me = await asyncio.shield(task)
            finally:
                if self._me_task is task and task.done():
                    self._me_task = None
            if self._me is None:
                self._me = me
            else:
                logger.debug("Bot info was set by now, will not overwrite")

        logger.debug(f"I am {self.me.username}!")

    async def handle_update(
        self,
        update: Update,
        reply_envelope: Optional[ReplyEnvelope] = None,
        can_use_webhook_reply: Optional[Callable[[str], bool]] = None,
    ) -> None:
        """Run one update through the pipeline.

        With a ``reply_envelope``, the first call to a method accepted by
        ``can_use_webhook_reply`` is captured in it instead of being sent.
        Without a predicate every call goes out.

        Errors raised by middleware come out as :class:`PipelineError`
        carrying the context. A :class:`ContinuationError` is re-raised
        as is.
        """
        me = self.me
        logger.debug(
            f"Processing update {update.update_id}",
            extra={"extra_fields": {"update_id": update.update_id, "update_type": update.update_type}},
        )

        api: BotClient = self.client
        if reply_envelope is not None:
            api = EnvelopeClient(self.client, reply_envelope, can_use_webhook_reply)
        ctx = Context(update, api, me)

        try:
            await run(self, ctx)
        except ContinuationError:
            logger.critical(f"Middleware protocol violated while handling update {update.update_id}")
            raise
        except PipelineError:
            raise
        except Exception as e:
            logger.debug(f"Error in middleware for update {update.update_id}")
            raise PipelineError(e, ctx) from e

    async def _handle_updates(self, updates: List[Update]) -> None:
        # Strictly one at a time, in the order received
        for update in updates:
            self._state.last_update_id = max(self._state.last_update_id, update.update_id)
            try:
                await self.handle_update(update)
            except PipelineError as err:
                await self._report(err)
            except Exception:
                logger.critical(f"Unable to handle update {update.update_id}", exc_info=True)
                raise

    async def _report(self, err: PipelineError) -> None:
        try:
            await maybe_await(self._error_handler(err))
        except Exception:
            if self._state.running:
                await self.stop()
            raise

    async def _default_error_handler(self, err: PipelineError) -> None:
        update_id = err.ctx.update_id if err.ctx is not None else None
        logger.error(
            f"Error in middleware while handling update {update_id}",
            exc_info=err.error,
            extra={"extra_fields": {"update_id": update_id}},
        )
        logger.error("No error handler was set! Set your own error handler with `bot.catch(...)`")
        if self._state.running:
            logger.error("Stopping bot")
            await self.stop()
        raise err

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        *,
        limit: Optional[int] = None,
        timeout: Optional[int] = None,
        allowed_updates: Optional[Sequence[str]] = None,
        drop_pending_updates: Optional[bool] = None,
        on_start: Optional[Callable[[BotIdentity], Union[None, Awaitable[None]]]] = None,
    ) -> None:
        """Start long polling; returns once the bot has been stopped.

        Unset options fall back to the bot's :class:`PollingConfig`.
        Errors that make polling impossible (unauthorized, conflicting
        session, an error handler that raises) stop the bot and are
        raised from here.
        """
        polling = self.polling_config
        limit = limit if limit is not None else polling.limit
        timeout = timeout if timeout is not None else polling.timeout_seconds
        if allowed_updates is None and polling.allowed_updates is not None:
            allowed_updates = polling.allowed_updates
        if drop_pending_updates is None:
            drop_pending_updates = polling.drop_pending_updates

        if self._state.status is not PollingStatus.STOPPED:
            if not self.is_inited():
                await self.init()
            logger.debug("Long polling already running!")
            return

        handle = CancellationHandle()
        self._state.status = PollingStatus.STARTING
        self._state.cancellation = handle

        setup = []
        if not self.is_inited():
            setup.append(asyncio.ensure_future(self.init(handle)))
        setup.append(
            asyncio.ensure_future(
                with_retries(
                    lambda: self.client.delete_webhook(drop_pending_updates, signal=handle),
                    signal=handle,
                    config=self.retry_config,
                )
            )
        )

        try:
            await asyncio.gather(*setup)
            if on_start is not None:
                await maybe_await(on_start(self.me))
        except BaseException as e:
            handle.cancel()
            await asyncio.gather(*setup, return_exceptions=True)
            stopped_meanwhile = self._state.status is not PollingStatus.STARTING
            self._clear(handle)
            if stopped_meanwhile and isinstance(e, RequestCancelledError):
                logger.info("Bot was stopped during startup")
                return
            raise

        if self._state.status is not PollingStatus.STARTING:
            logger.info("Bot was stopped during startup")
            return

        self._state.status = PollingStatus.RUNNING
        self._state.running = True
        validate_allowed_updates(self._observed_update_types, allowed_updates)
        self._sealed = True

        logger.info(
            "Starting long polling",
            extra={"extra_fields": {"username": self.me.username, "timeout": timeout, "limit": limit}},
        )
        try:
            await self._loop(limit, timeout, allowed_updates, handle)
        except Exception as e:
            logger.error(f"Long polling failed: {e}")
            raise
        finally:
            if self._state.status is PollingStatus.RUNNING:
                self._clear(handle)
        logger.info("Long polling stopped")

    async def stop(self) -> None:
        """Stop polling and confirm the processed offset to the platform."""
        status = self._state.status
        if status is PollingStatus.RUNNING:
            logger.info("Stopping bot, saving update offset")
            self._state.status = PollingStatus.STOPPING
            self._state.running = False
            if self._state.cancellation is not None:
                self._state.cancellation.cancel()
            offset = self._state.last_update_id + 1
            try:
                await self.client.get_updates(offset, limit=1)
            finally:
                self._state.cancellation = None
                self._state.status = PollingStatus.STOPPED
        elif status is PollingStatus.STARTING:
            logger.info("Cancelling bot startup")
            if self._state.cancellation is not None:
                self._state.cancellation.cancel()
            self._state.cancellation = None
            self._state.status = PollingStatus.STOPPED
        else:
            logger.debug("Bot is not running!")

    def _clear(self, handle: CancellationHandle) -> None:
        if self._state.cancellation is handle:
            self._state.cancellation = None
            self._state.status = PollingStatus.STOPPED
            self._state.running = False

    # ------------------------------------------------------------------
    # Polling loop
    # ------------------------------------------------------------------

    async def _loop(
        self,
        limit: Optional[int],
        timeout: int,
        allowed_updates: Optional[Sequence[str]],
        handle: CancellationHandle,
    ) -> None:
        # An empty list resets the platform to its default update types
        allowed: Optional[Sequence[str]] = list(allowed_updates) if allowed_updates is not None else []
        while self._state.running:
            updates = await self._fetch_updates(limit, timeout, allowed, handle)
            if updates is None:
                break
            await self._handle_updates(updates)
            # The platform remembers the last allow-list, no need to resend it
            allowed = None

    async def _fetch_updates(
        self,
        limit: Optional[int],
        timeout: int,
        allowed_updates: Optional[Sequence[str]],
        handle: CancellationHandle,
    ) -> Optional[List[Update]]:
        offset = self._state.last_update_id + 1
        updates: Optional[List[Update]] = None
        while True:
            try:
                updates = await self.client.get_updates(
                    offset,
                    limit=limit,
                    timeout=timeout,
                    allowed_updates=allowed_updates,
                    signal=handle,
                )
            except Exception as e:
                await self._handle_polling_error(e, handle)
            if updates is not None or not self._state.running:
                break
        return updates if self._state.running else None

    async def _handle_polling_error(self, error: Exception, handle: CancellationHandle) -> None:
        if not self._state.running:
            logger.debug("Pending getUpdates request cancelled")
            return

        sleep_seconds = self.polling_config.retry_interval_seconds
        if isinstance(error, PlatformError):
            logger.error(error.message)
            # Unauthorized or a conflicting session elsewhere
            if error.error_code in (401, 409):
                raise error
            if error.error_code == 429:
                logger.warning("Rate limited by the platform")
                if error.retry_after is not None:
                    sleep_seconds = error.retry_after
        else:
            logger.warning(f"Call to getUpdates failed: {error}")

        logger.warning(f"Call to getUpdates failed, retrying in {sleep_seconds} seconds ...")
        try:
            await sleep(sleep_seconds, handle)
        except RequestCancelledError:
            logger.debug("Retry wait cancelled")


def validate_allowed_updates(observed: Iterable[str], allowed: Optional[Sequence[str]] = None) -> List[str]:
    """Warn about listened-to update types the platform will not deliver.

    Returns the offending types.
    """
    allowed_set = set(allowed if allowed is not None else DEFAULT_UPDATE_TYPES)
    impossible = sorted(u for u in set(observed) if u not in allowed_set)
    if impossible:
        logger.warning(
            "You registered listeners for the following update types, but they are "
            f"not in `allowed_updates` so they may not be received: {', '.join(impossible)}",
            extra={"extra_fields": {"missing_update_types": impossible}},
        )
    return impossible
