"""Main entry point for the botrunner command."""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional, Set

from .config import Config, reload_config
from .context import Context
from .errors import BotRunnerError, ConfigurationError
from .logging_config import LogContext, get_logger, setup_logging
from .pipeline.nodes import NextFn
from .runtime.bot import Bot


async def echo(ctx: Context, next_: NextFn) -> None:
    """Answer text messages with their own text."""
    message = ctx.update.get("message") or {}
    text = message.get("text")
    chat_id = (message.get("chat") or {}).get("id")
    if text is None or chat_id is None:
        await next_()
        return
    await ctx.api.call("sendMessage", {"chat_id": chat_id, "text": text})


def create_bot(config: Config) -> Bot:
    """Build the bot used by the command line, with the echo pipeline."""
    bot = Bot.from_config(config)
    bot.on("message", echo)
    return bot


async def run_polling(bot: Bot) -> None:
    """Long poll until interrupted, then save the offset."""
    logger = get_logger(__name__)
    loop = asyncio.get_running_loop()
    stop_tasks: Set[asyncio.Future] = set()

    def request_stop() -> None:
        task = asyncio.ensure_future(bot.stop())
        stop_tasks.add(task)
        task.add_done_callback(stop_tasks.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still interrupts
            logger.debug(f"Signal handler for {sig.name} not supported")

    try:
        await bot.init()
        with LogContext(logger, bot=bot.me.username):
            await bot.start()
        if stop_tasks:
            await asyncio.gather(*stop_tasks)
    finally:
        await bot.client.aclose()


def poll_command(config: Config) -> int:
    """Run the bot with long polling.

    Returns:
        Exit code (0 for success)
    """
    logger = get_logger(__name__)
    bot = create_bot(config)

    logger.info(
        "Starting botrunner in polling mode",
        extra={"extra_fields": {"timeout": config.polling.timeout_seconds, "limit": config.polling.limit}},
    )
    asyncio.run(run_polling(bot))
    return 0


def webhook_command(config: Config) -> int:
    """Serve the webhook application with uvicorn.

    Returns:
        Exit code (0 for success)
    """
    logger = get_logger(__name__)

    # Import here to keep polling mode free of the server stack
    import uvicorn

    from .api.server import create_app

    bot = create_bot(config)
    app = create_app(bot, config, close_client=True)

    logger.info(
        "Starting webhook server",
        extra={
            "extra_fields": {
                "host": config.webhook.host,
                "port": config.webhook.port,
                "path": config.webhook.path,
            }
        },
    )

    uvicorn.run(
        app,
        host=config.webhook.host,
        port=config.webhook.port,
        log_config=None,  # Use our custom logging
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="botrunner",
        description="Run a bot with long polling or as a webhook server.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="TOML config file used instead of the packaged defaults",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("poll", help="Fetch updates with long polling")
    subparsers.add_parser("webhook", help="Receive updates over HTTP")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    try:
        # Load configuration
        config = reload_config(args.config)

        # Setup logging
        setup_logging(config.logging)

        if args.command == "poll":
            return poll_command(config)
        return webhook_command(config)

    except KeyboardInterrupt:
        logger = get_logger(__name__)
        logger.info("Application interrupted by user")
        return 0

    except ConfigurationError as e:
        logger = get_logger(__name__)
        logger.error(f"Configuration error: {e.message}")
        return 2

    except BotRunnerError as e:
        logger = get_logger(__name__)
        logger.error(f"Bot failed: {e}", exc_info=True)
        return 1

    except Exception:
        logger = get_logger(__name__)
        logger.error("Application failed to start", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
