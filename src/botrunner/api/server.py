"""FastAPI server setup for push delivery."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ..config.schema import Config
from ..logging_config import get_logger
from ..runtime.bot import Bot

logger = get_logger(__name__)


def create_app(bot: Bot, config: Config, *, close_client: bool = False) -> FastAPI:
    """Create the webhook application for ``bot``.

    Startup fetches the bot identity and, when ``webhook.public_url`` is
    configured, registers the webhook with the platform. With
    ``close_client`` the bot's client is closed on shutdown.
    """
    webhook = config.webhook

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await bot.init()
        if webhook.public_url:
            url = webhook.public_url.rstrip("/") + webhook.path
            await bot.client.call(
                "setWebhook",
                {
                    "url": url,
                    "secret_token": webhook.secret_token,
                    "allowed_updates": config.polling.allowed_updates,
                },
            )
            logger.info("Webhook registered", extra={"extra_fields": {"url": url}})
        yield
        if close_client:
            await bot.client.aclose()
        logger.info("Webhook server stopped")

    app = FastAPI(
        title="botrunner",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.bot = bot
    app.state.webhook_config = webhook

    # Register routes
    from .routes import health, webhook as webhook_routes

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(webhook_routes.create_router(webhook.path), tags=["webhook"])

    logger.info(
        "FastAPI application created",
        extra={"extra_fields": {"webhook_path": webhook.path, "secret_token": bool(webhook.secret_token)}},
    )

    return app
