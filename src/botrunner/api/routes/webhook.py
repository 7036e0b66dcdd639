"""Webhook endpoint: one pushed update per request."""

import secrets
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from ...client.envelope import ReplyEnvelope, reply_methods
from ...errors import PipelineError
from ...logging_config import get_logger
from ...models import Update

logger = get_logger(__name__)


def create_router(path: str) -> APIRouter:
    """Build a router serving the webhook at ``path``."""
    router = APIRouter()
    router.add_api_route(path, receive_update, methods=["POST"])
    return router


async def receive_update(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
):
    """Dispatch a pushed update and answer with the captured reply call."""
    bot = request.app.state.bot
    webhook_config = request.app.state.webhook_config
    expected = webhook_config.secret_token

    if expected and not secrets.compare_digest(x_telegram_bot_api_secret_token or "", expected):
        logger.warning("Webhook request with wrong secret token rejected")
        raise HTTPException(status_code=401, detail="Wrong secret token")

    try:
        payload = await request.json()
        update = Update.from_dict(payload)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Invalid update payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid update payload") from e

    envelope = ReplyEnvelope()
    try:
        await bot.handle_update(update, envelope, reply_methods(webhook_config.reply_methods))
    except PipelineError as err:
        logger.error(
            f"Error in middleware while handling update {update.update_id}",
            exc_info=err.error,
            extra={"extra_fields": {"update_id": update.update_id}},
        )
        raise HTTPException(status_code=500, detail=err.message) from err

    return JSONResponse(envelope.payload or {})
