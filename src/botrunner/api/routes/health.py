"""Health check endpoints."""

from fastapi import APIRouter, Request

from ...logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    bot = request.app.state.bot

    logger.debug("Health check requested")

    return {
        "status": "healthy",
        "bot": bot.me.username if bot.is_inited() else None,
        "running": bot.is_running,
        "polling_status": bot.status.value,
    }
