"""Telegram webhook endpoint.

POST /telegram/webhook - handle one bot update
GET /telegram/webhook - liveness string
"""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/telegram")

LIVENESS_TEXT = "Vendor Nexus Telegram Bot is active!"


@router.get("/webhook", response_class=PlainTextResponse)
def webhook_health():
    return LIVENESS_TEXT


@router.post("/webhook", response_class=PlainTextResponse)
async def webhook(req: Request):
    """Handle an update; anything without a text message is acknowledged and dropped."""
    bot = req.app.state.bot
    if bot is None or not bot.transport.is_configured():
        logger.error("webhook.no_token", hint="Set TELEGRAM_BOT_TOKEN in .env")
        return PlainTextResponse("TELEGRAM_BOT_TOKEN is missing", status_code=500)

    body = await req.body()
    if not body:
        return LIVENESS_TEXT

    try:
        update = await req.json()
    except ValueError:
        logger.warning("webhook.bad_json", size=len(body))
        return "OK"
    if not isinstance(update, dict):
        logger.warning("webhook.unexpected_body", type=type(update).__name__)
        return "OK"

    try:
        await run_in_threadpool(bot.handle_update, update)
    except Exception as e:
        logger.error("webhook.failed", error=str(e))
        return PlainTextResponse(f"Server Error: {e}", status_code=500)

    return "OK"
