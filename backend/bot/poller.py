"""Long-poll runner for local development.

Usage:
  python -m backend.bot.poller
"""

import sys
import time

import httpx
import structlog
from dotenv import load_dotenv

from backend.agent.sourcing import SourcingAgent
from backend.bot.handler import BotHandler, create_bot_handler
from backend.bot.telegram_client import TelegramClient, TelegramError
from backend.core.llm_gateway import ModelGateway

logger = structlog.get_logger(__name__)

ERROR_BACKOFF_SECONDS = 5


def poll_once(handler: BotHandler, client: TelegramClient, offset: int | None,
              timeout: int = 30) -> int | None:
    """Fetch one batch of updates and handle them in order.

    Returns:
        The offset to use for the next call.
    """
    for update in client.get_updates(offset=offset, timeout=timeout):
        offset = update["update_id"] + 1
        try:
            handler.handle_update(update)
        except Exception as e:
            logger.error("poller.update_failed", update_id=update["update_id"], error=str(e))
    return offset


def run_polling(handler: BotHandler, client: TelegramClient) -> None:
    offset = None
    logger.info("poller.started")
    while True:
        try:
            offset = poll_once(handler, client, offset)
        except (httpx.HTTPError, TelegramError) as e:
            logger.warning("poller.fetch_failed", error=str(e), retry_in=ERROR_BACKOFF_SECONDS)
            time.sleep(ERROR_BACKOFF_SECONDS)


def main() -> int:
    load_dotenv()
    client = TelegramClient()
    if not client.is_configured():
        logger.error("poller.no_token", hint="Set TELEGRAM_BOT_TOKEN in .env")
        return 1

    handler = create_bot_handler(SourcingAgent(ModelGateway()), transport=client)
    try:
        run_polling(handler, client)
    except KeyboardInterrupt:
        logger.info("poller.stopped")
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
