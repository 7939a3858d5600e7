"""Transport-agnostic bot message handling.

Shared by the webhook route and the long-poll runner: read an update, run
the conversation turn, send the prose and one card per vendor.
"""

import os

import structlog

from backend.agent.sourcing import SourcingAgent
from backend.api.schemas import Vendor
from backend.bot.telegram_client import TelegramClient
from backend.core.conversation import Command, ConversationManager, parse_command
from backend.core.session_store import DEFAULT_TTL_SECONDS, SessionStore, create_session_store
from backend.core.vendors import coerce_vendor

logger = structlog.get_logger(__name__)

GREETING = (
    "👋 Hello! I'm your Vendor Finder Assistant.\n\n"
    "I can help you source suppliers for materials and products.\n"
    "Just tell me what you're looking for! (e.g., 'I need 5000 units of SS304 valves')"
)
CLEARED = "🧹 Conversation history cleared."
ERROR_REPLY = "⚠️ Sorry, I encountered an error while processing your request. Please try again later."


def format_vendor_card(vendor: Vendor) -> str:
    """Markdown card for one vendor."""
    location = ", ".join(part for part in (vendor.city, vendor.country) if part) or "N/A"
    rating = f"{vendor.rating:g}" if vendor.rating else "N/A"
    return (
        f"🏢 *{vendor.name}*\n"
        f"📍 Location: {location}\n"
        f"📞 Contact: {vendor.contact or 'N/A'}\n"
        f"🌐 Website: {vendor.website or 'N/A'}\n"
        f"⭐ Rating: {rating}\n"
        f"📝 Notes: {vendor.notes or 'No notes'}"
    )


def extract_message(update: dict) -> tuple[int | None, str | None]:
    """Pull (chat_id, text) out of a Telegram update; either may be None."""
    message = (update or {}).get("message") or {}
    chat_id = (message.get("chat") or {}).get("id")
    text = message.get("text")
    return chat_id, text


class BotHandler:
    def __init__(self, conversations: ConversationManager, transport: TelegramClient):
        self.conversations = conversations
        self.transport = transport

    def handle_update(self, update: dict) -> bool:
        """Process one inbound update.

        Returns:
            True if the update carried a text message and was handled.
        """
        chat_id, text = extract_message(update)
        if chat_id is None or not text:
            logger.debug("bot.update_ignored", has_chat=chat_id is not None)
            return False

        self.process_message(chat_id, text)
        return True

    def process_message(self, chat_id: int, text: str) -> None:
        logger.info("bot.message", chat_id=chat_id, msg_len=len(text))
        key = str(chat_id)

        command = parse_command(text)
        if command is not None:
            self.conversations.handle_text(key, text)
            try:
                self.transport.send_text(chat_id, GREETING if command is Command.START else CLEARED)
            except Exception as e:
                logger.error("bot.command_reply_failed", chat_id=chat_id, command=command.value,
                             error=str(e))
            return

        try:
            self.transport.send_chat_action(chat_id, "typing")
        except Exception as e:
            logger.warning("bot.typing_failed", chat_id=chat_id, error=str(e))

        try:
            outcome = self.conversations.handle_text(key, text)
            if outcome.text:
                self.transport.send_text(chat_id, outcome.text, markdown=True)

            for raw in outcome.vendors:
                vendor = coerce_vendor(raw)
                if vendor is not None:
                    self.transport.send_text(chat_id, format_vendor_card(vendor), markdown=True)

        except Exception as e:
            logger.error("bot.process_failed", chat_id=chat_id, error=str(e))
            self.transport.send_text(chat_id, ERROR_REPLY)


def create_bot_handler(agent: SourcingAgent, store: SessionStore | None = None,
                       transport: TelegramClient | None = None) -> BotHandler:
    """Wire a BotHandler from its collaborators, defaulting to env config."""
    ttl = int(os.environ.get("SESSION_TTL_SECONDS", str(DEFAULT_TTL_SECONDS)))
    conversations = ConversationManager(
        agent, store if store is not None else create_session_store(), ttl=ttl)
    return BotHandler(conversations, transport if transport is not None else TelegramClient())
