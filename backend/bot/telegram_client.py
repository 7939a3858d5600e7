"""Thin Telegram Bot API client over httpx.

Markdown messages that Telegram refuses to render are resent as plain text.
"""

import os

import httpx
import structlog

logger = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramError(Exception):
    pass


class TelegramClient:
    """send_text / send_chat_action / get_updates for one bot token."""

    def __init__(self, token: str | None = None, base_url: str = TELEGRAM_API_URL,
                 http_client: httpx.Client | None = None):
        self.token = token if token is not None else os.environ.get("TELEGRAM_BOT_TOKEN", "")
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=30.0)

    def is_configured(self) -> bool:
        return bool(self.token)

    def _call(self, method: str, payload: dict, timeout: float | None = None) -> dict:
        url = f"{self.base_url}/bot{self.token}/{method}"
        kwargs = {"json": payload}
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = self._client.post(url, **kwargs)
        response.raise_for_status()
        data = response.json()
        if not data.get("ok", False):
            raise TelegramError(data.get("description", f"{method} failed"))
        return data.get("result")

    def send_text(self, chat_id: int | str, text: str, markdown: bool = False) -> dict:
        """Send a message, falling back to plain text if Markdown is rejected.

        Args:
            chat_id: Target chat.
            text: Message body.
            markdown: Ask Telegram to render Markdown.

        Returns:
            The sent Message object from the Bot API.

        Raises:
            httpx.HTTPError: If the plain-text send fails too.
        """
        payload = {"chat_id": chat_id, "text": text}
        if not markdown:
            return self._call("sendMessage", payload)

        try:
            return self._call("sendMessage", {**payload, "parse_mode": "Markdown"})
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 400:
                raise
            logger.warning("telegram.markdown_rejected", chat_id=chat_id,
                           detail=e.response.text[:200])
        return self._call("sendMessage", payload)

    def send_chat_action(self, chat_id: int | str, action: str = "typing") -> None:
        self._call("sendChatAction", {"chat_id": chat_id, "action": action})

    def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict]:
        """Long-poll for new updates."""
        payload = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        return self._call("getUpdates", payload, timeout=timeout + 10) or []

    def close(self) -> None:
        self._client.close()
