"""
Telegram Bot API client for sending messages.

Simple wrapper for sending messages back to Telegram.
"""

import html
import re
from typing import Optional

import httpx
from telegram.constants import ChatAction, MessageLimit, ParseMode

from ..config import Settings
from ..errors import ConfigurationError
from ..logging_config import get_logger
from ..results import AdapterResult

logger = get_logger("telegram")

TRUNCATION_MARKER = "\n…"
TAG_RE = re.compile(r"</?[a-zA-Z]+[^<>]*>")


def strip_markup(text: str) -> str:
    """Plain-text rendering of an HTML message: tags removed, entities decoded."""
    return html.unescape(TAG_RE.sub("", text))


def clip_message(text: str, limit: int = MessageLimit.MAX_TEXT_LENGTH) -> str:
    """Clip text to Telegram's per-message limit."""
    if len(text) <= limit:
        return text
    return text[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


class TelegramClient:
    """Outbound half of the chat transport."""

    BASE_URL = "https://api.telegram.org"

    def __init__(self, settings: Settings, http: httpx.AsyncClient, base_url: str = None):
        self.token = settings.telegram_bot_token
        self.timeout = settings.http_timeout_seconds
        self.http = http
        self.base_url = (base_url or self.BASE_URL).rstrip("/")

    def _method_url(self, method: str) -> str:
        if not self.token:
            raise ConfigurationError("Telegram", "TELEGRAM_BOT_TOKEN")
        return f"{self.base_url}/bot{self.token}/{method}"

    async def send_message(
        self,
        chat_id: int,
        text: str,
        parse_mode: Optional[str] = ParseMode.HTML,
    ) -> AdapterResult[None]:
        """
        Send message to Telegram user.

        Args:
            chat_id: Telegram chat ID
            text: Message text (clipped to 4096 chars)
            parse_mode: Parse mode, HTML by default; None for plain text

        Raises:
            ConfigurationError: if TELEGRAM_BOT_TOKEN is not set
        """
        url = self._method_url("sendMessage")

        payload = {
            "chat_id": chat_id,
            "text": clip_message(text),
            "disable_web_page_preview": True,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode

        try:
            response = await self.http.post(url, json=payload, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.error(f"sendMessage to chat_id={chat_id} failed: {e.__class__.__name__}")
            return AdapterResult.fail(f"Telegram request failed: {e.__class__.__name__}")

        if not response.is_success:
            logger.error(f"sendMessage to chat_id={chat_id} -> {response.status_code}: {response.text[:200]}")
            if response.status_code == 400 and parse_mode:
                # Telegram rejected the markup; deliver the same text without it
                return await self.send_message(chat_id, strip_markup(text), parse_mode=None)
            return AdapterResult.fail(f"Telegram API error: {response.status_code}")

        return AdapterResult.ok()

    async def send_chat_action(self, chat_id: int, action: str = ChatAction.TYPING) -> AdapterResult[None]:
        """
        Send chat action (typing indicator).

        Best effort: failures are logged and reported, never raised.
        """
        url = self._method_url("sendChatAction")

        try:
            response = await self.http.post(
                url, json={"chat_id": chat_id, "action": action}, timeout=self.timeout
            )
        except httpx.HTTPError as e:
            logger.debug(f"sendChatAction to chat_id={chat_id} failed: {e.__class__.__name__}")
            return AdapterResult.fail(f"Telegram request failed: {e.__class__.__name__}")

        if not response.is_success:
            return AdapterResult.fail(f"Telegram API error: {response.status_code}")
        return AdapterResult.ok()

    async def send_typing(self, chat_id: int) -> AdapterResult[None]:
        return await self.send_chat_action(chat_id, ChatAction.TYPING)
