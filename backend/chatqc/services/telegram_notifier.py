"""Telegram notifications via the Bot API

Only plain sendMessage is supported.
"""

import logging
from typing import Optional

import httpx

from chatqc.core.config import Settings

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram message sender (Bot API)"""

    API_BASE = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Optional["TelegramNotifier"]:
        """None when the bot token or chat id is missing."""
        if not settings.telegram_configured:
            return None
        return cls(
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def send_message(
        self,
        message: str,
        parse_mode: Optional[str] = None,
    ) -> Optional[str]:
        """
        Send a text message.

        Args:
            message: message text
            parse_mode: 'HTML' or 'Markdown'

        Returns:
            Telegram message id, or None if sending failed. Never raises.
        """
        url = f"{self.API_BASE}/bot{self._bot_token}/sendMessage"

        payload = {
            "chat_id": self._chat_id,
            "text": message,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                result = response.json()

                if result.get("ok"):
                    message_id = (result.get("result") or {}).get("message_id")
                    logger.debug(f"Sent Telegram message {message_id} to {self._chat_id}")
                    return str(message_id) if message_id is not None else ""

                logger.error(f"Telegram rejected message: {result.get('description', 'unknown error')}")
                return None
        except Exception as e:
            logger.error(f"Bot API request failed: {e}")
            return None
