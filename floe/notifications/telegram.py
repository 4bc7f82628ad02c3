"""Telegram notification channel for feeder events."""
from __future__ import annotations

import html
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/sendMessage"
REQUEST_TIMEOUT = 15


class TelegramNotifier:
    """Send feeder alerts and logs via Telegram bots."""

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id

    async def _send_message(self, text: str, bot_token: str, silent: bool) -> bool:
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_notification": silent,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                API_URL.format(token=bot_token),
                json=payload,
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
            ) as response:
                if response.status != 200:
                    logger.error("Telegram API returned status %s", response.status)
                    return False
                return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Unmuted message on the alert bot; ``subject`` becomes a bold header."""
        text = html.escape(message)
        if subject:
            text = f"<b>{html.escape(subject)}</b>\n\n{text}"
        sent = await self._send_message(text, self.alert_bot_token, silent=False)
        if sent:
            logger.info("Telegram alert sent")
        return sent

    async def send_log(self, message: str, silent: bool = True) -> bool:
        sent = await self._send_message(html.escape(message), self.log_bot_token, silent)
        if sent:
            logger.debug("Telegram log sent")
        return sent
