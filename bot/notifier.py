"""
Notification system for sending pump alerts to Telegram.
Handles message formatting and delivery with rate limiting.
"""
import asyncio
import logging
from typing import Optional, Tuple

from aiogram import Bot
from aiogram.exceptions import TelegramRetryAfter, TelegramForbiddenError

from core.errors import ConfigurationError
from core.models import PumpAlert
from utils.formatting import format_pump_notification

logger = logging.getLogger(__name__)


def parse_chat_destination(chat_config: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """
    Parse chat destination from config string.

    Args:
        chat_config: Either "chat_id" or "chat_id:thread_id"

    Returns:
        Tuple of (chat_id, message_thread_id)
    """
    if not chat_config:
        return None, None

    try:
        if ':' in chat_config:
            chat_id_str, thread_id_str = chat_config.split(':', 1)
            return int(chat_id_str), int(thread_id_str)
        else:
            return int(chat_config), None
    except ValueError:
        logger.error(f"Invalid chat destination format: {chat_config}")
        return None, None


class Notifier:
    """
    Sends pump alerts to the configured Telegram chat.
    Missing configuration degrades to log-only delivery.
    """

    def __init__(self, bot: Optional[Bot], chat_config: Optional[str]):
        """Initialize notifier with bot instance and destination chat."""
        self.bot = bot
        self.chat_id, self.thread_id = parse_chat_destination(chat_config)
        self._rate_limit_delay = 0.05  # 50ms between messages
        self._blocked = False

    @property
    def configured(self) -> bool:
        return self.bot is not None and self.chat_id is not None and not self._blocked

    async def notify_pump(self, alert: PumpAlert):
        """Send pump notification. Never raises."""
        try:
            message = format_pump_notification(alert)
            if await self._send_message(message):
                logger.info(f"✅ Alert sent for {alert.symbol}")
            else:
                logger.warning(f"Alert for {alert.symbol} not delivered")
        except ConfigurationError:
            logger.info("Telegram not configured, skipping alert")
        except Exception as e:
            logger.error(f"Error sending pump notification for {alert.symbol}: {e}")

    async def _send_message(self, text: str) -> bool:
        """
        Send message with rate limiting and error handling.

        Returns:
            True if Telegram accepted the message, False if the bot is blocked

        Raises:
            ConfigurationError: no bot or chat configured
        """
        if not self.configured:
            raise ConfigurationError("Telegram bot token or chat id not configured")

        # Rate limiting
        await asyncio.sleep(self._rate_limit_delay)

        try:
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                message_thread_id=self.thread_id,
                parse_mode=None,  # Plain text for better emoji support
                disable_web_page_preview=True
            )
            return True

        except TelegramRetryAfter as e:
            # Telegram rate limit hit
            logger.warning(f"Rate limit hit for chat {self.chat_id}, waiting {e.retry_after}s")
            await asyncio.sleep(e.retry_after)
            # Retry once
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                message_thread_id=self.thread_id,
                parse_mode=None,
                disable_web_page_preview=True
            )
            return True

        except TelegramForbiddenError:
            # Bot blocked or removed from the chat
            logger.warning(f"Bot blocked or removed from chat {self.chat_id}")
            self._blocked = True
            return False
