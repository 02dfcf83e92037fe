import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.exceptions import TelegramForbiddenError

from bot.notifier import Notifier, parse_chat_destination
from conftest import make_alert
from utils.formatting import format_price, format_pump_notification


def test_parse_chat_destination():
    assert parse_chat_destination(None) == (None, None)
    assert parse_chat_destination("-100123") == (-100123, None)
    assert parse_chat_destination("-100123:7") == (-100123, 7)
    assert parse_chat_destination("not-a-chat") == (None, None)


def test_format_pump_notification_contains_alert_details():
    message = format_pump_notification(make_alert())

    assert "PUMP DETECTED" in message
    assert "Coin: DOGEUSDT" in message
    assert "Pump Score: 75.0/100" in message
    assert "24h Change: +12.50%" in message
    assert "✓ Price surge: +10.00%" in message
    assert "✓ Order book: 5.00x buy pressure" in message
    assert "2024-05-01 12:30:00" in message
    assert "https://www.binance.com/en/trade/DOGEUSDT" in message


def test_format_price_precision():
    assert format_price(65432.1) == "$65,432.10"
    assert format_price(1.5) == "$1.5000"
    assert format_price(0.00001234) == "$0.00001234"


@pytest.mark.asyncio
async def test_unconfigured_notifier_degrades_to_log_only():
    notifier = Notifier(bot=None, chat_config=None)

    await notifier.notify_pump(make_alert())

    assert notifier.configured is False


@pytest.mark.asyncio
async def test_missing_chat_id_skips_send():
    bot = AsyncMock()
    notifier = Notifier(bot=bot, chat_config=None)

    await notifier.notify_pump(make_alert())

    bot.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_notify_pump_sends_to_configured_chat_and_thread():
    bot = AsyncMock()
    notifier = Notifier(bot=bot, chat_config="-100123:7")
    notifier._rate_limit_delay = 0

    alert = make_alert()
    await notifier.notify_pump(alert)

    bot.send_message.assert_awaited_once()
    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == -100123
    assert kwargs["message_thread_id"] == 7
    assert kwargs["text"] == format_pump_notification(alert)


@pytest.mark.asyncio
async def test_send_failure_is_swallowed():
    bot = AsyncMock()
    bot.send_message.side_effect = RuntimeError("network down")
    notifier = Notifier(bot=bot, chat_config="42")
    notifier._rate_limit_delay = 0

    await notifier.notify_pump(make_alert())

    bot.send_message.assert_awaited_once()


@pytest.mark.asyncio
async def test_blocked_bot_is_not_reported_as_sent(caplog):
    caplog.set_level(logging.INFO)
    bot = AsyncMock()
    bot.send_message.side_effect = TelegramForbiddenError(
        method=MagicMock(), message="Forbidden: bot was blocked by the user"
    )
    notifier = Notifier(bot=bot, chat_config="123")
    notifier._rate_limit_delay = 0

    await notifier.notify_pump(make_alert())

    messages = [record.getMessage() for record in caplog.records]
    assert "Bot blocked or removed from chat 123" in messages
    assert "Alert for DOGEUSDT not delivered" in messages
    assert not any("Alert sent" in m for m in messages)
    assert notifier.configured is False


@pytest.mark.asyncio
async def test_successful_send_is_logged(caplog):
    caplog.set_level(logging.INFO)
    notifier = Notifier(bot=AsyncMock(), chat_config="123")
    notifier._rate_limit_delay = 0

    await notifier.notify_pump(make_alert())

    assert "✅ Alert sent for DOGEUSDT" in caplog.text
