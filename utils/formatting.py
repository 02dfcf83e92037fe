"""
Message formatting utilities for Telegram pump notifications.
"""
from core.models import PumpAlert

BINANCE_TRADE_URL = "https://www.binance.com/en/trade/{symbol}"


def format_price(price: float) -> str:
    """Format a price with precision suited to its magnitude."""
    if price >= 1000:
        return f"${price:,.2f}"
    elif price >= 1:
        return f"${price:.4f}"
    else:
        return f"${price:.8f}".rstrip("0").rstrip(".")


def format_percent(value: float) -> str:
    """Format a signed percentage."""
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.2f}%"


def format_pump_notification(alert: PumpAlert) -> str:
    """
    Format a pump alert into a Telegram message.

    Args:
        alert: The detected pump

    Returns:
        Formatted plain-text message with emojis
    """
    signal_lines = "\n".join(f"✓ {signal}" for signal in alert.signals)

    lines = [
        "🚀 PUMP DETECTED - EARLY SIGNAL 🚀",
        "",
        f"💎 Coin: {alert.symbol}",
        f"💰 Current Price: {format_price(alert.current_price)}",
        f"📊 24h Change: {format_percent(alert.price_change_percent)}",
        "",
        f"🔥 Pump Score: {alert.composite_score:.1f}/100",
        "",
        "Detection Signals:",
        signal_lines,
        "",
        f"⏰ Time: {alert.detected_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        f"📈 Binance: {BINANCE_TRADE_URL.format(symbol=alert.symbol)}",
        "",
        "⚠️ Risk Warning: Always DYOR and use proper risk management. "
        "This is not financial advice.",
    ]
    return "\n".join(lines)
