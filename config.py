"""
Configuration module for Pump Detector.
Loads environment variables and provides application settings.
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram Bot Configuration (optional - alerts are log-only without it)
    bot_token: Optional[str] = None

    # Alert destination
    # Format: "chat_id" or "chat_id:thread_id" for topics
    alert_chat_id: Optional[str] = None

    # Binance REST API
    binance_rest_url: str = "https://api.binance.com"
    http_timeout_s: float = 10.0
    quote_asset: str = "USDT"

    # Scan scheduling
    scan_interval_ms: int = 5000
    universe_refresh_interval_s: float = 3600.0
    max_concurrent_symbols: int = 50
    # Overlapping ticks are allowed unless this is set
    skip_overlapping_scans: bool = False

    # Detection thresholds
    min_price_increase_pct: float = 2.0
    min_volume_increase_pct: float = 150.0
    retention_window_s: float = 300.0
    min_quote_volume_24h: float = 100000.0
    order_book_imbalance_threshold: float = 1.5
    trade_velocity_threshold: float = 2.5
    buy_pressure_threshold_pct: float = 60.0
    pump_score_threshold: float = 50.0
    cooldown_window_s: float = 900.0

    # Market data request sizes
    order_book_depth: int = 20
    recent_trades_limit: int = 100

    # Control API
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    auto_start: bool = False

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def telegram_configured(self) -> bool:
        """Whether both the bot token and the alert chat are set."""
        return bool(self.bot_token and self.alert_chat_id)


def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


# Create log directory if it doesn't exist
def ensure_log_directory(settings: Optional[Settings] = None) -> Path:
    """Ensure the log directory exists."""
    settings = settings or get_settings()
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir
