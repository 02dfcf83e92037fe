"""
Pydantic models for Pump Detector data structures.
"""
from datetime import datetime
from typing import Optional, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SymbolInfo(BaseModel):
    """Tradable pair from the exchangeInfo endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    status: str
    quote_asset: str = Field(alias="quoteAsset")


class Ticker(BaseModel):
    """24h rolling ticker snapshot for one symbol."""
    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    last_price: float = Field(alias="lastPrice")
    volume: float  # base asset volume, rolling 24h
    quote_volume: float = Field(alias="quoteVolume")
    price_change_percent: float = Field(alias="priceChangePercent")


class OrderBook(BaseModel):
    """Top-of-book depth snapshot. Levels are (price, quantity), best first."""
    bids: List[Tuple[float, float]] = Field(default_factory=list)
    asks: List[Tuple[float, float]] = Field(default_factory=list)


class Trade(BaseModel):
    """A single public trade."""
    model_config = ConfigDict(populate_by_name=True)

    price: float
    qty: float
    time: int  # timestamp in milliseconds
    is_buyer_maker: bool = Field(alias="isBuyerMaker")  # True = aggressive sell


class PriceSample(BaseModel):
    """One observation of last-trade price."""
    price: float
    observed_at: float  # epoch seconds


class VolumeSample(BaseModel):
    """One observation of rolling 24h volume (as reported, not a delta)."""
    volume: float
    observed_at: float  # epoch seconds


class MarketSnapshot(BaseModel):
    """Per-scan market data for one symbol. Not retained between scans."""
    ticker: Ticker
    order_book: Optional[OrderBook] = None  # None = fetch failed this cycle
    recent_trades: Optional[List[Trade]] = None  # None = fetch failed this cycle


class ScoreMetrics(BaseModel):
    """Raw sub-signal metrics behind a composite score."""
    short_term_price_increase_pct: float = 0.0
    volume_increase_pct: float = 0.0
    order_book_imbalance: float = 0.0
    trade_velocity: float = 0.0
    buy_pressure_pct: float = 0.0


class ScoreResult(BaseModel):
    """Composite score for one symbol in one scan."""
    symbol: str
    composite_score: float
    sub_signals: List[str] = Field(default_factory=list)
    metrics: ScoreMetrics
    is_pump_candidate: bool = False


class CooldownEntry(BaseModel):
    """Last alert time for a symbol that has recently alerted."""
    symbol: str
    last_alert_at: float  # epoch seconds


class PumpAlert(BaseModel):
    """Payload of the pump-detected event."""
    symbol: str
    current_price: float
    price_change_percent: float
    score: ScoreResult
    detected_at: datetime

    @property
    def composite_score(self) -> float:
        return self.score.composite_score

    @property
    def signals(self) -> List[str]:
        return self.score.sub_signals


class DetectorStatus(BaseModel):
    """Detector status exposed to the control surface."""
    is_running: bool
    tracked_symbol_count: int
    recently_alerted_symbols: List[str] = Field(default_factory=list)
    scans_completed: int = 0
    last_scan_at: Optional[datetime] = None
    in_flight_scans: int = 0
