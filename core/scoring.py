"""
Multi-factor pump scoring.

Five independent sub-signals, each capped, summed into a composite score:

- Price momentum      (0-30 points)
- Volume spike        (0-25 points)
- Order book imbalance (0-20 points)
- Trade velocity      (0-15 points)
- Buy pressure        (0-10 points)

All functions here are pure; windows are taken from the tail of the history
(most recent last).
"""
from statistics import fmean
from typing import List, Optional, Sequence

from pydantic import BaseModel

from core.errors import InsufficientDataError
from core.models import OrderBook, PriceSample, ScoreMetrics, ScoreResult, Trade, VolumeSample

MIN_HISTORY_SAMPLES = 10
ORDER_BOOK_LEVELS = 10
MAX_TRADES = 100
VELOCITY_WINDOW_MS = 60_000

PRICE_MOMENTUM_CAP = 30.0
VOLUME_SPIKE_CAP = 25.0
IMBALANCE_CAP = 20.0
VELOCITY_CAP = 15.0
BUY_PRESSURE_CAP = 10.0


class ScoringThresholds(BaseModel):
    """Trigger thresholds for each sub-signal and the composite score."""
    min_price_increase_pct: float = 2.0
    min_volume_increase_pct: float = 150.0
    order_book_imbalance_threshold: float = 1.5
    trade_velocity_threshold: float = 2.5
    buy_pressure_threshold_pct: float = 60.0
    pump_score_threshold: float = 50.0


def ensure_sufficient_history(
    symbol: str, prices: Sequence[PriceSample], volumes: Sequence[VolumeSample]
):
    """Raise InsufficientDataError unless both windows hold enough samples."""
    if len(prices) < MIN_HISTORY_SAMPLES or len(volumes) < MIN_HISTORY_SAMPLES:
        raise InsufficientDataError(symbol, len(prices), len(volumes))


def price_momentum(prices: Sequence[PriceSample]) -> float:
    """Percent change of the mean of the last 5 prices over the 5 before them."""
    window = [p.price for p in prices[-MIN_HISTORY_SAMPLES:]]
    recent_avg = fmean(window[-5:])
    older_avg = fmean(window[:-5])
    if older_avg == 0:
        return 0.0
    return (recent_avg - older_avg) / older_avg * 100


def volume_spike(volumes: Sequence[VolumeSample]) -> float:
    """Percent change of the mean of the last 3 volumes over the 7 before them."""
    window = [v.volume for v in volumes[-MIN_HISTORY_SAMPLES:]]
    recent_avg = fmean(window[-3:])
    older_avg = fmean(window[:-3])
    if older_avg == 0:
        return 0.0
    return (recent_avg - older_avg) / older_avg * 100


def order_book_imbalance(order_book: Optional[OrderBook], levels: int = ORDER_BOOK_LEVELS) -> float:
    """Bid notional over ask notional across the top levels. 0 if unavailable."""
    if order_book is None or not order_book.bids or not order_book.asks:
        return 0.0

    bid_volume = sum(price * qty for price, qty in order_book.bids[:levels])
    ask_volume = sum(price * qty for price, qty in order_book.asks[:levels])
    if ask_volume <= 0:
        return 0.0
    return bid_volume / ask_volume


def trade_velocity(trades: Optional[Sequence[Trade]], now: float) -> float:
    """
    Trade count in the last minute over the count in the minute before.

    Args:
        trades: Recent trades, oldest first
        now: Current time in epoch seconds

    Returns:
        Velocity ratio; 0 with fewer than 2 trades
    """
    if not trades or len(trades) < 2:
        return 0.0

    now_ms = now * 1000
    recent_count = 0
    older_count = 0
    for trade in trades[-MAX_TRADES:]:
        age = now_ms - trade.time
        if age < VELOCITY_WINDOW_MS:
            recent_count += 1
        elif age < 2 * VELOCITY_WINDOW_MS:
            older_count += 1

    return recent_count / max(older_count, 1)


def buy_pressure(trades: Optional[Sequence[Trade]]) -> float:
    """Percent of trade notional initiated by aggressive buyers."""
    if not trades:
        return 0.0

    buy_volume = 0.0
    sell_volume = 0.0
    for trade in trades[-MAX_TRADES:]:
        notional = trade.qty * trade.price
        if trade.is_buyer_maker:
            sell_volume += notional
        else:
            buy_volume += notional

    total = buy_volume + sell_volume
    if total <= 0:
        return 0.0
    return buy_volume / total * 100


def score_symbol(
    symbol: str,
    prices: Sequence[PriceSample],
    volumes: Sequence[VolumeSample],
    order_book: Optional[OrderBook],
    trades: Optional[Sequence[Trade]],
    now: float,
    thresholds: Optional[ScoringThresholds] = None,
) -> ScoreResult:
    """
    Compute the composite pump score for one symbol.

    Raises:
        InsufficientDataError: fewer than 10 price or volume samples
    """
    thresholds = thresholds or ScoringThresholds()
    ensure_sufficient_history(symbol, prices, volumes)

    metrics = ScoreMetrics(
        short_term_price_increase_pct=price_momentum(prices),
        volume_increase_pct=volume_spike(volumes),
        order_book_imbalance=order_book_imbalance(order_book),
        trade_velocity=trade_velocity(trades, now),
        buy_pressure_pct=buy_pressure(trades),
    )

    score = 0.0
    signals: List[str] = []

    if metrics.short_term_price_increase_pct > thresholds.min_price_increase_pct:
        score += min(metrics.short_term_price_increase_pct * 5, PRICE_MOMENTUM_CAP)
        signals.append(f"Price surge: +{metrics.short_term_price_increase_pct:.2f}%")

    if metrics.volume_increase_pct > thresholds.min_volume_increase_pct:
        score += min(metrics.volume_increase_pct / 10, VOLUME_SPIKE_CAP)
        signals.append(f"Volume spike: +{metrics.volume_increase_pct:.0f}%")

    if metrics.order_book_imbalance > thresholds.order_book_imbalance_threshold:
        score += min((metrics.order_book_imbalance - 1) * 10, IMBALANCE_CAP)
        signals.append(f"Order book: {metrics.order_book_imbalance:.2f}x buy pressure")

    if metrics.trade_velocity > thresholds.trade_velocity_threshold:
        score += min((metrics.trade_velocity - 1) * 7.5, VELOCITY_CAP)
        signals.append(f"Trade velocity: {metrics.trade_velocity:.2f}x increase")

    if metrics.buy_pressure_pct > thresholds.buy_pressure_threshold_pct:
        score += min((metrics.buy_pressure_pct - 50) / 5, BUY_PRESSURE_CAP)
        signals.append(f"Buy pressure: {metrics.buy_pressure_pct:.1f}%")

    return ScoreResult(
        symbol=symbol,
        composite_score=score,
        sub_signals=signals,
        metrics=metrics,
        is_pump_candidate=score > thresholds.pump_score_threshold,
    )
