"""Shared fixtures and fakes for the pump detector tests."""
import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Set

import pytest

from config import Settings
from core.errors import TransportError
from core.models import OrderBook, PumpAlert, ScoreMetrics, ScoreResult, SymbolInfo, Ticker, Trade


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeFetcher:
    """In-memory MarketDataFetcher with per-call failure injection."""

    def __init__(self, symbols: Optional[List[str]] = None):
        self.universe: List[SymbolInfo] = [
            SymbolInfo(symbol=s, status="TRADING", quote_asset="USDT") for s in (symbols or [])
        ]
        self.tickers: Dict[str, Ticker] = {}
        self.order_books: Dict[str, OrderBook] = {}
        self.trades: Dict[str, List[Trade]] = {}

        self.fail_universe = False
        self.fail_tickers = False
        self.fail_order_book: Set[str] = set()
        self.fail_trades: Set[str] = set()

        self.universe_calls = 0
        self.ticker_calls = 0
        self.order_book_calls: List[str] = []
        self.trade_calls: List[str] = []

        # When set, fetch_tickers calls beyond block_after_calls wait on it
        self.block_tickers: Optional[asyncio.Event] = None
        self.block_after_calls = 1

    def set_ticker(self, symbol: str, price: float, volume: float, quote_volume: float = 1_000_000.0,
                   change_pct: float = 5.0):
        self.tickers[symbol] = Ticker(
            symbol=symbol,
            last_price=price,
            volume=volume,
            quote_volume=quote_volume,
            price_change_percent=change_pct,
        )

    async def fetch_universe(self) -> List[SymbolInfo]:
        self.universe_calls += 1
        if self.fail_universe:
            raise TransportError("exchangeInfo unavailable")
        return list(self.universe)

    async def fetch_tickers(self) -> List[Ticker]:
        self.ticker_calls += 1
        if self.block_tickers is not None and self.ticker_calls > self.block_after_calls:
            await self.block_tickers.wait()
        if self.fail_tickers:
            raise TransportError("ticker unavailable")
        return list(self.tickers.values())

    async def fetch_order_book(self, symbol: str, depth: int) -> Optional[OrderBook]:
        self.order_book_calls.append(symbol)
        if symbol in self.fail_order_book:
            raise TransportError(f"depth unavailable for {symbol}")
        return self.order_books.get(symbol)

    async def fetch_recent_trades(self, symbol: str, limit: int) -> Optional[List[Trade]]:
        self.trade_calls.append(symbol)
        if symbol in self.fail_trades:
            raise TransportError(f"trades unavailable for {symbol}")
        return self.trades.get(symbol)


@pytest.fixture
def settings():
    return Settings(_env_file=None, bot_token=None, alert_chat_id=None)


@pytest.fixture
def clock():
    return FakeClock()


def make_alert(symbol: str = "DOGEUSDT") -> PumpAlert:
    score = ScoreResult(
        symbol=symbol,
        composite_score=75.0,
        sub_signals=["Price surge: +10.00%", "Volume spike: +400%", "Order book: 5.00x buy pressure"],
        metrics=ScoreMetrics(
            short_term_price_increase_pct=10.0,
            volume_increase_pct=400.0,
            order_book_imbalance=5.0,
        ),
        is_pump_candidate=True,
    )
    return PumpAlert(
        symbol=symbol,
        current_price=0.1234,
        price_change_percent=12.5,
        score=score,
        detected_at=datetime(2024, 5, 1, 12, 30, 0),
    )
