"""
Pump detector scan scheduler.

Drives periodic, concurrent evaluation of the symbol universe:
refresh universe -> fetch tickers -> per symbol (bounded fan-out):
record history, fetch order book + trades, score, cooldown gate -> alert.

States: Idle -> Running -> Idle. start() while running is a no-op; stop()
cancels the recurring schedule and lets in-flight scans drain.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, List, Optional, Set

from config import Settings, get_settings
from core.binance_client import MarketDataFetcher
from core.cooldown import CooldownTracker
from core.errors import InsufficientDataError, TransportError
from core.history import HistoryStore
from core.models import DetectorStatus, OrderBook, PumpAlert, Ticker, Trade
from core.scoring import ScoringThresholds, ensure_sufficient_history, score_symbol

logger = logging.getLogger(__name__)


class PumpDetector:
    """Scans the market on a fixed interval and emits pump alerts."""

    def __init__(
        self,
        fetcher: MarketDataFetcher,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the detector.

        Args:
            fetcher: Market data source (BinanceRestClient in production)
            settings: Detector configuration, loaded from the environment if omitted
            clock: Returns the current time in epoch seconds
        """
        self.fetcher = fetcher
        self.settings = settings or get_settings()
        self._clock = clock

        self.history = HistoryStore(retention_window_s=self.settings.retention_window_s)
        self.cooldown = CooldownTracker(cooldown_window_s=self.settings.cooldown_window_s)
        self.thresholds = ScoringThresholds(
            min_price_increase_pct=self.settings.min_price_increase_pct,
            min_volume_increase_pct=self.settings.min_volume_increase_pct,
            order_book_imbalance_threshold=self.settings.order_book_imbalance_threshold,
            trade_velocity_threshold=self.settings.trade_velocity_threshold,
            buy_pressure_threshold_pct=self.settings.buy_pressure_threshold_pct,
            pump_score_threshold=self.settings.pump_score_threshold,
        )

        self.symbols: List[str] = []
        self.is_running = False

        # Callback handler, receives each PumpAlert
        self.on_pump_detected: Optional[Callable] = None

        self._semaphore = asyncio.Semaphore(self.settings.max_concurrent_symbols)
        self._loop_task: Optional[asyncio.Task] = None
        self._scan_tasks: Set[asyncio.Task] = set()
        self._last_universe_refresh: Optional[float] = None
        self.scans_completed = 0
        self.last_scan_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """Refresh the universe, scan once, then scan every interval until stopped."""
        if self.is_running:
            logger.info("Pump detector already running")
            return

        self.is_running = True
        logger.info("🔍 Pump Detector Started")
        logger.info(f"⏱️  Scan interval: {self.settings.scan_interval_ms / 1000} seconds")

        await self.refresh_universe()

        # Initial scan, tracked so wait_drained() covers it
        await self._spawn_scan(refresh_if_stale=False)

        # stop() may have been requested during the initial scan
        if self.is_running and (self._loop_task is None or self._loop_task.done()):
            self._loop_task = asyncio.create_task(self._run_loop(), name="pump-scan-loop")

    async def stop(self):
        """Cancel the recurring schedule. In-flight scans are left to finish."""
        self.is_running = False
        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        logger.info("🛑 Pump Detector Stopped")

    async def wait_drained(self):
        """Wait for all in-flight scans to complete."""
        if self._scan_tasks:
            await asyncio.gather(*list(self._scan_tasks), return_exceptions=True)

    def status(self) -> DetectorStatus:
        """Current detector status for the control surface."""
        return DetectorStatus(
            is_running=self.is_running,
            tracked_symbol_count=len(self.symbols),
            recently_alerted_symbols=self.cooldown.active_symbols(self._clock()),
            scans_completed=self.scans_completed,
            last_scan_at=self.last_scan_at,
            in_flight_scans=len(self._scan_tasks),
        )

    async def _run_loop(self):
        """Fire a scan every scan_interval_ms until cancelled."""
        interval = self.settings.scan_interval_ms / 1000
        while self.is_running:
            await asyncio.sleep(interval)
            if not self.is_running:
                break

            if self.settings.skip_overlapping_scans and self._scan_tasks:
                logger.warning(
                    f"Previous scan still running ({len(self._scan_tasks)} in flight), skipping tick"
                )
                continue

            self._spawn_scan()

    def _spawn_scan(self, refresh_if_stale: bool = True) -> asyncio.Task:
        task = asyncio.create_task(self._scan_cycle(refresh_if_stale), name="pump-scan")
        self._scan_tasks.add(task)
        task.add_done_callback(self._scan_tasks.discard)
        return task

    async def _scan_cycle(self, refresh_if_stale: bool = True):
        """One scan: refresh the universe if stale, then scan."""
        try:
            if refresh_if_stale and self._universe_is_stale():
                await self.refresh_universe()
            await self.scan()
        except Exception as e:
            logger.error(f"Scan cycle failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Universe
    # ------------------------------------------------------------------

    def _universe_is_stale(self) -> bool:
        if self._last_universe_refresh is None:
            return True
        age = self._clock() - self._last_universe_refresh
        return age >= self.settings.universe_refresh_interval_s

    async def refresh_universe(self) -> List[str]:
        """
        Reload tradable symbols for the configured quote asset.

        On failure the previous universe is kept.
        """
        try:
            infos = await self.fetcher.fetch_universe()
        except TransportError as e:
            logger.error(f"Error fetching symbol list: {e}")
            return self.symbols

        quote = self.settings.quote_asset
        self.symbols = [
            info.symbol for info in infos
            if info.status == "TRADING" and info.quote_asset == quote
        ]
        self._last_universe_refresh = self._clock()
        self.history.retain(self.symbols)
        logger.info(f"Monitoring {len(self.symbols)} {quote} pairs")
        return self.symbols

    def _filter_tickers(self, tickers: List[Ticker]) -> List[Ticker]:
        """Keep liquid tickers inside the universe."""
        universe = set(self.symbols)
        quote = self.settings.quote_asset
        out = []
        for ticker in tickers:
            if universe:
                if ticker.symbol not in universe:
                    continue
            elif not ticker.symbol.endswith(quote):
                continue
            if ticker.quote_volume > self.settings.min_quote_volume_24h:
                out.append(ticker)
        return out

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan(self) -> List[PumpAlert]:
        """
        Evaluate every liquid symbol once.

        Returns:
            Alerts emitted by this scan
        """
        try:
            tickers = await self.fetcher.fetch_tickers()
        except TransportError as e:
            logger.error(f"Error fetching ticker data: {e}")
            tickers = []

        tickers = self._filter_tickers(tickers)
        logger.info(f"Scanning {len(tickers)} coins... [{datetime.now().strftime('%H:%M:%S')}]")

        results = await asyncio.gather(*(self._bounded_detect(t) for t in tickers))
        alerts = [r for r in results if r is not None]

        for alert in alerts:
            logger.info(f"🚨 PUMP DETECTED: {alert.symbol}")
            logger.info(f"   Score: {alert.composite_score:.1f}")
            logger.info(f"   Signals: {', '.join(alert.signals)}")
            await self._emit(alert)

        if not alerts:
            logger.info("   No pumps detected in this scan")

        self.scans_completed += 1
        self.last_scan_at = datetime.fromtimestamp(self._clock())
        return alerts

    async def _bounded_detect(self, ticker: Ticker) -> Optional[PumpAlert]:
        async with self._semaphore:
            try:
                return await self.detect_pump(ticker)
            except Exception as e:
                logger.error(f"Error evaluating {ticker.symbol}: {e}", exc_info=True)
                return None

    async def detect_pump(self, ticker: Ticker) -> Optional[PumpAlert]:
        """
        Evaluate one symbol against its fresh ticker.

        Returns:
            PumpAlert if the symbol is a pump candidate and not in cooldown, else None
        """
        symbol = ticker.symbol

        async with self.history.lock(symbol):
            now = self._clock()
            self.history.record(symbol, ticker.last_price, ticker.volume, now)
            prices, volumes = self.history.snapshot(symbol)

        try:
            ensure_sufficient_history(symbol, prices, volumes)
        except InsufficientDataError:
            return None

        order_book, trades = await asyncio.gather(
            self._fetch_order_book(symbol),
            self._fetch_recent_trades(symbol),
        )

        now = self._clock()
        result = score_symbol(
            symbol, prices, volumes, order_book, trades, now, self.thresholds
        )
        logger.debug(f"{symbol} score={result.composite_score:.1f} signals={result.sub_signals}")

        if not result.is_pump_candidate:
            return None

        if not self.cooldown.try_acquire(symbol, now):
            logger.debug(f"{symbol} pump suppressed by cooldown")
            return None

        return PumpAlert(
            symbol=symbol,
            current_price=ticker.last_price,
            price_change_percent=ticker.price_change_percent,
            score=result,
            detected_at=datetime.fromtimestamp(now),
        )

    async def _fetch_order_book(self, symbol: str) -> Optional[OrderBook]:
        try:
            return await self.fetcher.fetch_order_book(symbol, self.settings.order_book_depth)
        except TransportError as e:
            logger.debug(f"Order book unavailable for {symbol}: {e}")
            return None

    async def _fetch_recent_trades(self, symbol: str) -> Optional[List[Trade]]:
        try:
            return await self.fetcher.fetch_recent_trades(symbol, self.settings.recent_trades_limit)
        except TransportError as e:
            logger.debug(f"Recent trades unavailable for {symbol}: {e}")
            return None

    async def _emit(self, alert: PumpAlert):
        """Hand an alert to the callback. Delivery failures never stop detection."""
        if not self.on_pump_detected:
            return
        try:
            await self.on_pump_detected(alert)
        except Exception as e:
            logger.error(f"Error delivering pump alert for {alert.symbol}: {e}")
