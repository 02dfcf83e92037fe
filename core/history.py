"""
Rolling per-symbol price and volume history.

Each symbol owns two insertion-ordered windows (price and volume samples).
Every record appends first and then evicts samples older than the retention
window, so retained samples always satisfy observed_at >= now - retention.
"""
import asyncio
import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from core.models import PriceSample, VolumeSample

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_WINDOW_S = 300.0


class SymbolHistory:
    """Price and volume windows for a single symbol."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        self.prices: Deque[PriceSample] = deque()
        self.volumes: Deque[VolumeSample] = deque()

    def append(self, price: float, volume: float, now: float):
        self.prices.append(PriceSample(price=price, observed_at=now))
        self.volumes.append(VolumeSample(volume=volume, observed_at=now))

    def prune(self, cutoff: float):
        """Evict samples observed before cutoff."""
        while self.prices and self.prices[0].observed_at < cutoff:
            self.prices.popleft()
        while self.volumes and self.volumes[0].observed_at < cutoff:
            self.volumes.popleft()


class HistoryStore:
    """
    Sliding-window sample buffers keyed by symbol.

    Histories are created lazily on first record. Writers for the same symbol
    are expected to hold lock(symbol) across record + snapshot.
    """

    def __init__(self, retention_window_s: float = DEFAULT_RETENTION_WINDOW_S):
        self.retention_window_s = retention_window_s
        self._histories: Dict[str, SymbolHistory] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, symbol: str) -> asyncio.Lock:
        """Per-symbol lock serializing history updates."""
        lock = self._locks.get(symbol)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[symbol] = lock
        return lock

    def record(self, symbol: str, price: float, volume: float, now: float):
        """Append one price and one volume sample, then prune to the window."""
        history = self._histories.get(symbol)
        if history is None:
            history = SymbolHistory(symbol)
            self._histories[symbol] = history

        history.append(price, volume, now)
        history.prune(now - self.retention_window_s)

    def snapshot(
        self, symbol: str, now: Optional[float] = None
    ) -> Tuple[List[PriceSample], List[VolumeSample]]:
        """
        Return copies of the in-window price and volume samples.

        Args:
            symbol: Symbol to read
            now: If given, the retention window is applied at this time first

        Returns:
            (prices, volumes), oldest first. Empty lists for unknown symbols.
        """
        history = self._histories.get(symbol)
        if history is None:
            return [], []

        if now is not None:
            history.prune(now - self.retention_window_s)

        return list(history.prices), list(history.volumes)

    def retain(self, symbols: Iterable[str]) -> int:
        """
        Drop histories for symbols outside the given universe.

        Returns:
            Number of histories removed
        """
        keep = set(symbols)
        stale = [s for s in self._histories if s not in keep]
        for symbol in stale:
            self._histories.pop(symbol, None)
            lock = self._locks.get(symbol)
            if lock is not None and not lock.locked():
                self._locks.pop(symbol, None)

        if stale:
            logger.info(f"Dropped history for {len(stale)} delisted symbols")
        return len(stale)

    def tracked_symbols(self) -> List[str]:
        """Symbols that currently have a history."""
        return list(self._histories.keys())

    def __len__(self) -> int:
        return len(self._histories)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._histories
