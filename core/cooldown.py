"""
Per-symbol alert cooldown.

Entries expire lazily: an expired entry is deleted when a check observes it,
there is no background sweep.
"""
import logging
from typing import Dict, List, Optional

from core.models import CooldownEntry

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_WINDOW_S = 900.0


class CooldownTracker:
    """Suppresses repeat alerts for a symbol within the cooldown window."""

    def __init__(self, cooldown_window_s: float = DEFAULT_COOLDOWN_WINDOW_S):
        self.cooldown_window_s = cooldown_window_s
        self._entries: Dict[str, CooldownEntry] = {}

    def should_suppress(self, symbol: str, now: float) -> bool:
        """True iff the symbol alerted less than cooldown_window_s ago."""
        entry = self._entries.get(symbol)
        if entry is None:
            return False

        if now - entry.last_alert_at < self.cooldown_window_s:
            return True

        del self._entries[symbol]
        logger.debug(f"Cooldown expired for {symbol}")
        return False

    def mark_alerted(self, symbol: str, now: float):
        """Insert or overwrite the cooldown entry for a symbol."""
        self._entries[symbol] = CooldownEntry(symbol=symbol, last_alert_at=now)

    def try_acquire(self, symbol: str, now: float) -> bool:
        """
        Check-and-mark in one step.

        Returns:
            True if the symbol may alert (and is now in cooldown), False if suppressed
        """
        if self.should_suppress(symbol, now):
            return False
        self.mark_alerted(symbol, now)
        return True

    def active_symbols(self, now: float) -> List[str]:
        """Symbols currently in cooldown. Expired entries seen here are removed."""
        return [s for s in list(self._entries) if self.should_suppress(s, now)]

    def get(self, symbol: str) -> Optional[CooldownEntry]:
        """Cooldown entry for a symbol, expired or not."""
        return self._entries.get(symbol)

    def __len__(self) -> int:
        return len(self._entries)
