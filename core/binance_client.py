"""
Binance spot REST client for market snapshots.

Implements the MarketDataFetcher contract used by the detector: symbol
universe, 24h tickers, order book depth and recent trades. Every failure
(network, timeout, HTTP status, malformed payload) surfaces as TransportError.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

import aiohttp
from pydantic import TypeAdapter, ValidationError

from core.errors import TransportError
from core.models import OrderBook, SymbolInfo, Ticker, Trade

logger = logging.getLogger(__name__)

_symbols_adapter = TypeAdapter(List[SymbolInfo])
_tickers_adapter = TypeAdapter(List[Ticker])
_trades_adapter = TypeAdapter(List[Trade])


class MarketDataFetcher(Protocol):
    """Market data source consumed by the detector."""

    async def fetch_universe(self) -> List[SymbolInfo]:
        ...

    async def fetch_tickers(self) -> List[Ticker]:
        ...

    async def fetch_order_book(self, symbol: str, depth: int) -> Optional[OrderBook]:
        ...

    async def fetch_recent_trades(self, symbol: str, limit: int) -> Optional[List[Trade]]:
        ...


class BinanceRestClient:
    """
    Async client for the public Binance spot API.

    A single aiohttp session is created lazily and reused for all requests.
    """

    def __init__(
        self,
        rest_url: str = "https://api.binance.com",
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the REST client."""
        self.rest_url = rest_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True

    async def close(self):
        """Close the aiohttp session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a JSON payload from the API.

        Raises:
            TransportError: on any network, status or decoding failure
        """
        url = f"{self.rest_url}{path}"
        await self._ensure_session()

        try:
            async with self._session.get(url, params=params, timeout=self._timeout) as response:
                if response.status != 200:
                    raise TransportError(f"GET {path} failed: HTTP {response.status}")
                return await response.json()
        except TransportError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransportError(f"GET {path} failed: {e}") from e

    async def fetch_universe(self) -> List[SymbolInfo]:
        """Fetch every listed symbol with its trading status and quote asset."""
        data = await self._get_json("/api/v3/exchangeInfo")
        try:
            return _symbols_adapter.validate_python(data.get("symbols", []))
        except (AttributeError, ValidationError) as e:
            raise TransportError(f"Malformed exchangeInfo payload: {e}") from e

    async def fetch_tickers(self) -> List[Ticker]:
        """Fetch 24h ticker snapshots for all symbols."""
        data = await self._get_json("/api/v3/ticker/24hr")
        try:
            return _tickers_adapter.validate_python(data)
        except ValidationError as e:
            raise TransportError(f"Malformed ticker payload: {e}") from e

    async def fetch_order_book(self, symbol: str, depth: int = 20) -> Optional[OrderBook]:
        """Fetch the top `depth` bid and ask levels for a symbol."""
        data = await self._get_json("/api/v3/depth", params={"symbol": symbol, "limit": depth})
        if not data:
            return None
        try:
            return OrderBook.model_validate(data)
        except ValidationError as e:
            raise TransportError(f"Malformed depth payload for {symbol}: {e}") from e

    async def fetch_recent_trades(self, symbol: str, limit: int = 100) -> Optional[List[Trade]]:
        """Fetch the most recent public trades for a symbol, oldest first."""
        data = await self._get_json("/api/v3/trades", params={"symbol": symbol, "limit": limit})
        if data is None:
            return None
        try:
            return _trades_adapter.validate_python(data)
        except ValidationError as e:
            raise TransportError(f"Malformed trades payload for {symbol}: {e}") from e
