import aiohttp
import pytest

from core.binance_client import BinanceRestClient
from core.errors import TransportError


class FakeResponse:
    def __init__(self, status=200, payload=None, json_error=None):
        self.status = status
        self._payload = payload
        self._json_error = json_error

    async def json(self):
        if self._json_error:
            raise self._json_error
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.closed = False
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if self.error:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


def make_client(session):
    return BinanceRestClient(rest_url="https://example.test/", session=session)


@pytest.mark.asyncio
async def test_fetch_universe_parses_symbols():
    session = FakeSession(FakeResponse(payload={
        "timezone": "UTC",
        "symbols": [
            {"symbol": "BTCUSDT", "status": "TRADING", "quoteAsset": "USDT", "baseAsset": "BTC"},
            {"symbol": "ETHBTC", "status": "BREAK", "quoteAsset": "BTC", "baseAsset": "ETH"},
        ],
    }))

    symbols = await make_client(session).fetch_universe()

    assert session.calls == [("https://example.test/api/v3/exchangeInfo", None)]
    assert [(s.symbol, s.status, s.quote_asset) for s in symbols] == [
        ("BTCUSDT", "TRADING", "USDT"),
        ("ETHBTC", "BREAK", "BTC"),
    ]


@pytest.mark.asyncio
async def test_fetch_tickers_converts_string_fields():
    session = FakeSession(FakeResponse(payload=[{
        "symbol": "PEPEUSDT",
        "lastPrice": "0.00001234",
        "volume": "123456789.00",
        "quoteVolume": "1523.45",
        "priceChangePercent": "-3.210",
        "openPrice": "0.00001275",
    }]))

    tickers = await make_client(session).fetch_tickers()

    assert len(tickers) == 1
    ticker = tickers[0]
    assert ticker.symbol == "PEPEUSDT"
    assert ticker.last_price == pytest.approx(0.00001234)
    assert ticker.volume == pytest.approx(123456789.0)
    assert ticker.quote_volume == pytest.approx(1523.45)
    assert ticker.price_change_percent == pytest.approx(-3.21)


@pytest.mark.asyncio
async def test_fetch_order_book_passes_depth_and_parses_levels():
    session = FakeSession(FakeResponse(payload={
        "lastUpdateId": 1027024,
        "bids": [["4.00000000", "431.00000000"], ["3.99000000", "9.00000000"]],
        "asks": [["4.00000200", "12.00000000"]],
    }))

    book = await make_client(session).fetch_order_book("BNBUSDT", depth=20)

    assert session.calls == [("https://example.test/api/v3/depth", {"symbol": "BNBUSDT", "limit": 20})]
    assert book.bids == [(4.0, 431.0), (3.99, 9.0)]
    assert book.asks == [(4.000002, 12.0)]


@pytest.mark.asyncio
async def test_fetch_recent_trades_parses_maker_flag():
    session = FakeSession(FakeResponse(payload=[
        {"id": 1, "price": "1.5", "qty": "10", "quoteQty": "15", "time": 1700000000000,
         "isBuyerMaker": True, "isBestMatch": True},
        {"id": 2, "price": "1.6", "qty": "5", "quoteQty": "8", "time": 1700000001000,
         "isBuyerMaker": False, "isBestMatch": True},
    ]))

    trades = await make_client(session).fetch_recent_trades("XUSDT", limit=100)

    assert session.calls[0][1] == {"symbol": "XUSDT", "limit": 100}
    assert [t.is_buyer_maker for t in trades] == [True, False]
    assert trades[1].price == pytest.approx(1.6)
    assert trades[1].time == 1700000001000


@pytest.mark.asyncio
async def test_non_200_status_raises_transport_error():
    session = FakeSession(FakeResponse(status=429, payload={"code": -1003}))

    with pytest.raises(TransportError, match="HTTP 429"):
        await make_client(session).fetch_tickers()


@pytest.mark.asyncio
async def test_client_error_raises_transport_error():
    session = FakeSession(error=aiohttp.ClientConnectionError("connection reset"))

    with pytest.raises(TransportError) as exc_info:
        await make_client(session).fetch_order_book("BTCUSDT")
    assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)


@pytest.mark.asyncio
async def test_invalid_json_raises_transport_error():
    session = FakeSession(FakeResponse(json_error=ValueError("not json")))

    with pytest.raises(TransportError):
        await make_client(session).fetch_universe()


@pytest.mark.asyncio
async def test_malformed_payload_raises_transport_error():
    session = FakeSession(FakeResponse(payload=[{"symbol": "BTCUSDT", "lastPrice": "abc"}]))

    with pytest.raises(TransportError, match="Malformed ticker payload"):
        await make_client(session).fetch_tickers()


@pytest.mark.asyncio
async def test_close_leaves_injected_session_open():
    session = FakeSession(FakeResponse(payload=[]))
    client = make_client(session)

    await client.close()

    assert session.closed is False
