"""Tests for market data clients."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from app.clients import (
    BinanceRestClient,
    CoinGeckoClient,
    FailoverMarketData,
    MarketDataSource,
    SyntheticMarketData,
    create_market_data_source,
    parse_kline_row,
)
from app.config import Settings
from core.exceptions import DataIntegrityError, MarketDataError

OPEN_MS = 1709294400000  # 2024-03-01 12:00 UTC
CLOSE_MS = OPEN_MS + 15 * 60 * 1000 - 1


def kline_row(i: int, close: str = "245.5") -> list:
    step = 15 * 60 * 1000
    return [
        OPEN_MS + i * step,
        "245.0",
        "246.0",
        "244.0",
        close,
        "1234.5",
        CLOSE_MS + i * step,
        "303000.0",
        321,
        "600.0",
        "150000.0",
        "0",
    ]


def binance_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/v3/ticker/price":
        return httpx.Response(200, json={"symbol": "SOLUSDT", "price": "245.86000000"})
    if path == "/api/v3/klines":
        limit = int(request.url.params["limit"])
        return httpx.Response(200, json=[kline_row(i) for i in range(min(limit, 3))])
    if path == "/api/v3/depth":
        return httpx.Response(
            200,
            json={
                "lastUpdateId": 1,
                "bids": [["245.80", "10.0"], ["245.70", "400.0"]],
                "asks": [["245.90", "5.0"], ["246.00", "50.0"]],
            },
        )
    return httpx.Response(404)


class TestParseKlineRow:
    """Tests for Binance kline row parsing."""

    def test_parse(self):
        """Test parsing a Binance kline row."""
        candle = parse_kline_row(kline_row(0))

        assert candle.open_time == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert candle.close == 245.5
        assert candle.volume == 1234.5
        assert candle.trade_count == 321

    def test_malformed_row(self):
        """Test a short row is rejected."""
        with pytest.raises(DataIntegrityError):
            parse_kline_row([OPEN_MS, "x"])

    def test_invalid_ohlc(self):
        """Test a row with inconsistent OHLC is rejected."""
        with pytest.raises(DataIntegrityError):
            parse_kline_row(kline_row(0, close="300.0"))


class TestBinanceRestClient:
    """Tests for BinanceRestClient against a mock transport."""

    @pytest.mark.asyncio
    async def test_get_current_price(self):
        """Test fetching the ticker price."""
        client = BinanceRestClient(transport=httpx.MockTransport(binance_handler))
        try:
            assert await client.get_current_price("SOLUSDT") == 245.86
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_get_recent_candles(self):
        """Test fetching klines in time order."""
        client = BinanceRestClient(transport=httpx.MockTransport(binance_handler))
        try:
            candles = await client.get_recent_candles("SOLUSDT", "15m", 150)
        finally:
            await client.close()

        assert len(candles) == 3
        assert candles[0].close_time < candles[1].close_time

    @pytest.mark.asyncio
    async def test_klines_limit_capped(self):
        """Test the klines limit is capped at 1000."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json=[])

        client = BinanceRestClient(transport=httpx.MockTransport(handler))
        try:
            await client.get_recent_candles("SOLUSDT", "15m", 5000)
        finally:
            await client.close()

        assert seen["limit"] == "1000"
        assert seen["interval"] == "15m"

    @pytest.mark.asyncio
    async def test_get_order_book(self):
        """Test the depth response is summarised into walls."""
        client = BinanceRestClient(transport=httpx.MockTransport(binance_handler))
        try:
            book = await client.get_order_book("SOLUSDT", depth=10)
        finally:
            await client.close()

        assert book.biggest_buy_wall.price == 245.7
        assert book.biggest_sell_wall.size == 50.0
        assert book.buy_to_sell_ratio == pytest.approx(245.7 * 400 / (246.0 * 50))

    @pytest.mark.asyncio
    async def test_http_error_is_market_data_error(self):
        """Test HTTP errors surface as MarketDataError."""
        client = BinanceRestClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        try:
            with pytest.raises(MarketDataError):
                await client.get_current_price("SOLUSDT")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        """Test unexpected payload shapes surface as MarketDataError."""
        client = BinanceRestClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"msg": "x"}))
        )
        try:
            with pytest.raises(MarketDataError):
                await client.get_current_price("SOLUSDT")
            with pytest.raises(MarketDataError):
                await client.get_recent_candles("SOLUSDT", "15m")
        finally:
            await client.close()

    def test_satisfies_protocol(self):
        """Test the client satisfies MarketDataSource."""
        assert isinstance(BinanceRestClient(), MarketDataSource)


class TestCoinGeckoClient:
    """Tests for CoinGeckoClient against a mock transport."""

    @staticmethod
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/v3/simple/price":
            return httpx.Response(200, json={"solana": {"usd": 245.86}})
        if path == "/api/v3/coins/solana/ohlc":
            step = 30 * 60 * 1000
            return httpx.Response(
                200,
                json=[[OPEN_MS + i * step, 245.0, 246.0, 244.0, 245.5] for i in range(4)],
            )
        return httpx.Response(404)

    @pytest.mark.asyncio
    async def test_get_current_price(self):
        """Test fetching the simple price."""
        client = CoinGeckoClient(transport=httpx.MockTransport(self.handler))
        try:
            assert await client.get_current_price("SOLUSDT") == 245.86
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_get_recent_candles(self):
        """Test OHLC bars come back as 30 minute candles without volume."""
        client = CoinGeckoClient(transport=httpx.MockTransport(self.handler))
        try:
            candles = await client.get_recent_candles("SOLUSDT", "15m", limit=3)
        finally:
            await client.close()

        assert len(candles) == 3
        assert all(c.volume == 0.0 for c in candles)
        assert (candles[0].close_time - candles[0].open_time).total_seconds() == 1800

    @pytest.mark.asyncio
    async def test_no_order_book(self):
        """Test the order book is unavailable."""
        client = CoinGeckoClient(transport=httpx.MockTransport(self.handler))
        with pytest.raises(MarketDataError):
            await client.get_order_book("SOLUSDT")


class TestSyntheticMarketData:
    """Tests for the synthetic fallback generator."""

    def test_generate_candles(self):
        """Test candles end at the last boundary and close at the price."""
        now = datetime(2024, 3, 1, 12, 7, tzinfo=timezone.utc)
        source = SyntheticMarketData(seed=1, now=now)

        candles = source.generate_candles(100.0, "15m", 150)

        assert len(candles) == 150
        assert candles[-1].close == 100.0
        assert candles[-1].close_time == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert all(a.close_time < b.close_time for a, b in zip(candles, candles[1:]))
        assert all(94.0 < c.low <= c.high < 106.0 for c in candles)

    def test_seed_is_reproducible(self):
        """Test the same seed gives the same candles."""
        now = datetime(2024, 3, 1, tzinfo=timezone.utc)
        first = SyntheticMarketData(seed=5, now=now).generate_candles(50.0, "5m", 20)
        second = SyntheticMarketData(seed=5, now=now).generate_candles(50.0, "5m", 20)
        assert first == second

    def test_generate_order_book(self):
        """Test the ladder steps 0.1% away from the price."""
        book = SyntheticMarketData(seed=2).generate_order_book(100.0, depth=10)

        assert len(book.bids) == 10
        assert len(book.asks) == 10
        assert book.bids[0].price == pytest.approx(99.9)
        assert book.asks[0].price == pytest.approx(100.1)
        assert book.buy_to_sell_ratio > 0


class TestFailover:
    """Tests for FailoverMarketData and the source factory."""

    @pytest.mark.asyncio
    async def test_first_success_wins(self):
        """Test a failing source is skipped."""
        broken = AsyncMock()
        broken.name = "broken"
        broken.get_current_price.side_effect = MarketDataError("down")
        backup = AsyncMock()
        backup.name = "backup"
        backup.get_current_price.return_value = 42.0

        source = FailoverMarketData([broken, backup])

        assert await source.get_current_price("SOLUSDT") == 42.0
        broken.get_current_price.assert_awaited_once_with("SOLUSDT")

    @pytest.mark.asyncio
    async def test_all_fail(self):
        """Test MarketDataError when every source fails."""
        broken = AsyncMock()
        broken.name = "broken"
        broken.get_order_book.side_effect = MarketDataError("down")

        source = FailoverMarketData([broken, broken])

        with pytest.raises(MarketDataError):
            await source.get_order_book("SOLUSDT", 10)

    @pytest.mark.asyncio
    async def test_close_closes_all(self):
        """Test close reaches every source."""
        first, second = AsyncMock(), AsyncMock()
        await FailoverMarketData([first, second]).close()
        first.close.assert_awaited_once()
        second.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_hanging_source_times_out_to_backup(self):
        """Each source gets its own timeout, so the backup is still asked."""

        async def hang(symbol):
            await asyncio.Event().wait()

        hanging = AsyncMock()
        hanging.name = "hanging"
        hanging.get_current_price.side_effect = hang
        backup = SyntheticMarketData(base_price=111.0)

        source = FailoverMarketData([hanging, backup], timeout=0.05)

        price = await asyncio.wait_for(source.get_current_price("SOLUSDT"), timeout=1.0)

        assert price == 111.0

    @pytest.mark.asyncio
    async def test_rejected_data_falls_through(self):
        """Malformed upstream data counts as a failure of that source only."""
        corrupt = AsyncMock()
        corrupt.name = "corrupt"
        corrupt.get_recent_candles.side_effect = DataIntegrityError("bad row")
        backup = SyntheticMarketData(base_price=50.0, seed=4)

        candles = await FailoverMarketData([corrupt, backup]).get_recent_candles(
            "SOLUSDT", "15m", 10
        )

        assert len(candles) == 10
        assert candles[-1].close == 50.0

    @pytest.mark.asyncio
    async def test_all_timeouts_reported(self):
        """Every source timing out is a MarketDataError naming each one."""

        async def hang(symbol, depth):
            await asyncio.Event().wait()

        first, second = AsyncMock(), AsyncMock()
        first.name, second.name = "first", "second"
        first.get_order_book.side_effect = hang
        second.get_order_book.side_effect = hang

        with pytest.raises(MarketDataError, match="first: timed out.*second: timed out"):
            await FailoverMarketData([first, second], timeout=0.01).get_order_book("SOLUSDT", 10)

    def test_total_timeout(self):
        """The chain budget is the per-source timeout times the number of sources."""
        source = FailoverMarketData([AsyncMock(), AsyncMock(), AsyncMock()], timeout=2.0)
        assert source.total_timeout == 6.0

    def test_requires_sources(self):
        """Test an empty chain is rejected."""
        with pytest.raises(ValueError):
            FailoverMarketData([])

    def test_factory_single_source(self):
        """Test a single name gives the bare source."""
        source = create_market_data_source(Settings(market_data_sources=["synthetic"]))
        assert isinstance(source, SyntheticMarketData)

    def test_factory_chain(self):
        """Test several names give a failover chain in order."""
        source = create_market_data_source(Settings(market_data_sources=["binance", "coingecko"]))
        assert isinstance(source, FailoverMarketData)
        assert [s.name for s in source.sources] == ["binance", "coingecko"]

    def test_factory_unknown_source(self):
        """Test unknown source names are rejected."""
        with pytest.raises(ValueError):
            create_market_data_source(Settings(market_data_sources=["kraken"]))

    def test_factory_uses_fetch_timeout(self):
        """Each source in the chain is bounded by fetch_timeout."""
        source = create_market_data_source(
            Settings(market_data_sources=["binance", "synthetic"], fetch_timeout=3.0)
        )
        assert source.timeout == 3.0
        assert source.total_timeout == 6.0

    def test_factory_seed_is_reproducible(self):
        """A seed passed to the factory reaches the synthetic source."""
        settings = Settings(market_data_sources=["synthetic"])

        first = create_market_data_source(settings, seed=3).generate_candles(100.0, "15m", 30)
        second = create_market_data_source(settings, seed=3).generate_candles(100.0, "15m", 30)

        assert [c.close for c in first] == [c.close for c in second]
        assert [c.volume for c in first] == [c.volume for c in second]
