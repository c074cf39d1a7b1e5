"""Binance spot REST API client for price, candles and order book."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from core.exceptions import DataIntegrityError, MarketDataError
from core.models.candle import Candle
from core.models.snapshot import OrderBookSummary
from core.orderbook import summarize_order_book

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            now = asyncio.get_running_loop().time()
            wait_time = self.last_call + self.interval - now
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = asyncio.get_running_loop().time()


def parse_kline_row(row: list[Any]) -> Candle:
    """
    Convert one Binance kline row to a Candle.

    Row layout: [openTime, open, high, low, close, volume, closeTime,
    quoteVolume, numberOfTrades, ...], times in epoch ms, prices as strings.
    """
    try:
        return Candle(
            open_time=datetime.fromtimestamp(row[0] / 1000, tz=timezone.utc),
            close_time=datetime.fromtimestamp(row[6] / 1000, tz=timezone.utc),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
            trade_count=int(row[8]) if len(row) > 8 else None,
        )
    except (IndexError, TypeError, ValueError, ValidationError) as e:
        raise DataIntegrityError(f"Malformed kline row {row!r}: {e}") from e


class BinanceRestClient:
    """Binance spot REST API client."""

    BASE_URL = "https://api.binance.com"
    name = "binance"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limiter = RateLimiter()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        try:
            response = await client.request(method, endpoint, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise MarketDataError(f"Binance {endpoint} failed: {e}") from e
        except ValueError as e:
            raise MarketDataError(f"Binance {endpoint} returned invalid JSON: {e}") from e

    async def get_current_price(self, symbol: str) -> float:
        """Fetch the latest price from /api/v3/ticker/price."""
        data = await self._request("GET", "/api/v3/ticker/price", {"symbol": symbol})
        try:
            return float(data["price"])
        except (KeyError, TypeError, ValueError) as e:
            raise MarketDataError(f"Unexpected ticker payload: {data!r}") from e

    async def get_recent_candles(
        self,
        symbol: str,
        interval: str,
        limit: int = 150,
    ) -> list[Candle]:
        """
        Fetch the most recent K-lines from Binance.

        Args:
            symbol: Trading pair (e.g., "SOLUSDT")
            interval: K-line interval (e.g., "15m")
            limit: Maximum number of K-lines (max 1000)

        Returns:
            List of Candle objects, oldest first. The last one may still be
            forming.
        """
        params = {
            "symbol": symbol,
            "interval": interval,
            "limit": min(limit, 1000),
        }
        data = await self._request("GET", "/api/v3/klines", params)
        if not isinstance(data, list):
            raise MarketDataError(f"Unexpected klines payload type: {type(data).__name__}")

        candles = [parse_kline_row(row) for row in data]
        logger.debug(f"Fetched {len(candles)} {interval} klines for {symbol}")
        return candles

    async def get_order_book(self, symbol: str, depth: int = 10) -> OrderBookSummary:
        """Fetch order book depth and summarise the walls."""
        data = await self._request(
            "GET", "/api/v3/depth", {"symbol": symbol, "limit": max(depth, 5)}
        )
        try:
            bids = [(float(p), float(q)) for p, q in data["bids"]]
            asks = [(float(p), float(q)) for p, q in data["asks"]]
        except (KeyError, TypeError, ValueError) as e:
            raise MarketDataError(f"Unexpected depth payload: {e}") from e
        return summarize_order_book(bids, asks, depth=depth)

