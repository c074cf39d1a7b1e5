"""CoinGecko REST API client (secondary source).

CoinGecko has no exchange order book and its OHLC endpoint has a fixed
granularity (30-minute candles for the last day) with no volume, so this
source is a degraded stand-in for when the exchange is unreachable.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from app.clients.binance_rest import RateLimiter
from core.exceptions import DataIntegrityError, MarketDataError
from core.models.candle import Candle
from core.models.snapshot import OrderBookSummary

logger = logging.getLogger(__name__)

# Free API allows roughly 30 calls per minute
COINGECKO_CALLS_PER_MINUTE = 30
OHLC_GRANULARITY = timedelta(minutes=30)


class CoinGeckoClient:
    """CoinGecko public API client keyed by a coin id (e.g., 'solana')."""

    BASE_URL = "https://api.coingecko.com"
    name = "coingecko"

    def __init__(
        self,
        coin_id: str = "solana",
        vs_currency: str = "usd",
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.coin_id = coin_id
        self.vs_currency = vs_currency
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limiter = RateLimiter(calls_per_minute=COINGECKO_CALLS_PER_MINUTE)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, endpoint: str, params: dict[str, Any]) -> Any:
        await self.rate_limiter.acquire()
        client = await self._get_client()
        try:
            response = await client.get(endpoint, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise MarketDataError(f"CoinGecko {endpoint} failed: {e}") from e
        except ValueError as e:
            raise MarketDataError(f"CoinGecko {endpoint} returned invalid JSON: {e}") from e

    async def get_current_price(self, symbol: str) -> float:
        """Fetch the spot price; ``symbol`` is ignored in favour of coin_id."""
        data = await self._request(
            "/api/v3/simple/price",
            {"ids": self.coin_id, "vs_currencies": self.vs_currency},
        )
        try:
            return float(data[self.coin_id][self.vs_currency])
        except (KeyError, TypeError, ValueError) as e:
            raise MarketDataError(f"Unexpected simple/price payload: {data!r}") from e

    async def get_recent_candles(
        self,
        symbol: str,
        interval: str,
        limit: int = 150,
    ) -> list[Candle]:
        """
        Fetch the last day of 30-minute OHLC candles.

        ``interval`` cannot be honoured by this endpoint; the candles are
        returned at CoinGecko's own granularity with zero volume.
        """
        data = await self._request(
            f"/api/v3/coins/{self.coin_id}/ohlc",
            {"vs_currency": self.vs_currency, "days": 1},
        )
        if not isinstance(data, list):
            raise MarketDataError(f"Unexpected ohlc payload type: {type(data).__name__}")
        if interval != "30m":
            logger.debug(f"CoinGecko OHLC is 30m, requested {interval}")

        candles = []
        for row in data[-limit:]:
            try:
                close_time = datetime.fromtimestamp(row[0] / 1000, tz=timezone.utc)
                candles.append(
                    Candle(
                        open_time=close_time - OHLC_GRANULARITY,
                        close_time=close_time,
                        open=float(row[1]),
                        high=float(row[2]),
                        low=float(row[3]),
                        close=float(row[4]),
                        volume=0.0,
                    )
                )
            except (IndexError, TypeError, ValueError, ValidationError) as e:
                raise DataIntegrityError(f"Malformed ohlc row {row!r}: {e}") from e
        return candles

    async def get_order_book(self, symbol: str, depth: int = 10) -> OrderBookSummary:
        raise MarketDataError("CoinGecko does not provide an order book")
