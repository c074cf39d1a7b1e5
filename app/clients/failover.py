"""Failover market data source and source factory."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from app.clients.binance_rest import BinanceRestClient
from app.clients.coingecko_rest import CoinGeckoClient
from app.clients.protocol import MarketDataSource
from app.clients.synthetic import SyntheticMarketData
from app.config import Settings
from core.exceptions import DataIntegrityError, MarketDataError
from core.models.candle import Candle
from core.models.snapshot import OrderBookSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FailoverMarketData:
    """Tries each source in order per call; the first success wins.

    Each source gets its own ``timeout`` so a hanging primary still leaves
    time for the next one. Raises MarketDataError only when every source
    failed.
    """

    name = "failover"

    def __init__(self, sources: list[MarketDataSource], timeout: float = 8.0):
        if not sources:
            raise ValueError("FailoverMarketData needs at least one source")
        self.sources = sources
        self.timeout = timeout

    @property
    def total_timeout(self) -> float:
        """Worst-case time for one call through the whole chain."""
        return self.timeout * len(self.sources)

    async def _first(
        self,
        what: str,
        call: Callable[[MarketDataSource], Awaitable[T]],
    ) -> T:
        errors = []
        for source in self.sources:
            try:
                return await asyncio.wait_for(call(source), timeout=self.timeout)
            except asyncio.TimeoutError:
                message = f"timed out after {self.timeout}s"
            except (MarketDataError, DataIntegrityError) as e:
                message = str(e)
            logger.warning(f"{source.name} {what} unavailable: {message}")
            errors.append(f"{source.name}: {message}")
        raise MarketDataError(f"All sources failed for {what}: {'; '.join(errors)}")

    async def get_current_price(self, symbol: str) -> float:
        return await self._first("price", lambda s: s.get_current_price(symbol))

    async def get_recent_candles(
        self,
        symbol: str,
        interval: str,
        limit: int = 150,
    ) -> list[Candle]:
        return await self._first(
            "candles", lambda s: s.get_recent_candles(symbol, interval, limit)
        )

    async def get_order_book(self, symbol: str, depth: int = 10) -> OrderBookSummary:
        return await self._first("order book", lambda s: s.get_order_book(symbol, depth))

    async def close(self) -> None:
        for source in self.sources:
            await source.close()


def create_market_data_source(
    settings: Settings,
    seed: int | None = None,
) -> MarketDataSource:
    """
    Create the market data source chain from ``settings.market_data_sources``.

    Supported names: binance, coingecko, synthetic. ``seed`` makes the
    synthetic source reproducible.
    """
    sources: list[MarketDataSource] = []
    for name in settings.market_data_sources:
        name = name.lower()
        if name == "binance":
            sources.append(
                BinanceRestClient(
                    base_url=settings.binance_base_url,
                    timeout=settings.fetch_timeout,
                )
            )
        elif name == "coingecko":
            sources.append(
                CoinGeckoClient(
                    coin_id=settings.coingecko_id,
                    base_url=settings.coingecko_base_url,
                    timeout=settings.fetch_timeout,
                )
            )
        elif name == "synthetic":
            sources.append(SyntheticMarketData(base_price=settings.fallback_price, seed=seed))
        else:
            raise ValueError(
                f"Unsupported market data source: {name}. "
                f"Supported: binance, coingecko, synthetic"
            )

    if len(sources) == 1:
        return sources[0]
    logger.info(f"Market data sources: {' -> '.join(s.name for s in sources)}")
    return FailoverMarketData(sources, timeout=settings.fetch_timeout)
