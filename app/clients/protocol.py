"""Market data source protocol.

Every upstream (exchange REST API, price aggregator, synthetic generator)
implements the same capability interface, so the refresh pipeline never
branches on where its data comes from.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.models.candle import Candle
from core.models.snapshot import OrderBookSummary


@runtime_checkable
class MarketDataSource(Protocol):
    """Protocol that all market data sources must implement.

    All calls are fallible: implementations raise
    ``core.exceptions.MarketDataError`` on transport errors, bad payloads
    or unsupported operations, and ``DataIntegrityError`` for malformed
    candles.
    """

    @property
    def name(self) -> str:
        """Short source identifier used in logs (e.g., 'binance')."""
        ...

    async def get_current_price(self, symbol: str) -> float:
        """Latest traded price for ``symbol``."""
        ...

    async def get_recent_candles(
        self,
        symbol: str,
        interval: str,
        limit: int,
    ) -> list[Candle]:
        """Most recent ``limit`` candles, oldest first."""
        ...

    async def get_order_book(self, symbol: str, depth: int) -> OrderBookSummary:
        """Top ``depth`` levels per side, summarised."""
        ...

    async def close(self) -> None:
        """Release any network resources."""
        ...
