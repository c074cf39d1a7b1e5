"""Synthetic market data source.

Generates plausible candles and an order book around a base price. Used as
the last-resort fallback when no real series has ever been fetched, so the
service can still publish a well-formed snapshot.
"""

import random
from datetime import datetime, timedelta, timezone

from core.models.candle import Candle
from core.models.snapshot import OrderBookSummary
from core.orderbook import summarize_order_book

INTERVAL_MINUTES = {
    "1m": 1,
    "3m": 3,
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "4h": 240,
    "1d": 1440,
}


def _last_boundary(now: datetime, minutes: int) -> datetime:
    """Most recent interval boundary at or before ``now``."""
    epoch_minutes = int(now.timestamp() // 60)
    return datetime.fromtimestamp(
        (epoch_minutes - epoch_minutes % minutes) * 60, tz=timezone.utc
    )


class SyntheticMarketData:
    """Generator of candles scattered around a base price.

    Pass ``seed`` for reproducible output.
    """

    name = "synthetic"

    def __init__(
        self,
        base_price: float = 245.86,
        seed: int | None = None,
        now: datetime | None = None,
    ):
        self.base_price = base_price
        self._rng = random.Random(seed)
        self._now = now

    def _current_time(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    async def get_current_price(self, symbol: str) -> float:
        return self.base_price

    def generate_candles(
        self,
        price: float,
        interval: str = "15m",
        count: int = 150,
    ) -> list[Candle]:
        """
        Generate ``count`` completed candles ending at the last boundary.

        Each candle sits within +/-4% of ``price`` with up to 1.5% range;
        the newest candle closes exactly at ``price``.
        """
        minutes = INTERVAL_MINUTES.get(interval, 15)
        step = timedelta(minutes=minutes)
        last_close = _last_boundary(self._current_time(), minutes)
        rng = self._rng

        candles = []
        for i in range(count - 1, -1, -1):
            close_time = last_close - step * i
            variation = (rng.random() - 0.5) * 0.08
            base = price * (1 + variation * max(0.0, 1 - i * 0.01))
            high = base * (1 + rng.random() * 0.015)
            low = base * (1 - rng.random() * 0.015)
            open_ = low + (high - low) * rng.random()
            close = price if i == 0 else low + (high - low) * rng.random()

            candles.append(
                Candle(
                    open_time=close_time - step,
                    close_time=close_time,
                    open=round(open_, 4),
                    high=round(max(high, open_, close), 4),
                    low=round(min(low, open_, close), 4),
                    close=round(close, 4),
                    volume=round(30000 + rng.random() * 150000),
                    trade_count=100 + int(rng.random() * 500),
                )
            )
        return candles

    async def get_recent_candles(
        self,
        symbol: str,
        interval: str,
        limit: int = 150,
    ) -> list[Candle]:
        return self.generate_candles(self.base_price, interval, limit)

    def generate_order_book(self, price: float, depth: int = 10) -> OrderBookSummary:
        """Ladder of levels 0.1% apart with random sizes."""
        spread = price * 0.001
        rng = self._rng
        bids = [(price - spread * (i + 1), 10 + rng.random() * 500) for i in range(depth)]
        asks = [(price + spread * (i + 1), 10 + rng.random() * 500) for i in range(depth)]
        return summarize_order_book(bids, asks, depth=depth)

    async def get_order_book(self, symbol: str, depth: int = 10) -> OrderBookSummary:
        return self.generate_order_book(self.base_price, depth)

    async def close(self) -> None:
        return None
