"""Candle (OHLCV) data models."""

from __future__ import annotations

import math
from collections import deque
from datetime import datetime
from typing import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, model_validator

from core.exceptions import DataIntegrityError

DEFAULT_CAPACITY = 150


class Candle(BaseModel):
    """One closed (or still forming) candle for a fixed interval."""

    model_config = ConfigDict(frozen=True)

    open_time: datetime
    close_time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float
    trade_count: int | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "Candle":
        for name in ("open", "high", "low", "close", "volume"):
            if not math.isfinite(getattr(self, name)):
                raise DataIntegrityError(f"Candle {name} is not finite")
        if not (self.low <= min(self.open, self.close) <= max(self.open, self.close) <= self.high):
            raise DataIntegrityError(
                f"Candle OHLC out of range: o={self.open} h={self.high} "
                f"l={self.low} c={self.close}"
            )
        if self.open_time >= self.close_time:
            raise DataIntegrityError(
                f"Candle open_time {self.open_time} not before close_time {self.close_time}"
            )
        return self

    @property
    def close_time_ms(self) -> int:
        """Close time as a Unix timestamp in milliseconds."""
        return int(self.close_time.timestamp() * 1000)


class CandleSeries:
    """Append-only window of the most recent candles for one instrument.

    Candles are strictly increasing by close time. Once the window is full
    the oldest candle is evicted on every append (plain FIFO, access is
    always by recency).
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._candles: deque[Candle] = deque(maxlen=capacity)

    @classmethod
    def from_candles(
        cls,
        candles: Iterable[Candle],
        capacity: int = DEFAULT_CAPACITY,
    ) -> "CandleSeries":
        """Build a fresh series; the first integrity violation aborts."""
        series = cls(capacity=capacity)
        for candle in candles:
            series.append(candle)
        return series

    def append(self, candle: Candle) -> None:
        """Append a candle, rejecting anything not newer than the last one."""
        if self._candles and candle.close_time <= self._candles[-1].close_time:
            raise DataIntegrityError(
                f"Out-of-order candle: close_time {candle.close_time} "
                f"<= {self._candles[-1].close_time}"
            )
        self._candles.append(candle)

    def window(self, last_n: int | None = None) -> tuple[Candle, ...]:
        """Read-only view of the newest ``last_n`` candles (all if None)."""
        if last_n is None or last_n >= len(self._candles):
            return tuple(self._candles)
        if last_n <= 0:
            return ()
        return tuple(self._candles)[-last_n:]

    def close_prices(self) -> tuple[float, ...]:
        """Get close prices, oldest first."""
        return tuple(c.close for c in self._candles)

    def volumes(self) -> tuple[float, ...]:
        """Get volumes, oldest first."""
        return tuple(c.volume for c in self._candles)

    @property
    def last(self) -> Candle | None:
        return self._candles[-1] if self._candles else None

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(tuple(self._candles))
