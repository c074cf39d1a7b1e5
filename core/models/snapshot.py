"""Indicator and snapshot value objects.

Everything here is immutable and rebuilt from scratch on every refresh
cycle; a Snapshot is only ever published whole.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PricePosition(str, Enum):
    """Side of price a level sits on (PSAR dot, EMA99 for trend flags)."""

    ABOVE = "Above"
    BELOW = "Below"


class TrendBias(str, Enum):
    """Higher-timeframe trend label."""

    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class CandlePattern(str, Enum):
    """Single-candle shape labels."""

    INVALID = "Invalid Candle"
    LONG_LEGGED_DOJI = "Long-Legged Doji"
    DRAGONFLY_DOJI = "Dragonfly Doji"
    GRAVESTONE_DOJI = "Gravestone Doji"
    DOJI = "Doji"
    BULLISH_MARUBOZU = "Bullish Marubozu"
    BULLISH_CLOSING_MARUBOZU = "Bullish Closing Marubozu"
    BULLISH_OPENING_MARUBOZU = "Bullish Opening Marubozu"
    BEARISH_MARUBOZU = "Bearish Marubozu"
    BEARISH_CLOSING_MARUBOZU = "Bearish Closing Marubozu"
    BEARISH_OPENING_MARUBOZU = "Bearish Opening Marubozu"
    HAMMER = "Hammer"
    HANGING_MAN = "Hanging Man"
    INVERTED_HAMMER = "Inverted Hammer"
    SHOOTING_STAR = "Shooting Star"
    BULLISH_SPINNING_TOP = "Bullish Spinning Top"
    BEARISH_SPINNING_TOP = "Bearish Spinning Top"
    STRONG_BULLISH = "Strong Bullish"
    STRONG_BEARISH = "Strong Bearish"
    MODERATE_BULLISH = "Moderate Bullish"
    MODERATE_BEARISH = "Moderate Bearish"
    WEAK_BULLISH = "Weak Bullish"
    WEAK_BEARISH = "Weak Bearish"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class BollingerBands(_Frozen):
    upper: float = 0.0
    middle: float = 0.0
    lower: float = 0.0


class ParabolicSar(_Frozen):
    value: float = 0.0
    position: PricePosition = PricePosition.BELOW
    is_uptrend: bool = True


class IndicatorSet(_Frozen):
    """All indicator readings derived from one candle series."""

    ema7: float = 0.0
    ema25: float = 0.0
    ema99: float = 0.0
    atr14: float = 0.0
    bollinger: BollingerBands = Field(default_factory=BollingerBands)
    psar: ParabolicSar = Field(default_factory=ParabolicSar)


class PatternEvent(_Frozen):
    """Classified shape of one recent candle."""

    pattern: CandlePattern
    time_window: str  # "HH:MM-HH:MM"
    date: str  # "Mon D"
    timestamp: int  # close time, epoch ms


class VolumeSummary(_Frozen):
    """Volumes of the last five candles, newest first, plus their mean."""

    recent: tuple[float, ...] = ()
    average: float = 0.0


class OrderBookLevel(_Frozen):
    price: float
    size: float

    @property
    def total(self) -> float:
        """Notional value of the level (price * size)."""
        return self.price * self.size


class OrderBookSummary(_Frozen):
    """Top-of-book levels and the biggest notional wall on each side."""

    biggest_buy_wall: OrderBookLevel | None = None
    biggest_sell_wall: OrderBookLevel | None = None
    buy_to_sell_ratio: float = 0.0
    bids: tuple[OrderBookLevel, ...] = ()
    asks: tuple[OrderBookLevel, ...] = ()

    @classmethod
    def empty(cls) -> "OrderBookSummary":
        return cls()


class HtfTrends(_Frozen):
    """Higher-timeframe trend flags (price vs EMA99 over longer slices)."""

    h1_trend: TrendBias = TrendBias.NEUTRAL
    h1_position: PricePosition = PricePosition.BELOW
    h4_trend: TrendBias = TrendBias.NEUTRAL
    h4_position: PricePosition = PricePosition.BELOW


class Snapshot(_Frozen):
    """One fully-formed indicator publication for a single refresh cycle."""

    symbol: str
    current_price: float = 0.0
    indicators: IndicatorSet = Field(default_factory=IndicatorSet)
    volumes: VolumeSummary = Field(default_factory=VolumeSummary)
    patterns: tuple[PatternEvent, ...] = ()  # newest first
    order_book: OrderBookSummary = Field(default_factory=OrderBookSummary)
    htf_trends: HtfTrends = Field(default_factory=HtfTrends)
    timestamp: int = 0  # build time, epoch ms

    @classmethod
    def empty(cls, symbol: str) -> "Snapshot":
        """Neutral all-zero snapshot served before the first cycle."""
        return cls(symbol=symbol)
