"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    sma,
    ema,
    atr,
    true_range,
    bollinger_bands,
    parabolic_sar,
)
from core.indicators.patterns import classify_candle

__all__ = [
    "sma",
    "ema",
    "atr",
    "true_range",
    "bollinger_bands",
    "parabolic_sar",
    "classify_candle",
]
