"""Data models."""

from core.models.candle import Candle, CandleSeries, DEFAULT_CAPACITY
from core.models.config import IndicatorConfig
from core.models.snapshot import (
    BollingerBands,
    CandlePattern,
    HtfTrends,
    IndicatorSet,
    OrderBookLevel,
    OrderBookSummary,
    ParabolicSar,
    PatternEvent,
    PricePosition,
    Snapshot,
    TrendBias,
    VolumeSummary,
)
from core.models.converters import (
    format_price,
    format_volume,
    parse_volume,
    snapshot_to_wire,
    snapshot_from_wire,
)

__all__ = [
    "Candle",
    "CandleSeries",
    "DEFAULT_CAPACITY",
    "IndicatorConfig",
    "BollingerBands",
    "CandlePattern",
    "HtfTrends",
    "IndicatorSet",
    "OrderBookLevel",
    "OrderBookSummary",
    "ParabolicSar",
    "PatternEvent",
    "PricePosition",
    "Snapshot",
    "TrendBias",
    "VolumeSummary",
    "format_price",
    "format_volume",
    "parse_volume",
    "snapshot_to_wire",
    "snapshot_from_wire",
]
