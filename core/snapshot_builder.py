"""Snapshot builder: candle series + current price -> immutable Snapshot.

The builder only reads the series it is handed. Every sub-computation is
isolated: if one indicator blows up on odd data, that field falls back to
its degraded value and the rest of the snapshot is still produced.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, TypeVar

from core.indicators import (
    atr,
    bollinger_bands,
    classify_candle,
    ema,
    parabolic_sar,
)
from core.models.candle import Candle, CandleSeries
from core.models.config import IndicatorConfig
from core.models.snapshot import (
    BollingerBands,
    CandlePattern,
    HtfTrends,
    IndicatorSet,
    OrderBookSummary,
    ParabolicSar,
    PatternEvent,
    PricePosition,
    Snapshot,
    TrendBias,
    VolumeSummary,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _guarded(label: str, compute: Callable[[], T], fallback: T) -> T:
    """Run one field computation, falling back instead of failing the build."""
    try:
        return compute()
    except Exception as e:
        logger.warning(f"Snapshot field {label} failed, using fallback: {e}")
        return fallback


def _hhmm(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%H:%M")


def pattern_event(candle: Candle) -> PatternEvent:
    """Classify one candle and attach its display time window."""
    close_time = candle.close_time.astimezone(timezone.utc)
    return PatternEvent(
        pattern=classify_candle(candle),
        time_window=f"{_hhmm(candle.open_time)}-{_hhmm(close_time)}",
        date=f"{close_time:%b} {close_time.day}",
        timestamp=candle.close_time_ms,
    )


def htf_trends(current_price: float, ema_h1: float, ema_h4: float) -> HtfTrends:
    """Compare price with the longer-slice EMAs."""
    h1_above = current_price > ema_h1
    h4_above = current_price > ema_h4
    return HtfTrends(
        h1_trend=TrendBias.BULLISH if h1_above else TrendBias.BEARISH,
        h1_position=PricePosition.ABOVE if h1_above else PricePosition.BELOW,
        h4_trend=TrendBias.BULLISH if h4_above else TrendBias.BEARISH,
        h4_position=PricePosition.ABOVE if h4_above else PricePosition.BELOW,
    )


class SnapshotBuilder:
    """Builds one Snapshot from a point-in-time view of a candle series."""

    def __init__(self, config: IndicatorConfig | None = None):
        self.config = config or IndicatorConfig()

    def build_indicators(self, series: CandleSeries) -> IndicatorSet:
        """Compute the IndicatorSet for a series."""
        cfg = self.config
        closes = series.close_prices()
        candles = series.window()

        return IndicatorSet(
            ema7=_guarded("ema7", lambda: ema(closes, cfg.ema_fast_period), 0.0),
            ema25=_guarded("ema25", lambda: ema(closes, cfg.ema_mid_period), 0.0),
            ema99=_guarded("ema99", lambda: ema(closes, cfg.ema_slow_period), 0.0),
            atr14=_guarded("atr14", lambda: atr(candles, cfg.atr_period), 0.0),
            bollinger=_guarded(
                "bollinger",
                lambda: bollinger_bands(closes, cfg.bollinger_period, cfg.bollinger_std_dev),
                BollingerBands(),
            ),
            psar=_guarded(
                "psar",
                lambda: parabolic_sar(
                    series.window(cfg.psar_window),
                    cfg.psar_accel_initial,
                    cfg.psar_accel_max,
                ),
                ParabolicSar(),
            ),
        )

    def build_patterns(self, series: CandleSeries) -> tuple[PatternEvent, ...]:
        """Classify the most recent candles, newest first."""
        events = []
        for candle in series.window(self.config.recent_candles):
            events.append(
                _guarded(
                    "pattern",
                    lambda c=candle: pattern_event(c),
                    PatternEvent(
                        pattern=CandlePattern.INVALID,
                        time_window="",
                        date="",
                        timestamp=candle.close_time_ms,
                    ),
                )
            )
        events.reverse()
        return tuple(events)

    def build_volumes(self, series: CandleSeries) -> VolumeSummary:
        """Summarize the volumes of the most recent candles, newest first."""
        recent = [c.volume for c in series.window(self.config.recent_candles)]
        if not recent:
            return VolumeSummary()
        recent.reverse()
        return VolumeSummary(recent=tuple(recent), average=sum(recent) / len(recent))

    def build_htf_trends(self, series: CandleSeries, current_price: float) -> HtfTrends:
        """Trend flags against EMA(slow) over longer trailing slices.

        Approximates 1h / 4h trend by slicing more base-interval candles
        rather than resampling them into true higher-timeframe bars.
        """
        cfg = self.config
        if not len(series):
            return HtfTrends()
        closes = series.close_prices()
        ema_h1 = ema(closes[-cfg.htf_h1_window:], cfg.ema_slow_period)
        ema_h4 = ema(closes[-cfg.htf_h4_window:], cfg.ema_slow_period)
        return htf_trends(current_price, ema_h1, ema_h4)

    def build(
        self,
        series: CandleSeries,
        current_price: float,
        symbol: str,
        order_book: OrderBookSummary | None = None,
        now_ms: int | None = None,
    ) -> Snapshot:
        """
        Build a complete Snapshot.

        Args:
            series: Candle series (read only)
            current_price: Latest traded price
            symbol: Display symbol (e.g., "SOL/USDT")
            order_book: Order book summary, empty if not available
            now_ms: Build timestamp in epoch ms (defaults to now)

        Returns:
            Immutable Snapshot
        """
        return Snapshot(
            symbol=symbol,
            current_price=current_price,
            indicators=_guarded("indicators", lambda: self.build_indicators(series), IndicatorSet()),
            volumes=_guarded("volumes", lambda: self.build_volumes(series), VolumeSummary()),
            patterns=_guarded("patterns", lambda: self.build_patterns(series), ()),
            order_book=order_book or OrderBookSummary.empty(),
            htf_trends=_guarded(
                "htf_trends",
                lambda: self.build_htf_trends(series, current_price),
                HtfTrends(),
            ),
            timestamp=now_ms if now_ms is not None else int(time.time() * 1000),
        )
