"""Technical indicators for snapshot generation.

All functions are pure and stateless: they read a borrowed sequence of
prices or candles and return a single reading for the latest bar. Too-short
input never raises; each indicator returns a documented degraded value
instead so a single thin series cannot fail the whole snapshot.
"""

from typing import Sequence

import numpy as np

from core.models.candle import Candle
from core.models.snapshot import BollingerBands, ParabolicSar, PricePosition


def sma(values: Sequence[float], period: int) -> float:
    """
    Calculate the Simple Moving Average of the trailing ``period`` values.

    Args:
        values: Sequence of price values
        period: SMA period

    Returns:
        SMA of the last ``period`` values, or 0.0 if not enough data
    """
    if period <= 0 or len(values) < period:
        return 0.0
    return float(np.mean(np.asarray(values[-period:], dtype=np.float64)))


def ema(values: Sequence[float], period: int) -> float:
    """
    Calculate the Exponential Moving Average of a price series.

    Seeded by the simple average of the first ``period`` values, then
    smoothed with multiplier ``2 / (period + 1)``.

    Args:
        values: Sequence of price values, oldest first
        period: EMA period

    Returns:
        Latest EMA value. With fewer than ``period`` values the last
        available value is returned (0.0 for an empty series).
    """
    if len(values) < period or period <= 0:
        return float(values[-1]) if len(values) else 0.0

    arr = np.asarray(values, dtype=np.float64)
    multiplier = 2.0 / (period + 1)

    result = float(np.mean(arr[:period]))
    for price in arr[period:]:
        result = float(price) * multiplier + result * (1 - multiplier)

    return result


def true_range(candles: Sequence[Candle]) -> list[float]:
    """
    Calculate True Range for every candle after the first.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))

    Args:
        candles: Sequence of candles, oldest first

    Returns:
        List of ``len(candles) - 1`` True Range values
    """
    result = []
    for i in range(1, len(candles)):
        current = candles[i]
        prev_close = candles[i - 1].close
        hl = current.high - current.low
        hc = abs(current.high - prev_close)
        lc = abs(current.low - prev_close)
        result.append(max(hl, hc, lc))
    return result


def atr(candles: Sequence[Candle], period: int = 14) -> float:
    """
    Calculate Average True Range (ATR).

    Simple average of the last ``period`` True Range values (not Wilder's
    smoothing).

    Args:
        candles: Sequence of candles, oldest first
        period: ATR period

    Returns:
        ATR value, or 0.0 with fewer than ``period + 1`` candles
    """
    if period <= 0 or len(candles) < period + 1:
        return 0.0

    tr = true_range(candles)
    return float(np.mean(np.asarray(tr[-period:], dtype=np.float64)))


def bollinger_bands(
    values: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands:
    """
    Calculate Bollinger Bands over the trailing ``period`` values.

    middle = SMA, upper/lower = middle +/- std_dev * population stdev

    Args:
        values: Sequence of price values, oldest first
        period: Lookback period
        std_dev: Standard deviation multiplier

    Returns:
        BollingerBands, all zero if not enough data
    """
    if period <= 0 or len(values) < period:
        return BollingerBands()

    window = np.asarray(values[-period:], dtype=np.float64)
    middle = float(np.mean(window))
    sigma = float(np.std(window))  # ddof=0: population stdev

    return BollingerBands(
        upper=middle + sigma * std_dev,
        middle=middle,
        lower=middle - sigma * std_dev,
    )


def parabolic_sar(
    candles: Sequence[Candle],
    accel_initial: float = 0.02,
    accel_max: float = 0.2,
) -> ParabolicSar:
    """
    Calculate Parabolic SAR by replaying the recurrence over ``candles``.

    No state is carried between calls; callers pass a fixed trailing window
    and the tracker is rebuilt from its first two candles every time.

    Args:
        candles: Sequence of candles, oldest first
        accel_initial: Initial (and per-new-extreme) acceleration factor
        accel_max: Acceleration factor cap

    Returns:
        ParabolicSar with the final SAR value, its position relative to the
        last close and the tracked trend direction
    """
    if len(candles) < 2:
        value = candles[0].low if candles else 0.0
        return ParabolicSar(value=value, position=PricePosition.BELOW)

    sar = candles[0].low
    is_uptrend = candles[1].close > candles[0].close
    acceleration = accel_initial
    extreme_point = candles[0].high if is_uptrend else candles[0].low

    for current in candles[1:]:
        sar = sar + acceleration * (extreme_point - sar)

        if is_uptrend:
            if current.high > extreme_point:
                extreme_point = current.high
                acceleration = min(acceleration + accel_initial, accel_max)
            if current.low < sar:
                is_uptrend = False
                sar = extreme_point
                acceleration = accel_initial
                extreme_point = current.low
        else:
            if current.low < extreme_point:
                extreme_point = current.low
                acceleration = min(acceleration + accel_initial, accel_max)
            if current.high > sar:
                is_uptrend = True
                sar = extreme_point
                acceleration = accel_initial
                extreme_point = current.high

    position = PricePosition.BELOW if sar < candles[-1].close else PricePosition.ABOVE
    return ParabolicSar(value=sar, position=position, is_uptrend=is_uptrend)
