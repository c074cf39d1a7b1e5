"""Indicator configuration models."""

from __future__ import annotations

from pydantic import BaseModel


class IndicatorConfig(BaseModel):
    """Indicator periods and trailing windows used by the snapshot builder."""

    # Moving averages
    ema_fast_period: int = 7
    ema_mid_period: int = 25
    ema_slow_period: int = 99

    # Volatility
    atr_period: int = 14
    bollinger_period: int = 20
    bollinger_std_dev: float = 2.0

    # Parabolic SAR (recomputed over a trailing window every cycle)
    psar_accel_initial: float = 0.02
    psar_accel_max: float = 0.2
    psar_window: int = 50

    # Higher-timeframe approximation: EMA(slow) over longer close slices
    htf_h1_window: int = 240
    htf_h4_window: int = 960

    # Number of recent candles classified / summarised
    recent_candles: int = 5
