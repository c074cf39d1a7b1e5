"""Single-candle shape classifier.

Rules are evaluated top to bottom and the first match wins. The ratio ranges
overlap, so the order below is part of the contract:

1. Degenerate range -> Invalid Candle
2. Body < 5% of range -> Doji family
3. Body > 90% of range -> Marubozu family
4. Hammer / Hanging Man
5. Inverted Hammer / Shooting Star
6. Spinning Top
7. Strong / Moderate / Weak x Bullish / Bearish
"""

from core.models.snapshot import CandlePattern


def classify_candle(candle) -> CandlePattern:
    """
    Classify the shape of one candle.

    Args:
        candle: Anything with open/high/low/close attributes

    Returns:
        The first matching CandlePattern
    """
    open_ = getattr(candle, "open", None)
    close = getattr(candle, "close", None)
    high = candle.high
    low = candle.low

    if high == low or open_ is None or close is None:
        return CandlePattern.INVALID

    body = abs(close - open_)
    total_range = high - low
    upper_shadow = high - max(open_, close)
    lower_shadow = min(open_, close) - low
    body_top = max(open_, close)
    body_bottom = min(open_, close)
    body_ratio = body / total_range
    bullish = close > open_

    if body_ratio < 0.05:
        if upper_shadow > total_range * 0.4 and lower_shadow > total_range * 0.4:
            return CandlePattern.LONG_LEGGED_DOJI
        if lower_shadow > total_range * 0.6 and upper_shadow < total_range * 0.1:
            return CandlePattern.DRAGONFLY_DOJI
        if upper_shadow > total_range * 0.6 and lower_shadow < total_range * 0.1:
            return CandlePattern.GRAVESTONE_DOJI
        return CandlePattern.DOJI

    if body_ratio > 0.9:
        both_small = upper_shadow < total_range * 0.05 and lower_shadow < total_range * 0.05
        if bullish:
            if both_small:
                return CandlePattern.BULLISH_MARUBOZU
            if upper_shadow < total_range * 0.02:
                return CandlePattern.BULLISH_CLOSING_MARUBOZU
            if lower_shadow < total_range * 0.02:
                return CandlePattern.BULLISH_OPENING_MARUBOZU
        else:
            if both_small:
                return CandlePattern.BEARISH_MARUBOZU
            if lower_shadow < total_range * 0.02:
                return CandlePattern.BEARISH_CLOSING_MARUBOZU
            if upper_shadow < total_range * 0.02:
                return CandlePattern.BEARISH_OPENING_MARUBOZU
        # Lopsided shadows: not a marubozu, fall through

    if (
        lower_shadow > body * 2
        and upper_shadow < body * 0.5
        and body_top > low + total_range * 0.6
    ):
        return CandlePattern.HAMMER if bullish else CandlePattern.HANGING_MAN

    if (
        upper_shadow > body * 2
        and lower_shadow < body * 0.5
        and body_bottom < low + total_range * 0.4
    ):
        return CandlePattern.INVERTED_HAMMER if bullish else CandlePattern.SHOOTING_STAR

    if body_ratio < 0.3 and upper_shadow > body * 0.5 and lower_shadow > body * 0.5:
        return CandlePattern.BULLISH_SPINNING_TOP if bullish else CandlePattern.BEARISH_SPINNING_TOP

    if body_ratio > 0.6:
        return CandlePattern.STRONG_BULLISH if bullish else CandlePattern.STRONG_BEARISH
    if body_ratio > 0.3:
        return CandlePattern.MODERATE_BULLISH if bullish else CandlePattern.MODERATE_BEARISH
    return CandlePattern.WEAK_BULLISH if bullish else CandlePattern.WEAK_BEARISH
