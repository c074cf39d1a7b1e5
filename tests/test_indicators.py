"""Tests for technical indicators."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from core.indicators import (
    atr,
    bollinger_bands,
    ema,
    parabolic_sar,
    sma,
    true_range,
)
from core.models import Candle, PricePosition

BASE_TIME = datetime(2024, 3, 1, tzinfo=timezone.utc)


def make_candle(i: int, open_: float, high: float, low: float, close: float) -> Candle:
    """Create a 15m candle at slot ``i``."""
    open_time = BASE_TIME + timedelta(minutes=15 * i)
    return Candle(
        open_time=open_time,
        close_time=open_time + timedelta(minutes=15),
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=1000.0,
    )


def alternating_candles(count: int) -> list[Candle]:
    """Closes alternate 100 / 104, each candle 2 wide around its close."""
    candles = []
    for i in range(count):
        close = 100.0 if i % 2 == 0 else 104.0
        candles.append(make_candle(i, close, close + 1, close - 1, close))
    return candles


def rising_candles(count: int) -> list[Candle]:
    """Steady uptrend: every bar one point higher than the last."""
    return [
        make_candle(i, 100.5 + i, 102.0 + i, 100.0 + i, 101.5 + i)
        for i in range(count)
    ]


class TestSMA:
    """Tests for SMA calculation."""

    def test_sma_basic(self):
        """SMA of the trailing window."""
        values = [float(i) for i in range(1, 11)]  # 1-10
        assert sma(values, 3) == pytest.approx(9.0)  # (8+9+10)/3

    def test_sma_insufficient_data(self):
        """Test SMA with insufficient data."""
        assert sma([1.0, 2.0], 3) == 0.0


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_equals_sma_when_length_matches_period(self):
        """With exactly ``period`` values the EMA is the seed SMA."""
        values = [1.0, 2.0, 3.0, 4.0, 5.0]
        assert ema(values, 5) == pytest.approx(3.0)

    def test_ema_smoothing_step(self):
        """One step after the seed: 6 * 1/3 + 3 * 2/3 = 4."""
        values = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
        assert ema(values, 5) == pytest.approx(4.0)

    def test_ema_insufficient_data_returns_last_value(self):
        """Test EMA with insufficient data."""
        assert ema([100.0, 101.0, 102.0], 10) == 102.0

    def test_ema_empty(self):
        """Test EMA of no values."""
        assert ema([], 7) == 0.0

    def test_ema_constant_series(self):
        """Test EMA of a constant series."""
        assert ema([42.0] * 120, 99) == pytest.approx(42.0)

    def test_ema_follows_trend(self):
        """EMA of a rising series lags below the last price."""
        values = [float(i) for i in range(1, 51)]
        result = ema(values, 7)
        assert result < 50.0
        assert result > sma(values, 25)


class TestATR:
    """Tests for ATR calculation."""

    def test_true_range_length(self):
        """Test one true range per candle after the first."""
        candles = alternating_candles(6)
        assert len(true_range(candles)) == 5

    def test_true_range_includes_gaps(self):
        """A gap from the previous close widens the range beyond high - low."""
        candles = alternating_candles(3)
        # high - low is 2, but the jump from 100 to 104 makes TR 5
        assert true_range(candles) == [5.0, 5.0]

    def test_atr_hand_computed_reference(self):
        """15 candles: 13 true ranges of 5 and a final range of 11."""
        candles = alternating_candles(14)
        # Slot 14 closes at 100 after a 104 close, with a wide spike
        candles.append(make_candle(14, 100.0, 110.0, 99.0, 100.0))

        # TR_14 = max(110 - 99, |110 - 104|, |99 - 104|) = 11
        assert atr(candles, 14) == pytest.approx((13 * 5 + 11) / 14)

    def test_atr_uses_last_period_only(self):
        """Older true ranges fall out of the window."""
        candles = [make_candle(0, 100.0, 150.0, 50.0, 100.0)]
        candles += [
            make_candle(i, 100.0, 101.0, 99.0, 100.0) for i in range(1, 20)
        ]
        assert atr(candles, 14) == pytest.approx(2.0)

    def test_atr_insufficient_data(self):
        """Test ATR with insufficient data."""
        assert atr(alternating_candles(14), 14) == 0.0

    def test_atr_non_negative(self):
        """Test ATR is never negative."""
        candles = rising_candles(40)
        assert atr(candles, 14) >= 0.0


class TestBollingerBands:
    """Tests for Bollinger Bands calculation."""

    def test_known_values(self):
        """Population stdev of 1..20 is sqrt(33.25)."""
        values = [float(i) for i in range(1, 21)]
        bands = bollinger_bands(values, 20, 2.0)

        sigma = math.sqrt(33.25)
        assert bands.middle == pytest.approx(10.5)
        assert bands.upper == pytest.approx(10.5 + 2 * sigma)
        assert bands.lower == pytest.approx(10.5 - 2 * sigma)

    def test_band_ordering(self):
        """Test lower <= middle <= upper."""
        values = [100.0 + (i % 7) * 0.8 - (i % 3) for i in range(60)]
        bands = bollinger_bands(values)
        assert bands.lower <= bands.middle <= bands.upper

    def test_constant_prices_collapse(self):
        """Test bands collapse on constant prices."""
        bands = bollinger_bands([50.0] * 30)
        assert bands.upper == bands.middle == bands.lower == pytest.approx(50.0)

    def test_insufficient_data(self):
        """Test Bollinger Bands with insufficient data."""
        bands = bollinger_bands([1.0] * 19, 20)
        assert (bands.upper, bands.middle, bands.lower) == (0.0, 0.0, 0.0)


class TestParabolicSar:
    """Tests for Parabolic SAR."""

    def test_uptrend_without_reversal(self):
        """SAR trails below a steady uptrend and never flips."""
        candles = rising_candles(50)
        psar = parabolic_sar(candles)

        assert psar.is_uptrend is True
        assert psar.position == PricePosition.BELOW
        assert psar.value < candles[-1].low

    def test_reversal_on_low_breach(self):
        """A crash below the SAR flips it to the prior extreme point."""
        candles = [
            make_candle(0, 100.5, 102.0, 100.0, 101.0),
            make_candle(1, 101.5, 103.0, 101.0, 102.0),
            make_candle(2, 101.0, 101.5, 90.0, 91.0),
        ]
        psar = parabolic_sar(candles)

        assert psar.is_uptrend is False
        assert psar.value == pytest.approx(103.0)
        assert psar.position == PricePosition.ABOVE

    def test_first_step(self):
        """SAR starts at the first low and moves by the initial acceleration."""
        candles = rising_candles(2)
        psar = parabolic_sar(candles)
        # 100 + 0.02 * (102 - 100)
        assert psar.value == pytest.approx(100.04)

    def test_single_candle(self):
        """Test SAR of a single candle is its low."""
        psar = parabolic_sar(rising_candles(1))
        assert psar.value == 100.0
        assert psar.position == PricePosition.BELOW

    def test_empty(self):
        """Test SAR of no candles."""
        psar = parabolic_sar([])
        assert psar.value == 0.0
        assert psar.position == PricePosition.BELOW

    def test_deterministic(self):
        """Recomputing over the same window gives the same answer."""
        candles = alternating_candles(50)
        assert parabolic_sar(candles) == parabolic_sar(candles)
