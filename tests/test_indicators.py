"""
Tests for the technical indicator library.
"""
import numpy as np
import pytest

from quantscore.indicators import (
    MINIMUM_POINTS,
    atr,
    bollinger,
    compute_indicators,
    ema,
    ema_series,
    macd,
    mean_true_range_pct,
    rsi,
    sma,
    stochastic,
    true_range,
    williams_r,
)

from tests.conftest import make_series, uptrend_closes


# ============================================================================
# Moving averages
# ============================================================================

class TestMovingAverages:
    def test_sma_of_last_period(self):
        assert sma(np.arange(1, 11, dtype=float), 5) == pytest.approx(8.0)

    def test_sma_too_short(self):
        assert sma(np.array([1.0, 2.0]), 5) is None

    def test_ema_seeded_with_sma(self):
        values = np.array([1.0, 2.0, 3.0, 4.0])
        out = ema_series(values, 3)
        assert len(out) == 2
        assert out[0] == pytest.approx(2.0)
        # alpha = 0.5
        assert out[1] == pytest.approx(3.0)

    def test_ema_constant_series(self):
        assert ema(np.full(30, 7.0), 12) == pytest.approx(7.0)

    def test_ema_too_short(self):
        assert ema(np.ones(5), 12) is None


# ============================================================================
# RSI
# ============================================================================

class TestRSI:
    def test_minimum_length(self):
        assert MINIMUM_POINTS["rsi"] == 15
        assert rsi(np.arange(14, dtype=float)) is None
        assert rsi(np.arange(15, dtype=float)) is not None

    def test_only_gains_is_100(self):
        assert rsi(np.array(uptrend_closes(20))) == 100.0

    def test_only_losses_is_0(self):
        assert rsi(np.array(uptrend_closes(20, growth=-0.02))) == 0.0

    def test_flat_is_50(self):
        assert rsi(np.full(20, 10.0)) == 50.0

    @pytest.mark.parametrize("seed", range(5))
    def test_bounded(self, seed):
        rng = np.random.default_rng(seed)
        closes = 100 + np.cumsum(rng.normal(0, 2, 120))
        value = rsi(closes)
        assert 0.0 <= value <= 100.0

    def test_balanced_moves_near_50(self):
        closes = np.array([10.0, 11.0] * 15)
        assert rsi(closes) == pytest.approx(50.0, abs=5.0)


# ============================================================================
# MACD / Bollinger
# ============================================================================

class TestMACD:
    def test_needs_slow_plus_signal(self):
        assert MINIMUM_POINTS["macd"] == 34
        assert macd(np.ones(33)) is None
        assert macd(np.ones(34)) is not None

    def test_flat_series_is_zero(self):
        result = macd(np.full(60, 50.0))
        assert result.macd == pytest.approx(0.0)
        assert result.histogram == pytest.approx(0.0)

    def test_uptrend_positive_line(self):
        result = macd(np.array(uptrend_closes(60, growth=0.01)))
        assert result.macd > 0
        assert result.histogram == pytest.approx(result.macd - result.signal)


class TestBollinger:
    def test_bands_symmetric(self):
        closes = np.array(uptrend_closes(20))
        bands = bollinger(closes)
        assert bands.upper - bands.middle == pytest.approx(bands.middle - bands.lower)
        assert bands.middle == pytest.approx(closes.mean())
        assert bands.half_width == pytest.approx(2 * closes.std())

    def test_flat_series_zero_width(self):
        bands = bollinger(np.full(20, 5.0))
        assert bands.half_width == 0.0

    def test_too_short(self):
        assert bollinger(np.ones(19)) is None


# ============================================================================
# Range based indicators
# ============================================================================

class TestRangeIndicators:
    def test_true_range_uses_previous_close(self):
        highs = np.array([10.0, 12.0])
        lows = np.array([9.0, 11.5])
        closes = np.array([9.5, 11.8])
        # Gap up: high - previous close dominates
        assert true_range(highs, lows, closes)[0] == pytest.approx(2.5)

    def test_atr_constant_range(self):
        series = make_series([100.0] * 20, spread=0.01)
        value = atr(series.highs, series.lows, series.closes)
        assert value == pytest.approx(2.0)

    def test_atr_too_short(self):
        series = make_series([100.0] * 14)
        assert atr(series.highs, series.lows, series.closes) is None

    def test_mean_true_range_pct(self):
        series = make_series([100.0] * 30, spread=0.01)
        assert mean_true_range_pct(series.highs, series.lows, series.closes) == pytest.approx(2.0)

    def test_stochastic_degenerate_window(self):
        flat = np.full(20, 10.0)
        result = stochastic(flat, flat, flat)
        assert result.degenerate
        assert result.k == 50.0
        assert result.d == 50.0

    def test_stochastic_close_at_high(self):
        series = make_series(uptrend_closes(20), spread=0.0)
        result = stochastic(series.highs, series.lows, series.closes)
        assert result.k == pytest.approx(100.0)
        assert not result.degenerate

    def test_williams_bounds(self):
        series = make_series(uptrend_closes(20, growth=-0.01))
        value = williams_r(series.highs, series.lows, series.closes)
        assert -100.0 <= value <= 0.0

    def test_williams_flat_is_minus_50(self):
        flat = np.full(14, 3.0)
        assert williams_r(flat, flat, flat) == -50.0


# ============================================================================
# compute_indicators
# ============================================================================

class TestComputeIndicators:
    def test_short_series_leaves_long_indicators_empty(self, uptrend_series):
        values = compute_indicators(uptrend_series)
        assert values.rsi == 100.0
        assert values.sma_20 is not None
        assert values.sma_50 is None
        assert values.sma_200 is None
        assert values.macd is None
        assert values.atr is not None

    def test_long_series_fills_everything(self, long_series):
        values = compute_indicators(long_series)
        for name in ("rsi", "macd", "macd_signal", "bollinger_upper", "sma_200",
                     "ema_12", "ema_26", "atr", "atr_baseline_pct",
                     "stochastic_k", "stochastic_d", "williams_r"):
            assert getattr(values, name) is not None, name
        assert values.degenerate == frozenset()

    def test_flat_series_flags_degenerate(self):
        values = compute_indicators(make_series([50.0] * 25, spread=0.0))
        assert {"bollinger", "stochastic", "williams_r"} <= values.degenerate

    def test_to_dict_sorts_degenerate(self):
        values = compute_indicators(make_series([50.0] * 25, spread=0.0))
        data = values.to_dict()
        assert data["degenerate"] == sorted(data["degenerate"])
