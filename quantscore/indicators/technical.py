"""
Technical indicator library.

Pure functions over numpy arrays of daily bars. Every function returns None
when the input is shorter than the indicator's minimum length instead of
computing a value from partial history.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, Optional

import numpy as np

from quantscore.models import PriceSeries

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
BOLLINGER_PERIOD = 20
BOLLINGER_STD = 2.0
ATR_PERIOD = 14
ATR_BASELINE_WINDOW = 50
STOCH_PERIOD = 14
STOCH_SMOOTH = 3
WILLIAMS_PERIOD = 14
SMA_PERIODS = (20, 50, 200)
EMA_PERIODS = (12, 26)

MINIMUM_POINTS: Dict[str, int] = {
    "rsi": RSI_PERIOD + 1,
    "macd": MACD_SLOW + MACD_SIGNAL - 1,
    "bollinger": BOLLINGER_PERIOD,
    "sma_20": 20,
    "sma_50": 50,
    "sma_200": 200,
    "ema_12": 12,
    "ema_26": 26,
    "atr": ATR_PERIOD + 1,
    "stochastic": STOCH_PERIOD + STOCH_SMOOTH - 1,
    "williams_r": WILLIAMS_PERIOD,
}


@dataclass(frozen=True)
class MACDResult:
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float

    @property
    def half_width(self) -> float:
        return self.upper - self.middle


@dataclass(frozen=True)
class StochasticResult:
    k: float
    d: float
    degenerate: bool = False


@dataclass(frozen=True)
class IndicatorValues:
    """Latest value of each indicator; None where history was too short."""
    rsi: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    bollinger_upper: Optional[float] = None
    bollinger_middle: Optional[float] = None
    bollinger_lower: Optional[float] = None
    sma_20: Optional[float] = None
    sma_50: Optional[float] = None
    sma_200: Optional[float] = None
    ema_12: Optional[float] = None
    ema_26: Optional[float] = None
    atr: Optional[float] = None
    atr_baseline_pct: Optional[float] = None
    stochastic_k: Optional[float] = None
    stochastic_d: Optional[float] = None
    williams_r: Optional[float] = None
    # Indicators that fell back to their neutral value on a zero range
    degenerate: FrozenSet[str] = field(default_factory=frozenset)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["degenerate"] = sorted(self.degenerate)
        return data


def sma(values: np.ndarray, period: int) -> Optional[float]:
    """Simple moving average of the last `period` values."""
    if period <= 0 or len(values) < period:
        return None
    return float(np.mean(values[-period:]))


def ema_series(values: np.ndarray, period: int) -> np.ndarray:
    """
    Exponential moving average series.

    Seeded with the SMA of the first `period` values, then smoothed with
    alpha = 2 / (period + 1). The result has len(values) - period + 1
    entries, the first aligned with values[period - 1].
    """
    values = np.asarray(values, dtype=float)
    if period <= 0 or len(values) < period:
        return np.array([], dtype=float)

    alpha = 2.0 / (period + 1)
    out = np.empty(len(values) - period + 1, dtype=float)
    out[0] = values[:period].mean()
    for i, value in enumerate(values[period:], start=1):
        out[i] = (value - out[i - 1]) * alpha + out[i - 1]
    return out


def ema(values: np.ndarray, period: int) -> Optional[float]:
    series = ema_series(values, period)
    return float(series[-1]) if len(series) else None


def rsi(closes: np.ndarray, period: int = RSI_PERIOD) -> Optional[float]:
    """
    Relative Strength Index with Wilder smoothing.

    Degenerate cases: only gains -> 100, only losses -> 0, no movement at
    all -> 50.
    """
    closes = np.asarray(closes, dtype=float)
    if len(closes) < period + 1:
        return None

    deltas = np.diff(closes)
    gains = np.clip(deltas, 0.0, None)
    losses = np.clip(-deltas, 0.0, None)

    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 50.0 if avg_gain == 0 else 100.0
    if avg_gain == 0:
        return 0.0
    rs = avg_gain / avg_loss
    return float(100.0 - 100.0 / (1.0 + rs))


def macd(
    closes: np.ndarray,
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal: int = MACD_SIGNAL,
) -> Optional[MACDResult]:
    """MACD line (EMA fast - EMA slow), its EMA signal line and the histogram."""
    closes = np.asarray(closes, dtype=float)
    if len(closes) < slow + signal - 1:
        return None

    fast_ema = ema_series(closes, fast)
    slow_ema = ema_series(closes, slow)
    # Align both on the bars where the slow EMA exists
    line = fast_ema[slow - fast:] - slow_ema
    signal_line = ema_series(line, signal)

    macd_value = float(line[-1])
    signal_value = float(signal_line[-1])
    return MACDResult(macd=macd_value, signal=signal_value, histogram=macd_value - signal_value)


def bollinger(
    closes: np.ndarray,
    period: int = BOLLINGER_PERIOD,
    num_std: float = BOLLINGER_STD,
) -> Optional[BollingerBands]:
    """Bollinger bands from the SMA and population std dev of the last `period` closes."""
    closes = np.asarray(closes, dtype=float)
    if len(closes) < period:
        return None
    window = closes[-period:]
    middle = float(window.mean())
    std = float(window.std())  # population std (ddof=0)
    return BollingerBands(upper=middle + num_std * std, middle=middle, lower=middle - num_std * std)


def true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """True range for every bar after the first."""
    highs, lows, closes = (np.asarray(a, dtype=float) for a in (highs, lows, closes))
    if len(closes) < 2:
        return np.array([], dtype=float)
    prev_close = closes[:-1]
    return np.maximum.reduce([
        highs[1:] - lows[1:],
        np.abs(highs[1:] - prev_close),
        np.abs(lows[1:] - prev_close),
    ])


def atr(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    period: int = ATR_PERIOD,
) -> Optional[float]:
    """Average True Range as the simple mean of the last `period` true ranges."""
    tr = true_range(highs, lows, closes)
    if len(tr) < period:
        return None
    return float(tr[-period:].mean())


def mean_true_range_pct(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    window: int = ATR_BASELINE_WINDOW,
    min_periods: int = ATR_PERIOD,
) -> Optional[float]:
    """Average of true range as a percentage of close over the trailing window."""
    closes = np.asarray(closes, dtype=float)
    tr = true_range(highs, lows, closes)
    if len(tr) < min_periods:
        return None
    tr_pct = tr / closes[1:] * 100.0
    return float(tr_pct[-window:].mean())


def _percent_k(high: float, low: float, close: float) -> Optional[float]:
    if high == low:
        return None
    return 100.0 * (close - low) / (high - low)


def stochastic(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    period: int = STOCH_PERIOD,
    smooth: int = STOCH_SMOOTH,
) -> Optional[StochasticResult]:
    """
    Stochastic oscillator %K and %D (SMA of the last `smooth` %K values).

    A window with no range yields %K = 50 and marks the result degenerate.
    """
    highs, lows, closes = (np.asarray(a, dtype=float) for a in (highs, lows, closes))
    if len(closes) < period + smooth - 1:
        return None

    k_values = []
    degenerate = False
    for end in range(len(closes) - smooth + 1, len(closes) + 1):
        k = _percent_k(
            float(highs[end - period:end].max()),
            float(lows[end - period:end].min()),
            float(closes[end - 1]),
        )
        if k is None:
            degenerate = True
            k = 50.0
        k_values.append(k)

    return StochasticResult(k=k_values[-1], d=float(np.mean(k_values)), degenerate=degenerate)


def williams_r(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    period: int = WILLIAMS_PERIOD,
) -> Optional[float]:
    """Williams %R in [-100, 0]; -50 when the window has no range."""
    highs, lows, closes = (np.asarray(a, dtype=float) for a in (highs, lows, closes))
    if len(closes) < period:
        return None
    highest = float(highs[-period:].max())
    lowest = float(lows[-period:].min())
    if highest == lowest:
        return -50.0
    return -100.0 * (highest - float(closes[-1])) / (highest - lowest)


def compute_indicators(series: PriceSeries) -> IndicatorValues:
    """Compute every indicator the series is long enough for."""
    closes, highs, lows = series.closes, series.highs, series.lows
    degenerate = set()

    macd_result = macd(closes)
    bands = bollinger(closes)
    if bands is not None and bands.half_width == 0:
        degenerate.add("bollinger")

    stoch = stochastic(highs, lows, closes)
    if stoch is not None and stoch.degenerate:
        degenerate.add("stochastic")

    wr = williams_r(highs, lows, closes)
    if wr is not None and highs[-WILLIAMS_PERIOD:].max() == lows[-WILLIAMS_PERIOD:].min():
        degenerate.add("williams_r")

    return IndicatorValues(
        rsi=rsi(closes),
        macd=macd_result.macd if macd_result else None,
        macd_signal=macd_result.signal if macd_result else None,
        macd_histogram=macd_result.histogram if macd_result else None,
        bollinger_upper=bands.upper if bands else None,
        bollinger_middle=bands.middle if bands else None,
        bollinger_lower=bands.lower if bands else None,
        sma_20=sma(closes, 20),
        sma_50=sma(closes, 50),
        sma_200=sma(closes, 200),
        ema_12=ema(closes, 12),
        ema_26=ema(closes, 26),
        atr=atr(highs, lows, closes),
        atr_baseline_pct=mean_true_range_pct(highs, lows, closes),
        stochastic_k=stoch.k if stoch else None,
        stochastic_d=stoch.d if stoch else None,
        williams_r=wr,
        degenerate=frozenset(degenerate),
    )
