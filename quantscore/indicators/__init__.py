"""
Technical indicators.
"""
from quantscore.indicators.technical import (
    MINIMUM_POINTS,
    IndicatorValues,
    MACDResult,
    BollingerBands,
    StochasticResult,
    sma,
    ema,
    ema_series,
    rsi,
    macd,
    bollinger,
    true_range,
    atr,
    mean_true_range_pct,
    stochastic,
    williams_r,
    compute_indicators,
)

__all__ = [
    "MINIMUM_POINTS",
    "IndicatorValues",
    "MACDResult",
    "BollingerBands",
    "StochasticResult",
    "sma",
    "ema",
    "ema_series",
    "rsi",
    "macd",
    "bollinger",
    "true_range",
    "atr",
    "mean_true_range_pct",
    "stochastic",
    "williams_r",
    "compute_indicators",
]
