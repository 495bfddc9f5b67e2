"""
Multi-horizon trend analysis.
"""
from typing import Optional, Sequence

import numpy as np

from quantscore.analysis.types import HorizonTrend, TrendAnalysis, TrendDirection
from quantscore.models import PriceSeries

DEFAULT_HORIZONS = (5, 15, 30)
# Consistency loses this many points per 1% of daily return std dev
CONSISTENCY_SCALE = 20.0


def horizon_return_pct(closes: np.ndarray, horizon: int) -> Optional[float]:
    """Percent change from `horizon` bars ago to the last close."""
    if horizon <= 0 or len(closes) < horizon + 1:
        return None
    return float((closes[-1] / closes[-1 - horizon] - 1.0) * 100.0)


def _horizon(closes: np.ndarray, horizon: int) -> HorizonTrend:
    pct = horizon_return_pct(closes, horizon)
    direction = TrendDirection.NEUTRAL if pct is None else TrendDirection.from_return_pct(pct)
    return HorizonTrend(horizon_days=horizon, return_pct=pct, direction=direction)


def analyze_trend(
    series: PriceSeries,
    horizons: Sequence[int] = DEFAULT_HORIZONS,
) -> TrendAnalysis:
    """
    Classify short, medium and long horizon trends.

    Strength is the share of up days inside the medium horizon and
    consistency falls as daily returns get noisier. Horizons longer than
    the series are reported as unavailable and neutral.
    """
    if len(horizons) != 3:
        raise ValueError(f"expected three horizons, got {horizons}")
    closes = series.closes
    short, medium, long = (_horizon(closes, h) for h in horizons)

    if len(closes) < 2:
        return TrendAnalysis(short, medium, long, trend_strength=50.0, trend_consistency=50.0)

    returns = np.diff(closes) / closes[:-1]
    window = returns[-horizons[1]:]
    strength = float((window > 0).mean() * 100.0)
    volatility_pct = float(window.std() * 100.0)
    consistency = float(np.clip(100.0 - volatility_pct * CONSISTENCY_SCALE, 0.0, 100.0))

    return TrendAnalysis(
        short=short,
        medium=medium,
        long=long,
        trend_strength=strength,
        trend_consistency=consistency,
    )
