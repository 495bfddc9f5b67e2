"""
Volume analysis.
"""
import numpy as np

from quantscore.analysis.types import PriceVolumeRelationship, VolumeAnalysis, VolumeTrend
from quantscore.models import PriceSeries
from quantscore.providers.exceptions import InsufficientData

DEFAULT_AVG_WINDOW = 20
SHORT_WINDOW = 5
INCREASING_RATIO = 1.2
DECREASING_RATIO = 0.8


def _safe_ratio(numerator: float, denominator: float) -> float:
    return float(numerator / denominator) if denominator > 0 else 1.0


def price_volume_relationship(
    closes: np.ndarray, volumes: np.ndarray, window: int = SHORT_WINDOW
) -> PriceVolumeRelationship:
    """Compare price direction over `window` bars with the change in average volume."""
    if len(closes) < 2 * window:
        return PriceVolumeRelationship.NEUTRAL

    price_up = closes[-1] > closes[-1 - window]
    price_down = closes[-1] < closes[-1 - window]
    volume_up = volumes[-window:].mean() > volumes[-2 * window:-window].mean()

    if price_up and volume_up:
        return PriceVolumeRelationship.BULLISH_DIVERGENCE
    if price_down and volume_up:
        return PriceVolumeRelationship.BEARISH_DIVERGENCE
    return PriceVolumeRelationship.NEUTRAL


def analyze_volume(series: PriceSeries, avg_window: int = DEFAULT_AVG_WINDOW) -> VolumeAnalysis:
    if len(series) == 0:
        raise InsufficientData("volume analysis", 1, 0)

    volumes = series.volumes
    current = float(volumes[-1])
    avg = float(volumes[-avg_window:].mean())

    trend_ratio = _safe_ratio(volumes[-SHORT_WINDOW:].mean(), avg)
    if trend_ratio > INCREASING_RATIO:
        trend = VolumeTrend.INCREASING
    elif trend_ratio < DECREASING_RATIO:
        trend = VolumeTrend.DECREASING
    else:
        trend = VolumeTrend.STABLE

    return VolumeAnalysis(
        current_volume=current,
        avg_volume=avg,
        volume_ratio=_safe_ratio(current, avg),
        volume_trend=trend,
        price_volume_relationship=price_volume_relationship(series.closes, volumes),
    )
