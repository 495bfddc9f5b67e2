"""
Support and resistance detection.

Levels come from clusters of confirmed pivot lows and highs in the
trailing window; when no pivot sits on the right side of the price the
window extreme is used instead.
"""
from typing import List

import numpy as np
import pandas as pd

from quantscore.analysis.types import SupportResistance
from quantscore.models import PriceSeries
from quantscore.providers.exceptions import InsufficientData

DEFAULT_WINDOW = 50
DEFAULT_TOLERANCE_PCT = 1.0
PIVOT_SPAN = 2                  # bars on each side of a pivot
TOUCHES_FOR_FULL_STRENGTH = 5


def find_pivots(values: pd.Series, kind: str, span: int = PIVOT_SPAN) -> List[float]:
    """
    Values that are the min (kind="low") or max (kind="high") of the
    centred window around them. Bars within `span` of either edge are
    unconfirmed and never pivots.
    """
    rolling = values.rolling(2 * span + 1, center=True)
    extreme = rolling.min() if kind == "low" else rolling.max()
    return values[values == extreme].tolist()


def cluster_levels(prices: List[float], tolerance_pct: float) -> List[float]:
    """Greedy clustering of sorted prices; returns the cluster means."""
    clusters: List[List[float]] = []
    for price in sorted(prices):
        if clusters:
            mean = float(np.mean(clusters[-1]))
            if abs(price - mean) / mean * 100.0 <= tolerance_pct:
                clusters[-1].append(price)
                continue
        clusters.append([price])
    return [float(np.mean(c)) for c in clusters]


def count_touches(values: np.ndarray, level: float, tolerance_pct: float) -> int:
    if level <= 0:
        return 0
    return int((np.abs(values - level) / level * 100.0 <= tolerance_pct).sum())


def analyze_support_resistance(
    series: PriceSeries,
    window: int = DEFAULT_WINDOW,
    tolerance_pct: float = DEFAULT_TOLERANCE_PCT,
) -> SupportResistance:
    if len(series) == 0:
        raise InsufficientData("support/resistance", 1, 0)

    frame = series.tail(window).to_frame()
    price = float(frame["close"].iloc[-1])

    lows = [p for p in cluster_levels(find_pivots(frame["low"], "low"), tolerance_pct) if p <= price]
    highs = [p for p in cluster_levels(find_pivots(frame["high"], "high"), tolerance_pct) if p >= price]

    support = max(lows) if lows else float(frame["low"].min())
    resistance = min(highs) if highs else float(frame["high"].max())

    support_touches = count_touches(frame["low"].to_numpy(), support, tolerance_pct)
    resistance_touches = count_touches(frame["high"].to_numpy(), resistance, tolerance_pct)

    return SupportResistance(
        support_level=support,
        resistance_level=resistance,
        support_distance_pct=(price - support) / support * 100.0,
        resistance_distance_pct=(resistance - price) / resistance * 100.0,
        support_strength=min(100.0, 100.0 * support_touches / TOUCHES_FOR_FULL_STRENGTH),
        resistance_strength=min(100.0, 100.0 * resistance_touches / TOUCHES_FOR_FULL_STRENGTH),
    )
