"""
Confidence and data quality estimation.

Confidence blends three measures, each in [0, 1]:

- availability: share of components that had data (weight 0.4)
- sufficiency: data points relative to a full history (weight 0.3)
- freshness: age of the newest data point, decayed past a grace period
  (weight 0.3)

Quality flags are warnings attached to a result; they never stop a run.
"""
from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, Iterable, Optional, Sequence

from quantscore.signals.scoring.decay import decay
from quantscore.signals.scoring.types import ComponentScore, QualityFlag

AVAILABILITY_WEIGHT = 0.4
SUFFICIENCY_WEIGHT = 0.3
FRESHNESS_WEIGHT = 0.3
STALE_THRESHOLD = 0.5


@dataclass(frozen=True)
class ConfidenceEstimate:
    confidence: float
    availability: float
    sufficiency: float
    freshness: float

    @property
    def is_stale(self) -> bool:
        return self.freshness < STALE_THRESHOLD


def freshness(
    last_data_date: Optional[date],
    analysis_date: date,
    half_life_days: float = 5.0,
    grace_days: float = 3.0,
) -> float:
    """1.0 within the grace period (weekends), then halving every half-life."""
    if last_data_date is None:
        return 0.0
    age = (analysis_date - last_data_date).days
    return decay(1.0, max(0.0, age - grace_days), half_life_days)


def estimate_confidence(
    components: Sequence[ComponentScore],
    data_points: int,
    last_data_date: Optional[date],
    analysis_date: date,
    full_history_points: int = 50,
    freshness_half_life_days: float = 5.0,
    freshness_grace_days: float = 3.0,
) -> ConfidenceEstimate:
    availability = (
        sum(1 for c in components if c.data_available) / len(components) if components else 0.0
    )
    sufficiency = min(1.0, data_points / full_history_points) if full_history_points > 0 else 1.0
    fresh = freshness(last_data_date, analysis_date, freshness_half_life_days, freshness_grace_days)

    confidence = (
        AVAILABILITY_WEIGHT * availability
        + SUFFICIENCY_WEIGHT * sufficiency
        + FRESHNESS_WEIGHT * fresh
    )
    return ConfidenceEstimate(
        confidence=max(0.0, min(1.0, confidence)),
        availability=availability,
        sufficiency=sufficiency,
        freshness=fresh,
    )


def assess_quality(
    components: Sequence[ComponentScore],
    estimate: ConfidenceEstimate,
    unavailable_groups: Iterable[str] = (),
    has_price_data: bool = True,
    insufficient_components: Iterable[str] = (),
    degenerate_components: Iterable[str] = (),
    days_to_earnings: Optional[int] = None,
    earnings_window_days: int = 2,
    extra_flags: Iterable[QualityFlag] = (),
) -> FrozenSet[QualityFlag]:
    """Collect the quality flags for one run."""
    flags = set(extra_flags)

    if not has_price_data:
        flags.add(QualityFlag.NO_PRICE_DATA)
        flags.add(QualityFlag.INSUFFICIENT_DATA)
    if tuple(insufficient_components):
        flags.add(QualityFlag.INSUFFICIENT_DATA)
    if tuple(degenerate_components):
        flags.add(QualityFlag.DEGENERATE_RANGE)
    if tuple(unavailable_groups):
        flags.add(QualityFlag.GROUP_UNAVAILABLE)
    if has_price_data and estimate.is_stale:
        flags.add(QualityFlag.STALE_DATA)
    if days_to_earnings is not None and days_to_earnings <= earnings_window_days:
        flags.add(QualityFlag.EARNINGS_WINDOW)

    return frozenset(flags)
