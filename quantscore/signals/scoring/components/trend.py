"""
Trend horizon components.
"""
import math
from typing import List

from quantscore.analysis.types import TrendAnalysis
from quantscore.signals.scoring.composite import TIMING_GROUPS
from quantscore.signals.scoring.normalizer import normalize
from quantscore.signals.scoring.types import ComponentScore

GROUP = "trend"


class TrendScorer:
    """Scores each trend horizon from its percent return."""

    def __init__(self):
        self.weights = dict(TIMING_GROUPS[1].members)

    def score_all(self, trend: TrendAnalysis) -> List[ComponentScore]:
        components = []
        for name, horizon in trend.horizons().items():
            if not horizon.available:
                components.append(ComponentScore.unavailable(
                    name, GROUP, self.weights[name],
                    f"Insufficient data: needs {horizon.horizon_days + 1} points",
                ))
                continue
            if not math.isfinite(horizon.return_pct):
                components.append(ComponentScore.unavailable(
                    name, GROUP, self.weights[name], f"Non-finite return: {horizon.return_pct}",
                ))
                continue
            components.append(ComponentScore(
                name=name,
                group=GROUP,
                raw_value=horizon.return_pct,
                normalized_score=normalize(name, horizon.return_pct),
                weight=self.weights[name],
                data_available=True,
                explanation=(
                    f"{horizon.horizon_days}-day return {horizon.return_pct:+.2f}% "
                    f"({horizon.direction.value})"
                ),
            ))
        return components

    def unavailable(self, reason: str) -> List[ComponentScore]:
        return [ComponentScore.unavailable(name, GROUP, w, reason) for name, w in self.weights.items()]
