"""
Sentiment composite components.

Earnings revisions, relative strength against a benchmark, short interest
and options flow. Positioning data ages quickly, so short interest and
options flow are decayed by the age of their latest observation.
"""
import math
from datetime import date
from typing import Optional

import numpy as np

from quantscore.analysis.trend import horizon_return_pct
from quantscore.models import EstimateRecord, OptionsFlowRecord, PriceSeries, ShortInterestRecord
from quantscore.signals.scoring.composite import SENTIMENT_GROUPS
from quantscore.signals.scoring.decay import decay
from quantscore.signals.scoring.normalizer import normalize
from quantscore.signals.scoring.types import ComponentScore

GROUP = "sentiment"
WEIGHTS = dict(SENTIMENT_GROUPS[0].members)


def _component(name: str, raw: float, explanation: str) -> ComponentScore:
    if not math.isfinite(raw):
        return _missing(name, f"Non-finite {name} value: {raw}")
    return ComponentScore(
        name=name,
        group=GROUP,
        raw_value=raw,
        normalized_score=normalize(name, raw),
        weight=WEIGHTS[name],
        data_available=True,
        explanation=explanation,
    )


def _missing(name: str, reason: str) -> ComponentScore:
    return ComponentScore.unavailable(name, GROUP, WEIGHTS[name], reason)


class EarningsRevisionScorer:
    """Scores the direction and size of the latest consensus EPS revision."""

    name = "earnings_revisions"

    def score(self, estimates: Optional[EstimateRecord]) -> ComponentScore:
        if estimates is None:
            return _missing(self.name, "No estimates available")
        revision = estimates.eps_revision()
        if revision is None:
            return _missing(self.name, "Estimates carry no comparable EPS pair")
        return _component(self.name, revision, self._build_explanation(revision))

    def _build_explanation(self, revision: float) -> str:
        if revision > 0:
            return f"EPS estimates revised up {revision:.1%}"
        if revision < 0:
            return f"EPS estimates revised down {abs(revision):.1%}"
        return "EPS estimates unchanged"


class RelativeStrengthScorer:
    """
    Scores the stock's return over the horizon in excess of the benchmark.

    Without a benchmark the absolute return is used.
    """

    name = "relative_strength"

    def __init__(self, horizon_days: int = 15):
        self.horizon_days = horizon_days

    def score(self, series: Optional[PriceSeries], benchmark: Optional[PriceSeries]) -> ComponentScore:
        if series is None:
            return _missing(self.name, "No price data available")
        stock_return = horizon_return_pct(series.closes, self.horizon_days)
        if stock_return is None:
            return _missing(
                self.name,
                f"Insufficient data: needs {self.horizon_days + 1} points, have {len(series)}",
            )

        bench_return = None
        if benchmark is not None:
            bench_return = horizon_return_pct(benchmark.closes, self.horizon_days)
        if bench_return is None:
            return _component(
                self.name, stock_return,
                f"{self.horizon_days}-day return {stock_return:+.2f}% (no benchmark)",
            )

        excess = stock_return - bench_return
        return _component(
            self.name, excess,
            f"{self.horizon_days}-day return {stock_return:+.2f}% vs "
            f"{benchmark.symbol} {bench_return:+.2f}% ({excess:+.2f}% excess)",
        )


class ShortInterestScorer:
    """Scores the change in short interest against its recent average."""

    name = "short_interest"
    PRIOR_POINTS = 3

    def __init__(self, half_life_days: float = 10.0):
        self.half_life_days = half_life_days

    def score(self, record: Optional[ShortInterestRecord], analysis_date: date) -> ComponentScore:
        if record is None:
            return _missing(self.name, "No short interest data")
        points = record.until(analysis_date).points
        if len(points) < 2:
            return _missing(self.name, "Need at least two short interest reports")

        latest = points[-1]
        prior = float(np.mean([p.short_interest for p in points[-1 - self.PRIOR_POINTS:-1]]))
        if prior <= 0:
            return _missing(self.name, "Prior short interest is zero")

        change = (latest.short_interest - prior) / prior
        age = (analysis_date - latest.date).days
        raw = decay(change, age, self.half_life_days)
        return _component(
            self.name, raw,
            f"Short interest {change:+.1%} vs prior average, reported {age} days ago",
        )


class OptionsFlowScorer:
    """Scores call versus put premium in the latest options session."""

    name = "options_flow"

    def __init__(self, half_life_days: float = 3.0):
        self.half_life_days = half_life_days

    def score(self, record: Optional[OptionsFlowRecord], analysis_date: date) -> ComponentScore:
        if record is None:
            return _missing(self.name, "No options flow data")
        if record.date > analysis_date:
            return _missing(self.name, f"Options session {record.date} is after the analysis date")
        skew = record.premium_skew
        if skew is None:
            return _missing(self.name, "No option premium traded")

        age = (analysis_date - record.date).days
        raw = decay(skew - 0.5, age, self.half_life_days)
        pcr = record.put_call_ratio
        pcr_text = f", put/call volume {pcr:.2f}" if pcr is not None else ""
        return _component(
            self.name, raw,
            f"Calls {skew:.0%} of premium{pcr_text}, session {age} days old",
        )
