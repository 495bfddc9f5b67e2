"""
Signal scoring types and data structures.
"""
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from quantscore.analysis.types import (
    RiskAssessment,
    SupportResistance,
    TrendAnalysis,
    VolumeAnalysis,
)
from quantscore.indicators import IndicatorValues
from quantscore.providers.audit import CallRecord


class StudyKind(str, Enum):
    """Which composite a result belongs to."""
    TIMING = "TTS"      # Technical Trading Score
    SENTIMENT = "QSS"   # Quantitative Sentiment Score


class TimingSignal(str, Enum):
    """Discrete TTS signal."""
    STRONG_BUY = "StrongBuy"
    BUY = "Buy"
    NEUTRAL = "Neutral"
    SELL = "Sell"
    STRONG_SELL = "StrongSell"

    @property
    def position_size(self) -> float:
        """Suggested position as a fraction of a full position (negative is short)."""
        return {
            TimingSignal.STRONG_BUY: 1.0,
            TimingSignal.BUY: 0.5,
            TimingSignal.NEUTRAL: 0.0,
            TimingSignal.SELL: -0.5,
            TimingSignal.STRONG_SELL: -1.0,
        }[self]

    @property
    def description(self) -> str:
        return {
            TimingSignal.STRONG_BUY: "Strong technical momentum to the upside",
            TimingSignal.BUY: "Technical picture tilts bullish",
            TimingSignal.NEUTRAL: "No clear technical edge",
            TimingSignal.SELL: "Technical picture tilts bearish",
            TimingSignal.STRONG_SELL: "Strong technical momentum to the downside",
        }[self]


class SentimentSignal(str, Enum):
    """Discrete QSS signal."""
    STRONG_BUY = "StrongBuy"
    WEAK_BUY = "WeakBuy"
    HOLD = "Hold"
    WEAK_SELL = "WeakSell"
    STRONG_SELL = "StrongSell"

    @property
    def position_size(self) -> float:
        """Suggested allocation as a fraction of the portfolio."""
        return {
            SentimentSignal.STRONG_BUY: 0.10,
            SentimentSignal.WEAK_BUY: 0.05,
            SentimentSignal.HOLD: 0.0,
            SentimentSignal.WEAK_SELL: -0.05,
            SentimentSignal.STRONG_SELL: -0.10,
        }[self]

    @property
    def description(self) -> str:
        return {
            SentimentSignal.STRONG_BUY: "Estimates, flows and positioning all lean bullish",
            SentimentSignal.WEAK_BUY: "Sentiment leans bullish",
            SentimentSignal.HOLD: "Sentiment is mixed",
            SentimentSignal.WEAK_SELL: "Sentiment leans bearish",
            SentimentSignal.STRONG_SELL: "Estimates, flows and positioning all lean bearish",
        }[self]


Signal = Union[TimingSignal, SentimentSignal]


class Severity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"


class QualityFlag(str, Enum):
    """Data quality warnings attached to a result."""
    INSUFFICIENT_DATA = "insufficient_data"
    NO_ESTIMATES = "no_estimates"
    EARNINGS_WINDOW = "earnings_window"
    GROUP_UNAVAILABLE = "group_unavailable"
    STALE_DATA = "stale_data"
    DEGENERATE_RANGE = "degenerate_range"
    NO_PRICE_DATA = "no_price_data"
    NO_SHORT_DATA = "no_short_data"
    NO_OPTIONS_DATA = "no_options_data"
    NO_BENCHMARK = "no_benchmark"

    @property
    def severity(self) -> Severity:
        if self in (QualityFlag.NO_PRICE_DATA, QualityFlag.GROUP_UNAVAILABLE):
            return Severity.ERROR
        if self in (
            QualityFlag.INSUFFICIENT_DATA,
            QualityFlag.STALE_DATA,
            QualityFlag.EARNINGS_WINDOW,
            QualityFlag.DEGENERATE_RANGE,
        ):
            return Severity.WARNING
        return Severity.INFO

    @property
    def description(self) -> str:
        return _FLAG_DESCRIPTIONS[self]


_FLAG_DESCRIPTIONS = {
    QualityFlag.INSUFFICIENT_DATA: "Too few data points for one or more components",
    QualityFlag.NO_ESTIMATES: "No analyst estimates available",
    QualityFlag.EARNINGS_WINDOW: "Within the earnings announcement window",
    QualityFlag.GROUP_UNAVAILABLE: "A whole component group had no data",
    QualityFlag.STALE_DATA: "Latest data is old relative to the analysis date",
    QualityFlag.DEGENERATE_RANGE: "An indicator hit a zero range and used its neutral value",
    QualityFlag.NO_PRICE_DATA: "No provider returned usable price data",
    QualityFlag.NO_SHORT_DATA: "Short interest data unavailable",
    QualityFlag.NO_OPTIONS_DATA: "Options flow data unavailable",
    QualityFlag.NO_BENCHMARK: "Benchmark unavailable, relative strength uses absolute return",
}


@dataclass(frozen=True)
class ComponentScore:
    """One normalized input to a composite."""
    name: str
    group: str
    raw_value: Optional[float]
    normalized_score: float     # -1..+1, 0 when unavailable
    weight: float               # nominal weight within the group
    data_available: bool
    explanation: str = ""

    @classmethod
    def unavailable(cls, name: str, group: str, weight: float, reason: str) -> "ComponentScore":
        return cls(
            name=name,
            group=group,
            raw_value=None,
            normalized_score=0.0,
            weight=weight,
            data_available=False,
            explanation=reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "group": self.group,
            "raw_value": self.raw_value,
            "normalized_score": self.normalized_score,
            "weight": self.weight,
            "data_available": self.data_available,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class GroupSpec:
    """A weighted group of components inside a composite."""
    name: str
    weight: float
    members: Mapping[str, float]


@dataclass(frozen=True)
class GroupScore:
    name: str
    weight: float
    score: float
    available: bool
    # Member weights after dropping unavailable components, summing to 1
    effective_weights: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class CompositeResult:
    """
    Immutable outcome of one study run for one symbol and date.

    computation_time_ms is excluded from equality so that identical inputs
    compare equal regardless of how long the run took.
    """
    symbol: str
    analysis_date: date
    study: StudyKind
    overall_score: float
    signal: Signal
    confidence: float
    components: Tuple[ComponentScore, ...]
    groups: Tuple[GroupScore, ...] = ()
    indicator_values: Optional[IndicatorValues] = None
    trend: Optional[TrendAnalysis] = None
    support_resistance: Optional[SupportResistance] = None
    volume: Optional[VolumeAnalysis] = None
    risk: Optional[RiskAssessment] = None
    warning_flags: FrozenSet[str] = frozenset()
    data_points_count: int = 0
    current_price: Optional[float] = None
    provenance: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    api_calls: Tuple[CallRecord, ...] = ()
    computation_time_ms: float = field(default=0.0, compare=False)
    explanation: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return any(c.data_available for c in self.components)

    def component(self, name: str) -> Optional[ComponentScore]:
        for c in self.components:
            if c.name == name:
                return c
        return None

    def with_explanation(self, text: Optional[str]) -> "CompositeResult":
        return replace(self, explanation=text)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "symbol": self.symbol,
            "analysis_date": self.analysis_date.isoformat(),
            "study": self.study.value,
            "overall_score": self.overall_score,
            "signal": self.signal.value,
            "confidence": self.confidence,
            "components": [c.to_dict() for c in self.components],
            "groups": [
                {
                    "name": g.name,
                    "weight": g.weight,
                    "score": g.score,
                    "available": g.available,
                    "effective_weights": dict(g.effective_weights),
                }
                for g in self.groups
            ],
            "indicator_values": self.indicator_values.to_dict() if self.indicator_values else None,
            "trend": self.trend.to_dict() if self.trend else None,
            "support_resistance": self.support_resistance.to_dict() if self.support_resistance else None,
            "volume": self.volume.to_dict() if self.volume else None,
            "risk": self.risk.to_dict() if self.risk else None,
            "warning_flags": sorted(str(getattr(f, "value", f)) for f in self.warning_flags),
            "data_points_count": self.data_points_count,
            "current_price": self.current_price,
            "provenance": dict(self.provenance),
            "api_calls": [c.to_dict() for c in self.api_calls],
            "computation_time_ms": self.computation_time_ms,
            "explanation": self.explanation,
        }
