"""
Result assembly.
"""
from datetime import date
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from quantscore.analysis.types import RiskAssessment, SupportResistance, TrendAnalysis, VolumeAnalysis
from quantscore.indicators import IndicatorValues
from quantscore.providers.audit import CallRecord
from quantscore.signals.scoring.classifier import classify
from quantscore.signals.scoring.composite import CompositeScore
from quantscore.signals.scoring.types import (
    ComponentScore,
    CompositeResult,
    QualityFlag,
    SentimentSignal,
    StudyKind,
    TimingSignal,
)

SIGNAL_TYPES = {
    StudyKind.TIMING: TimingSignal,
    StudyKind.SENTIMENT: SentimentSignal,
}


class ResultAssembler:
    """
    Packages scores, analyses, flags and provenance into a CompositeResult.

    Provenance only names providers for components that actually had data.
    """

    def __init__(self, study: StudyKind):
        self.study = study
        self.signal_type = SIGNAL_TYPES[study]

    def assemble(
        self,
        symbol: str,
        analysis_date: date,
        composite: CompositeScore,
        components: Sequence[ComponentScore],
        confidence: float,
        flags: Iterable[QualityFlag],
        sources: Optional[Mapping[str, str]] = None,
        api_calls: Sequence[CallRecord] = (),
        indicator_values: Optional[IndicatorValues] = None,
        trend: Optional[TrendAnalysis] = None,
        support_resistance: Optional[SupportResistance] = None,
        volume: Optional[VolumeAnalysis] = None,
        risk: Optional[RiskAssessment] = None,
        data_points_count: int = 0,
        current_price: Optional[float] = None,
        computation_time_ms: float = 0.0,
    ) -> CompositeResult:
        """
        Build the immutable result.

        Args:
            sources: Provider name per component, for every component
                that was computed from provider data
        """
        sources = sources or {}
        provenance = {
            c.name: sources[c.name]
            for c in components
            if c.data_available and c.name in sources
        }
        return CompositeResult(
            symbol=symbol,
            analysis_date=analysis_date,
            study=self.study,
            overall_score=composite.overall_score,
            signal=classify(composite.overall_score, self.signal_type),
            confidence=confidence,
            components=tuple(components),
            groups=composite.groups,
            indicator_values=indicator_values,
            trend=trend,
            support_resistance=support_resistance,
            volume=volume,
            risk=risk,
            warning_flags=frozenset(flags),
            data_points_count=data_points_count,
            current_price=current_price,
            provenance=MappingProxyType(provenance),
            api_calls=tuple(api_calls),
            computation_time_ms=computation_time_ms,
        )
