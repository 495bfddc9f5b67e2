"""
Composite scoring system.

Normalizes component values onto a common -1..+1 scale, combines them
under fixed group weights and classifies the result into a discrete
signal with a confidence estimate and quality flags.
"""
from quantscore.signals.scoring.types import (
    StudyKind,
    TimingSignal,
    SentimentSignal,
    Signal,
    Severity,
    QualityFlag,
    ComponentScore,
    GroupSpec,
    GroupScore,
    CompositeResult,
)
from quantscore.signals.scoring.normalizer import clamp, normalize, register_normalizer, registered
from quantscore.signals.scoring.composite import (
    INDICATOR_COMPONENTS,
    TREND_COMPONENTS,
    TIMING_GROUPS,
    SENTIMENT_GROUPS,
    CompositeScore,
    CompositeScorer,
)
from quantscore.signals.scoring.classifier import classify, signal_tier
from quantscore.signals.scoring.decay import decay
from quantscore.signals.scoring.confidence import (
    ConfidenceEstimate,
    freshness,
    estimate_confidence,
    assess_quality,
)

__all__ = [
    # Types
    "StudyKind",
    "TimingSignal",
    "SentimentSignal",
    "Signal",
    "Severity",
    "QualityFlag",
    "ComponentScore",
    "GroupSpec",
    "GroupScore",
    "CompositeResult",
    # Normalization
    "clamp",
    "normalize",
    "register_normalizer",
    "registered",
    # Composite
    "INDICATOR_COMPONENTS",
    "TREND_COMPONENTS",
    "TIMING_GROUPS",
    "SENTIMENT_GROUPS",
    "CompositeScore",
    "CompositeScorer",
    # Classification
    "classify",
    "signal_tier",
    # Confidence
    "decay",
    "ConfidenceEstimate",
    "freshness",
    "estimate_confidence",
    "assess_quality",
]
