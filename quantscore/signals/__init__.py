"""
Signals module for composite scoring and signal classification.
"""
from .scoring import (
    StudyKind,
    TimingSignal,
    SentimentSignal,
    QualityFlag,
    ComponentScore,
    CompositeResult,
    CompositeScorer,
    classify,
)
