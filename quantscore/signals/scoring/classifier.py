"""
Signal classification.

Maps a composite score to one of five ordered bands. Boundaries belong to
the band further from zero: 0.6 is a strong buy and -0.2 is a sell.
"""
from typing import Type, TypeVar

from quantscore.signals.scoring.types import SentimentSignal, TimingSignal

STRONG_THRESHOLD = 0.6
WEAK_THRESHOLD = 0.2

S = TypeVar("S", TimingSignal, SentimentSignal)


def signal_tier(score: float) -> int:
    """Band index from +2 (strongest buy) to -2 (strongest sell)."""
    if score >= STRONG_THRESHOLD:
        return 2
    if score >= WEAK_THRESHOLD:
        return 1
    if score <= -STRONG_THRESHOLD:
        return -2
    if score <= -WEAK_THRESHOLD:
        return -1
    return 0


def classify(score: float, signal_type: Type[S] = TimingSignal) -> S:
    """
    Classify a composite score.

    Both signal enums list their members from strongest buy to strongest
    sell, so the tier indexes straight into them.
    """
    members = list(signal_type)
    return members[2 - signal_tier(score)]
