"""
Scoring components.
"""
from quantscore.signals.scoring.components.technical import TechnicalScorer
from quantscore.signals.scoring.components.trend import TrendScorer
from quantscore.signals.scoring.components.sentiment import (
    EarningsRevisionScorer,
    RelativeStrengthScorer,
    ShortInterestScorer,
    OptionsFlowScorer,
)

__all__ = [
    "TechnicalScorer",
    "TrendScorer",
    "EarningsRevisionScorer",
    "RelativeStrengthScorer",
    "ShortInterestScorer",
    "OptionsFlowScorer",
]
