"""
Descriptive analyzers.

Trend, support/resistance, volume and risk views of a price series,
reported alongside the composite score. Only the trend horizon returns
also feed the score.
"""
from quantscore.analysis.types import (
    TrendDirection,
    VolumeTrend,
    PriceVolumeRelationship,
    RiskLevel,
    HorizonTrend,
    TrendAnalysis,
    SupportResistance,
    VolumeAnalysis,
    RiskAssessment,
)
from quantscore.analysis.trend import analyze_trend, horizon_return_pct
from quantscore.analysis.support_resistance import analyze_support_resistance
from quantscore.analysis.volume import analyze_volume
from quantscore.analysis.risk import assess_risk

__all__ = [
    # Types
    "TrendDirection",
    "VolumeTrend",
    "PriceVolumeRelationship",
    "RiskLevel",
    "HorizonTrend",
    "TrendAnalysis",
    "SupportResistance",
    "VolumeAnalysis",
    "RiskAssessment",
    # Analyzers
    "analyze_trend",
    "horizon_return_pct",
    "analyze_support_resistance",
    "analyze_volume",
    "assess_risk",
]
