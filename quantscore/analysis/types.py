"""
Descriptive analysis types.
"""
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TrendDirection(str, Enum):
    """Direction of price movement over one horizon."""
    STRONG_BULLISH = "StrongBullish"
    BULLISH = "Bullish"
    NEUTRAL = "Neutral"
    BEARISH = "Bearish"
    STRONG_BEARISH = "StrongBearish"

    @classmethod
    def from_return_pct(cls, pct: float) -> "TrendDirection":
        if pct > 5.0:
            return cls.STRONG_BULLISH
        if pct > 2.0:
            return cls.BULLISH
        if pct < -5.0:
            return cls.STRONG_BEARISH
        if pct < -2.0:
            return cls.BEARISH
        return cls.NEUTRAL

    @property
    def score(self) -> float:
        return _TREND_SCORES[self]


_TREND_SCORES = {
    TrendDirection.STRONG_BULLISH: 1.0,
    TrendDirection.BULLISH: 0.5,
    TrendDirection.NEUTRAL: 0.0,
    TrendDirection.BEARISH: -0.5,
    TrendDirection.STRONG_BEARISH: -1.0,
}


class VolumeTrend(str, Enum):
    INCREASING = "Increasing"
    STABLE = "Stable"
    DECREASING = "Decreasing"


class PriceVolumeRelationship(str, Enum):
    """How price direction lines up with volume over the recent bars."""
    BULLISH_DIVERGENCE = "BullishDivergence"  # price up on rising volume
    BEARISH_DIVERGENCE = "BearishDivergence"  # price down on rising volume
    NEUTRAL = "Neutral"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "VeryHigh"

    @classmethod
    def from_score(cls, volatility_score: float) -> "RiskLevel":
        if volatility_score >= 75:
            return cls.VERY_HIGH
        if volatility_score >= 50:
            return cls.HIGH
        if volatility_score >= 25:
            return cls.MEDIUM
        return cls.LOW


@dataclass(frozen=True)
class HorizonTrend:
    """Return and direction over one lookback horizon."""
    horizon_days: int
    return_pct: Optional[float]
    direction: TrendDirection

    @property
    def available(self) -> bool:
        return self.return_pct is not None


@dataclass(frozen=True)
class TrendAnalysis:
    short: HorizonTrend
    medium: HorizonTrend
    long: HorizonTrend
    trend_strength: float      # 0-100
    trend_consistency: float   # 0-100

    @property
    def short_term_trend(self) -> TrendDirection:
        return self.short.direction

    @property
    def medium_term_trend(self) -> TrendDirection:
        return self.medium.direction

    @property
    def long_term_trend(self) -> TrendDirection:
        return self.long.direction

    def horizons(self) -> Dict[str, HorizonTrend]:
        return {"trend_short": self.short, "trend_medium": self.medium, "trend_long": self.long}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "short_term_trend": self.short.direction.value,
            "medium_term_trend": self.medium.direction.value,
            "long_term_trend": self.long.direction.value,
            "horizon_returns_pct": {
                name: h.return_pct for name, h in self.horizons().items()
            },
            "trend_strength": self.trend_strength,
            "trend_consistency": self.trend_consistency,
        }


@dataclass(frozen=True)
class SupportResistance:
    support_level: float
    resistance_level: float
    support_distance_pct: float
    resistance_distance_pct: float
    support_strength: float      # 0-100
    resistance_strength: float   # 0-100

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VolumeAnalysis:
    current_volume: float
    avg_volume: float
    volume_ratio: float
    volume_trend: VolumeTrend
    price_volume_relationship: PriceVolumeRelationship

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["volume_trend"] = self.volume_trend.value
        data["price_volume_relationship"] = self.price_volume_relationship.value
        return data


@dataclass(frozen=True)
class RiskAssessment:
    volatility_score: float      # 0-100
    risk_level: RiskLevel
    max_drawdown_risk_pct: float
    stop_loss_price: float
    risk_reward_ratio: float
    stop_from_atr: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["risk_level"] = self.risk_level.value
        return data
