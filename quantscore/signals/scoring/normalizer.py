"""
Component normalizer registry.

Each normalizer maps one component's raw value onto [-1, +1], where
positive is bullish. New components register a function here and the
combiner picks them up by name.
"""
import math
from typing import Callable, Dict, List

from quantscore.analysis.types import TrendDirection

Normalizer = Callable[[float], float]

_REGISTRY: Dict[str, Normalizer] = {}

# Histogram (as % of price) that maps to a full-strength MACD score
MACD_FULL_SCALE_PCT = 0.5
STOCHASTIC_FULL_SCALE = 20.0
EARNINGS_REVISION_FULL_SCALE = 0.20
RELATIVE_STRENGTH_FULL_SCALE_PCT = 10.0
SHORT_INTEREST_FULL_SCALE = 0.25
OPTIONS_SKEW_FULL_SCALE = 0.25


def clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def register_normalizer(*names: str):
    """
    Decorator registering a normalizer under one or more component names.

    Example:
        @register_normalizer("my_indicator")
        def _my_indicator(raw: float) -> float:
            return raw / 10
    """
    def decorator(func: Normalizer) -> Normalizer:
        for name in names:
            if name in _REGISTRY:
                raise ValueError(f"normalizer already registered for '{name}'")
            _REGISTRY[name] = func
        return func
    return decorator


def normalize(name: str, raw: float) -> float:
    """
    Normalized score for a component.

    Raises:
        KeyError: If no normalizer is registered under name
        ValueError: If raw or its mapped value is not finite
    """
    func = _REGISTRY[name]
    if not math.isfinite(raw):
        raise ValueError(f"non-finite raw value for '{name}': {raw}")
    value = float(func(raw))
    if not math.isfinite(value):
        raise ValueError(f"normalizer '{name}' produced {value} from {raw}")
    return clamp(value)


def registered() -> List[str]:
    return sorted(_REGISTRY)


def _linear(value: float, plus_one_at: float, minus_one_at: float) -> float:
    """Line through (plus_one_at, +1) and (minus_one_at, -1)."""
    midpoint = (plus_one_at + minus_one_at) / 2.0
    half_span = (minus_one_at - plus_one_at) / 2.0
    return -(value - midpoint) / half_span


# --- technical ---

@register_normalizer("rsi")
def _rsi(raw: float) -> float:
    # Oversold (30) bullish, overbought (70) bearish
    return _linear(raw, 30.0, 70.0)


@register_normalizer("macd")
def _macd(raw: float) -> float:
    return raw / MACD_FULL_SCALE_PCT


@register_normalizer("bollinger")
def _bollinger(raw: float) -> float:
    # Position in half-band widths from the middle band
    return raw


@register_normalizer("moving_averages")
def _moving_averages(raw: float) -> float:
    return raw


@register_normalizer("stochastic")
def _stochastic(raw: float) -> float:
    # %K above %D is rising momentum
    return raw / STOCHASTIC_FULL_SCALE


@register_normalizer("williams_r")
def _williams_r(raw: float) -> float:
    # -80 oversold bullish, -20 overbought bearish
    return _linear(raw, -80.0, -20.0)


@register_normalizer("atr")
def _atr(raw: float) -> float:
    # Ratio of current to baseline volatility; expanding volatility is bearish
    if raw > 2.0:
        return -1.0
    if raw < 0.5:
        return 0.5
    return -(raw - 1.0)


@register_normalizer("volume")
def _volume(raw: float) -> float:
    return 2.0 * raw


@register_normalizer("trend_short", "trend_medium", "trend_long")
def _trend(raw: float) -> float:
    return TrendDirection.from_return_pct(raw).score


# --- sentiment ---

@register_normalizer("earnings_revisions")
def _earnings_revisions(raw: float) -> float:
    return raw / EARNINGS_REVISION_FULL_SCALE


@register_normalizer("relative_strength")
def _relative_strength(raw: float) -> float:
    return raw / RELATIVE_STRENGTH_FULL_SCALE_PCT


@register_normalizer("short_interest")
def _short_interest(raw: float) -> float:
    # Rising short interest is bearish
    return -raw / SHORT_INTEREST_FULL_SCALE


@register_normalizer("options_flow")
def _options_flow(raw: float) -> float:
    return raw / OPTIONS_SKEW_FULL_SCALE
