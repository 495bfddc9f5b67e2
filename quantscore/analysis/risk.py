"""
Risk assessment.

Volatility is annualized from daily close-to-close returns over the last
20 bars. Stops are placed a multiple of ATR below the price, or a fixed
percentage below when ATR is not available.
"""
import math
from typing import Optional

import numpy as np

from quantscore.analysis.types import RiskAssessment, RiskLevel
from quantscore.indicators import IndicatorValues
from quantscore.models import PriceSeries
from quantscore.providers.exceptions import InsufficientData

VOLATILITY_WINDOW = 20
TRADING_DAYS = 252
# Annualized volatility (%) that maps to a volatility score of 100
FULL_SCALE_VOLATILITY_PCT = 80.0


def annualized_volatility_pct(closes: np.ndarray, window: int = VOLATILITY_WINDOW) -> float:
    if len(closes) < 3:
        return 0.0
    returns = np.diff(closes[-(window + 1):]) / closes[-(window + 1):-1]
    return float(returns.std(ddof=1) * math.sqrt(TRADING_DAYS) * 100.0)


def max_drawdown_pct(closes: np.ndarray) -> float:
    """Largest peak-to-trough decline, as a positive percentage."""
    if len(closes) == 0:
        return 0.0
    running_peak = np.maximum.accumulate(closes)
    drawdowns = (running_peak - closes) / running_peak * 100.0
    return float(drawdowns.max())


def assess_risk(
    series: PriceSeries,
    indicators: IndicatorValues,
    resistance_level: Optional[float] = None,
    atr_multiple: float = 2.0,
    fallback_stop_pct: float = 8.0,
) -> RiskAssessment:
    if len(series) == 0:
        raise InsufficientData("risk assessment", 1, 0)

    closes = series.closes
    price = float(closes[-1])

    volatility_score = float(np.clip(
        annualized_volatility_pct(closes) / FULL_SCALE_VOLATILITY_PCT * 100.0, 0.0, 100.0
    ))

    stop_from_atr = indicators.atr is not None and indicators.atr > 0
    if stop_from_atr:
        stop = price - atr_multiple * indicators.atr
    else:
        stop = price * (1.0 - fallback_stop_pct / 100.0)
    stop = max(stop, 0.0)

    risk = price - stop
    target = resistance_level if resistance_level is not None else float(series.highs[-VOLATILITY_WINDOW:].max())
    reward = max(0.0, target - price)
    risk_reward = reward / risk if risk > 0 else 0.0

    return RiskAssessment(
        volatility_score=volatility_score,
        risk_level=RiskLevel.from_score(volatility_score),
        max_drawdown_risk_pct=max_drawdown_pct(closes),
        stop_loss_price=stop,
        risk_reward_ratio=risk_reward,
        stop_from_atr=stop_from_atr,
    )
