"""
Technical indicator components.

Turns raw indicator values into the eight indicator-group components of
the timing composite.
"""
import math
from typing import Dict, List, Optional

import numpy as np

from quantscore.indicators import MINIMUM_POINTS, IndicatorValues
from quantscore.models import PriceSeries
from quantscore.signals.scoring.composite import TIMING_GROUPS
from quantscore.signals.scoring.normalizer import normalize
from quantscore.signals.scoring.types import ComponentScore

GROUP = "indicators"
SMA_VOTE_WEIGHTS = {20: 0.5, 50: 0.3, 200: 0.2}
VOLUME_RECENT = 5
VOLUME_PRIOR = 15


class TechnicalScorer:
    """
    Scores the indicator group.

    Each component is unavailable (never zero-filled) when the series is
    too short for its indicator.
    """

    def __init__(self):
        self.weights: Dict[str, float] = dict(TIMING_GROUPS[0].members)

    def score_all(self, series: PriceSeries, indicators: IndicatorValues) -> List[ComponentScore]:
        price = series.last_close
        return [
            self._rsi(indicators, len(series)),
            self._macd(indicators, price, len(series)),
            self._bollinger(indicators, price, len(series)),
            self._moving_averages(indicators, price, len(series)),
            self._stochastic(indicators, len(series)),
            self._williams_r(indicators, len(series)),
            self._atr(indicators, price, len(series)),
            self._volume(series),
        ]

    def _component(self, name: str, raw: float, explanation: str) -> ComponentScore:
        if not math.isfinite(raw):
            return ComponentScore.unavailable(name, GROUP, self.weights[name], f"Non-finite {name} value: {raw}")
        return ComponentScore(
            name=name,
            group=GROUP,
            raw_value=raw,
            normalized_score=normalize(name, raw),
            weight=self.weights[name],
            data_available=True,
            explanation=explanation,
        )

    def _missing(self, name: str, required: int, available: int) -> ComponentScore:
        return ComponentScore.unavailable(
            name, GROUP, self.weights[name],
            f"Insufficient data: needs {required} points, have {available}",
        )

    def _rsi(self, ind: IndicatorValues, n: int) -> ComponentScore:
        if ind.rsi is None:
            return self._missing("rsi", MINIMUM_POINTS["rsi"], n)
        if ind.rsi >= 70:
            state = "overbought"
        elif ind.rsi <= 30:
            state = "oversold"
        else:
            state = "neutral zone"
        return self._component("rsi", ind.rsi, f"RSI(14) {ind.rsi:.1f}, {state}")

    def _macd(self, ind: IndicatorValues, price: Optional[float], n: int) -> ComponentScore:
        if ind.macd_histogram is None or not price:
            return self._missing("macd", MINIMUM_POINTS["macd"], n)
        raw = ind.macd_histogram / price * 100.0
        side = "above" if ind.macd_histogram >= 0 else "below"
        return self._component(
            "macd", raw,
            f"MACD {ind.macd:.3f} {side} signal {ind.macd_signal:.3f} "
            f"(histogram {raw:+.2f}% of price)",
        )

    def _bollinger(self, ind: IndicatorValues, price: Optional[float], n: int) -> ComponentScore:
        if ind.bollinger_middle is None or not price:
            return self._missing("bollinger", MINIMUM_POINTS["bollinger"], n)
        half_width = ind.bollinger_upper - ind.bollinger_middle
        if half_width <= 0:
            return self._component("bollinger", 0.0, "Bands have zero width, treated as neutral")
        raw = (price - ind.bollinger_middle) / half_width
        if raw > 1:
            where = "above the upper band"
        elif raw < -1:
            where = "below the lower band"
        else:
            where = "inside the bands"
        return self._component("bollinger", raw, f"Price {where} ({raw:+.2f} half-widths from middle)")

    def _moving_averages(self, ind: IndicatorValues, price: Optional[float], n: int) -> ComponentScore:
        smas = {20: ind.sma_20, 50: ind.sma_50, 200: ind.sma_200}
        if smas[20] is None or not price:
            return self._missing("moving_averages", MINIMUM_POINTS["sma_20"], n)

        used = {period: value for period, value in smas.items() if value is not None}
        total = sum(SMA_VOTE_WEIGHTS[p] for p in used)
        raw = sum(SMA_VOTE_WEIGHTS[p] * float(np.sign(price - v)) for p, v in used.items()) / total
        above = [f"SMA{p}" for p, v in used.items() if price > v]
        detail = f"above {', '.join(above)}" if above else "below all averages"
        return self._component("moving_averages", raw, f"Price {detail} ({len(used)} averages)")

    def _stochastic(self, ind: IndicatorValues, n: int) -> ComponentScore:
        if ind.stochastic_k is None:
            return self._missing("stochastic", MINIMUM_POINTS["stochastic"], n)
        raw = ind.stochastic_k - ind.stochastic_d
        direction = "rising" if raw > 0 else "falling" if raw < 0 else "flat"
        return self._component(
            "stochastic", raw,
            f"%K {ind.stochastic_k:.1f} vs %D {ind.stochastic_d:.1f}, momentum {direction}",
        )

    def _williams_r(self, ind: IndicatorValues, n: int) -> ComponentScore:
        if ind.williams_r is None:
            return self._missing("williams_r", MINIMUM_POINTS["williams_r"], n)
        if ind.williams_r >= -20:
            state = "overbought"
        elif ind.williams_r <= -80:
            state = "oversold"
        else:
            state = "neutral zone"
        return self._component("williams_r", ind.williams_r, f"Williams %R {ind.williams_r:.1f}, {state}")

    def _atr(self, ind: IndicatorValues, price: Optional[float], n: int) -> ComponentScore:
        if ind.atr is None or not ind.atr_baseline_pct or not price:
            return self._missing("atr", MINIMUM_POINTS["atr"], n)
        atr_pct = ind.atr / price * 100.0
        ratio = atr_pct / ind.atr_baseline_pct
        return self._component(
            "atr", ratio,
            f"ATR {atr_pct:.2f}% of price vs {ind.atr_baseline_pct:.2f}% baseline ({ratio:.2f}x)",
        )

    def _volume(self, series: PriceSeries) -> ComponentScore:
        required = VOLUME_RECENT + VOLUME_PRIOR
        if len(series) < required:
            return self._missing("volume", required, len(series))

        volumes, closes = series.volumes, series.closes
        recent = volumes[-VOLUME_RECENT:].mean()
        prior = volumes[-required:-VOLUME_RECENT].mean()
        ratio = float(recent / prior) if prior > 0 else 1.0
        direction = float(np.sign(closes[-1] - closes[-2]))
        raw = direction * (ratio - 1.0)
        move = "up" if direction > 0 else "down" if direction < 0 else "flat"
        return self._component(
            "volume", raw,
            f"Recent volume {ratio:.2f}x prior average on a {move} day",
        )

    def unavailable(self, reason: str) -> List[ComponentScore]:
        return [ComponentScore.unavailable(name, GROUP, w, reason) for name, w in self.weights.items()]
