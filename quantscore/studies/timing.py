"""
Technical Trading Score (TTS) study.

Fetches a daily price series through the series fallback chain, scores
eight indicator components and three trend horizons, and reports trend,
support/resistance, volume and risk views alongside the composite.
Analyst estimates are optional and only drive the earnings window flag.
"""
import logging
import time
from datetime import date
from typing import Callable, List, Optional, TypeVar

from quantscore.analysis import (
    analyze_support_resistance,
    analyze_trend,
    analyze_volume,
    assess_risk,
)
from quantscore.indicators import compute_indicators
from quantscore.models import EstimateRecord, PriceSeries
from quantscore.providers.audit import CallLog
from quantscore.providers.chain import ProviderChain, Sourced
from quantscore.providers.exceptions import ComputationError, InsufficientData, ProviderError
from quantscore.signals.scoring.components import TechnicalScorer, TrendScorer
from quantscore.signals.scoring.composite import TIMING_GROUPS, CompositeScorer
from quantscore.signals.scoring.confidence import assess_quality, estimate_confidence
from quantscore.signals.scoring.types import ComponentScore, CompositeResult, QualityFlag, StudyKind
from quantscore.studies.assembler import ResultAssembler
from quantscore.studies.base import Study

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimingStudy(Study):
    """
    Runs the TTS pipeline for one symbol at a time.

    Usage:
        study = TimingStudy(chains.series, chains.estimates)
        result = await study.analyze("AAPL", date(2024, 6, 3))
    """

    kind = StudyKind.TIMING

    def __init__(
        self,
        series_chain: ProviderChain,
        estimates_chain: Optional[ProviderChain] = None,
        lookback_days: int = 250,
        atr_multiple: float = 2.0,
        fallback_stop_pct: float = 8.0,
        earnings_window_days: int = 2,
        full_history_points: int = 50,
        freshness_half_life_days: float = 5.0,
        freshness_grace_days: float = 3.0,
        keep_raw_payloads: bool = True,
    ):
        super().__init__(keep_raw_payloads=keep_raw_payloads)
        self.series_chain = series_chain
        self.estimates_chain = estimates_chain
        self.lookback_days = lookback_days
        self.atr_multiple = atr_multiple
        self.fallback_stop_pct = fallback_stop_pct
        self.earnings_window_days = earnings_window_days
        self.full_history_points = full_history_points
        self.freshness_half_life_days = freshness_half_life_days
        self.freshness_grace_days = freshness_grace_days

        self.scorer = CompositeScorer(TIMING_GROUPS)
        self.technical = TechnicalScorer()
        self.trend = TrendScorer()
        self.assembler = ResultAssembler(self.kind)

    @classmethod
    def from_config(cls, chains, config) -> "TimingStudy":
        return cls(
            chains.series,
            chains.estimates,
            lookback_days=config.lookback_days,
            atr_multiple=config.stop_loss_atr_multiple,
            fallback_stop_pct=config.stop_loss_fallback_pct,
            earnings_window_days=config.earnings_window_days,
            full_history_points=config.full_history_points,
            freshness_half_life_days=config.freshness_half_life_days,
            freshness_grace_days=config.freshness_grace_days,
            keep_raw_payloads=config.keep_raw_payloads,
        )

    async def analyze(self, symbol: str, analysis_date: date) -> CompositeResult:
        started = time.perf_counter()
        audit = self._new_audit()

        try:
            sourced = await self.series_chain.fetch_series(
                symbol, self.lookback_days, as_of=analysis_date, audit=audit
            )
        except ProviderError as e:
            logger.warning(f"No usable price data for {symbol}: {e}")
            return self._without_data(symbol, analysis_date, audit, started)

        estimates = await self._fetch_estimates(symbol, audit)
        return self._score(symbol, analysis_date, sourced, estimates, audit, started)

    async def _fetch_estimates(
        self, symbol: str, audit: CallLog
    ) -> Optional[Sourced[EstimateRecord]]:
        if not self.estimates_chain:
            return None
        try:
            return await self.estimates_chain.fetch_estimates(symbol, audit=audit)
        except ProviderError as e:
            logger.info(f"No estimates for {symbol}: {e}")
            return None

    def _score(
        self,
        symbol: str,
        analysis_date: date,
        sourced: Sourced[PriceSeries],
        estimates: Optional[Sourced[EstimateRecord]],
        audit: CallLog,
        started: float,
    ) -> CompositeResult:
        series = sourced.value
        indicators = compute_indicators(series)
        trend = analyze_trend(series)

        components: List[ComponentScore] = [
            *self.technical.score_all(series, indicators),
            *self.trend.score_all(trend),
        ]
        composite = self.scorer.combine(components)

        support_resistance = self._describe(symbol, "support/resistance", analyze_support_resistance, series)
        volume = self._describe(symbol, "volume", analyze_volume, series)
        risk = self._describe(
            symbol, "risk", assess_risk,
            series,
            indicators,
            resistance_level=support_resistance.resistance_level if support_resistance else None,
            atr_multiple=self.atr_multiple,
            fallback_stop_pct=self.fallback_stop_pct,
        )

        estimate = estimate_confidence(
            components,
            data_points=len(series),
            last_data_date=series.last_date,
            analysis_date=analysis_date,
            full_history_points=self.full_history_points,
            freshness_half_life_days=self.freshness_half_life_days,
            freshness_grace_days=self.freshness_grace_days,
        )

        extra_flags = []
        days_to_earnings = None
        if estimates is None:
            extra_flags.append(QualityFlag.NO_ESTIMATES)
        else:
            days_to_earnings = estimates.value.days_to_nearest_earnings(analysis_date)

        flags = assess_quality(
            components,
            estimate,
            unavailable_groups=composite.unavailable_groups,
            insufficient_components=[c.name for c in components if not c.data_available],
            degenerate_components=indicators.degenerate,
            days_to_earnings=days_to_earnings,
            earnings_window_days=self.earnings_window_days,
            extra_flags=extra_flags,
        )

        result = self.assembler.assemble(
            symbol,
            analysis_date,
            composite,
            components,
            confidence=estimate.confidence,
            flags=flags,
            sources={c.name: sourced.provider for c in components},
            api_calls=audit.records,
            indicator_values=indicators,
            trend=trend,
            support_resistance=support_resistance,
            volume=volume,
            risk=risk,
            data_points_count=len(series),
            current_price=series.last_close,
            computation_time_ms=self._elapsed_ms(started),
        )
        logger.debug(
            f"TTS {symbol} {analysis_date}: {result.overall_score:+.3f} "
            f"{result.signal.value} (confidence {result.confidence:.2f})"
        )
        return result

    def _without_data(
        self, symbol: str, analysis_date: date, audit: CallLog, started: float
    ) -> CompositeResult:
        reason = "No price data from any provider"
        components = [*self.technical.unavailable(reason), *self.trend.unavailable(reason)]
        composite = self.scorer.combine(components)
        estimate = estimate_confidence(
            components,
            data_points=0,
            last_data_date=None,
            analysis_date=analysis_date,
            full_history_points=self.full_history_points,
        )
        flags = assess_quality(
            components,
            estimate,
            unavailable_groups=composite.unavailable_groups,
            has_price_data=False,
        )
        return self.assembler.assemble(
            symbol,
            analysis_date,
            composite,
            components,
            confidence=estimate.confidence,
            flags=flags,
            api_calls=audit.records,
            computation_time_ms=self._elapsed_ms(started),
        )

    @staticmethod
    def _describe(symbol: str, what: str, analyzer: Callable[..., T], *args, **kwargs) -> Optional[T]:
        """Run a descriptive analyzer; a failure leaves that view empty."""
        try:
            return analyzer(*args, **kwargs)
        except (InsufficientData, ComputationError, ArithmeticError, ValueError) as e:
            logger.warning(f"{what} analysis failed for {symbol}: {e}")
            return None
