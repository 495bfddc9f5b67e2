"""
Quantitative Sentiment Score (QSS) study.

Four weighted components: earnings revisions, relative strength against a
benchmark, short interest and options flow. Each input has its own
fallback chain and is optional; whatever is missing is renormalized away.
"""
import logging
import time
from datetime import date
from typing import Awaitable, Callable, Optional, TypeVar

from quantscore.providers.audit import CallLog
from quantscore.providers.chain import ProviderChain, Sourced
from quantscore.providers.exceptions import ProviderError
from quantscore.signals.scoring.components import (
    EarningsRevisionScorer,
    OptionsFlowScorer,
    RelativeStrengthScorer,
    ShortInterestScorer,
)
from quantscore.signals.scoring.composite import SENTIMENT_GROUPS, CompositeScorer
from quantscore.signals.scoring.confidence import assess_quality, estimate_confidence
from quantscore.signals.scoring.types import CompositeResult, QualityFlag, StudyKind
from quantscore.studies.assembler import ResultAssembler
from quantscore.studies.base import Study

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SentimentStudy(Study):
    """Runs the QSS pipeline for one symbol at a time."""

    kind = StudyKind.SENTIMENT

    def __init__(
        self,
        estimates_chain: Optional[ProviderChain],
        series_chain: Optional[ProviderChain],
        short_interest_chain: Optional[ProviderChain] = None,
        options_flow_chain: Optional[ProviderChain] = None,
        benchmark_symbol: str = "SPY",
        lookback_days: int = 250,
        short_interest_half_life_days: float = 10.0,
        options_flow_half_life_days: float = 3.0,
        full_history_points: int = 50,
        freshness_half_life_days: float = 5.0,
        freshness_grace_days: float = 3.0,
        keep_raw_payloads: bool = True,
    ):
        super().__init__(keep_raw_payloads=keep_raw_payloads)
        self.estimates_chain = estimates_chain
        self.series_chain = series_chain
        self.short_interest_chain = short_interest_chain
        self.options_flow_chain = options_flow_chain
        self.benchmark_symbol = benchmark_symbol
        self.lookback_days = lookback_days
        self.full_history_points = full_history_points
        self.freshness_half_life_days = freshness_half_life_days
        self.freshness_grace_days = freshness_grace_days

        self.scorer = CompositeScorer(SENTIMENT_GROUPS)
        self.revisions = EarningsRevisionScorer()
        self.relative_strength = RelativeStrengthScorer()
        self.short_interest = ShortInterestScorer(short_interest_half_life_days)
        self.options_flow = OptionsFlowScorer(options_flow_half_life_days)
        self.assembler = ResultAssembler(self.kind)

    @classmethod
    def from_config(cls, chains, config) -> "SentimentStudy":
        return cls(
            chains.estimates,
            chains.series,
            chains.short_interest,
            chains.options_flow,
            benchmark_symbol=config.benchmark_symbol,
            lookback_days=config.lookback_days,
            short_interest_half_life_days=config.short_interest_half_life_days,
            options_flow_half_life_days=config.options_flow_half_life_days,
            full_history_points=config.full_history_points,
            freshness_half_life_days=config.freshness_half_life_days,
            freshness_grace_days=config.freshness_grace_days,
            keep_raw_payloads=config.keep_raw_payloads,
        )

    async def analyze(self, symbol: str, analysis_date: date) -> CompositeResult:
        started = time.perf_counter()
        audit = self._new_audit()
        flags = set()

        estimates = await self._fetch(
            symbol, "estimates", self.estimates_chain,
            lambda chain: chain.fetch_estimates(symbol, audit=audit),
        )
        series = await self._fetch(
            symbol, "series", self.series_chain,
            lambda chain: chain.fetch_series(symbol, self.lookback_days, as_of=analysis_date, audit=audit),
        )
        benchmark = None
        if series is not None:
            benchmark = await self._fetch(
                self.benchmark_symbol, "benchmark series", self.series_chain,
                lambda chain: chain.fetch_series(
                    self.benchmark_symbol, self.lookback_days, as_of=analysis_date, audit=audit
                ),
            )
        short_interest = await self._fetch(
            symbol, "short interest", self.short_interest_chain,
            lambda chain: chain.fetch_short_interest(symbol, audit=audit),
        )
        options_flow = await self._fetch(
            symbol, "options flow", self.options_flow_chain,
            lambda chain: chain.fetch_options_flow(symbol, audit=audit),
        )

        components = [
            self.revisions.score(estimates.value if estimates else None),
            self.relative_strength.score(
                series.value if series else None,
                benchmark.value if benchmark else None,
            ),
            self.short_interest.score(short_interest.value if short_interest else None, analysis_date),
            self.options_flow.score(options_flow.value if options_flow else None, analysis_date),
        ]
        available = {c.name: c.data_available for c in components}

        if not available["earnings_revisions"]:
            flags.add(QualityFlag.NO_ESTIMATES)
        if series is not None and benchmark is None:
            flags.add(QualityFlag.NO_BENCHMARK)
        if not available["short_interest"]:
            flags.add(QualityFlag.NO_SHORT_DATA)
        if not available["options_flow"]:
            flags.add(QualityFlag.NO_OPTIONS_DATA)

        sources = {}
        if estimates is not None:
            sources["earnings_revisions"] = estimates.provider
        if series is not None:
            sources["relative_strength"] = series.provider
        if short_interest is not None:
            sources["short_interest"] = short_interest.provider
        if options_flow is not None:
            sources["options_flow"] = options_flow.provider

        composite = self.scorer.combine(components)
        estimate = estimate_confidence(
            components,
            data_points=len(series.value) if series else 0,
            last_data_date=series.value.last_date if series else None,
            analysis_date=analysis_date,
            full_history_points=self.full_history_points,
            freshness_half_life_days=self.freshness_half_life_days,
            freshness_grace_days=self.freshness_grace_days,
        )
        insufficient = []
        if series is not None and not available["relative_strength"]:
            insufficient.append("relative_strength")

        quality = assess_quality(
            components,
            estimate,
            unavailable_groups=composite.unavailable_groups,
            has_price_data=series is not None,
            insufficient_components=insufficient,
            extra_flags=flags,
        )

        return self.assembler.assemble(
            symbol,
            analysis_date,
            composite,
            components,
            confidence=estimate.confidence,
            flags=quality,
            sources=sources,
            api_calls=audit.records,
            data_points_count=len(series.value) if series else 0,
            current_price=series.value.last_close if series else None,
            computation_time_ms=self._elapsed_ms(started),
        )

    async def _fetch(
        self,
        symbol: str,
        what: str,
        chain: Optional[ProviderChain],
        call: Callable[[ProviderChain], Awaitable[Sourced[T]]],
    ) -> Optional[Sourced[T]]:
        if not chain:
            return None
        try:
            return await call(chain)
        except ProviderError as e:
            logger.info(f"No {what} for {symbol}: {e}")
            return None
