"""
Shared fixtures and fakes for the test suite.
"""
import math
import time
from datetime import date, timedelta
from typing import Optional, Sequence

import pytest

from quantscore.models import (
    EstimatePoint,
    EstimateRecord,
    OptionsFlowRecord,
    PricePoint,
    PriceSeries,
    ShortInterestPoint,
    ShortInterestRecord,
)
from quantscore.providers.audit import CallLog, Capability
from quantscore.providers.base import BaseProvider
from quantscore.providers.exceptions import MalformedResponse
from quantscore.signals.scoring import ComponentScore, CompositeResult, StudyKind, classify
from quantscore.studies.assembler import SIGNAL_TYPES

ANALYSIS_DATE = date(2024, 6, 28)


def make_series(
    closes: Sequence[float],
    symbol: str = "TEST",
    end: date = ANALYSIS_DATE,
    highs: Optional[Sequence[float]] = None,
    lows: Optional[Sequence[float]] = None,
    volumes: Optional[Sequence[float]] = None,
    spread: float = 0.01,
    source: Optional[str] = None,
) -> PriceSeries:
    """Daily bars on consecutive calendar days ending at `end`."""
    n = len(closes)
    start = end - timedelta(days=n - 1)
    points = []
    for i, close in enumerate(closes):
        high = highs[i] if highs is not None else close * (1 + spread)
        low = lows[i] if lows is not None else close * (1 - spread)
        points.append(PricePoint(
            date=start + timedelta(days=i),
            open=close,
            high=high,
            low=low,
            close=close,
            volume=volumes[i] if volumes is not None else 1_000_000,
        ))
    return PriceSeries(symbol=symbol, points=tuple(points), source=source)


def uptrend_closes(n: int = 20, start: float = 100.0, growth: float = 0.02):
    return [start * (1 + growth) ** i for i in range(n)]


def make_result(
    symbol: str = "AAPL",
    day: Optional[date] = ANALYSIS_DATE,
    score: float = 0.3,
    study: StudyKind = StudyKind.TIMING,
    confidence: float = 0.8,
    available: bool = True,
) -> CompositeResult:
    """A minimal result with a single RSI component."""
    return CompositeResult(
        symbol=symbol,
        analysis_date=day,
        study=study,
        overall_score=score,
        signal=classify(score, SIGNAL_TYPES[study]),
        confidence=confidence,
        components=(
            ComponentScore(
                name="rsi", group="indicators", raw_value=40.0 if available else None,
                normalized_score=0.5 if available else 0.0, weight=0.125, data_available=available,
            ),
        ),
        warning_flags=frozenset({"no_estimates"}),
        data_points_count=60 if available else 0,
        current_price=101.5 if available else None,
        computation_time_ms=12.0,
    )


class FakeProvider(BaseProvider):
    """
    In-memory provider. Each capability returns the configured value or
    raises the configured error, and records an audit entry either way.
    """

    def __init__(
        self,
        name: str,
        series: Optional[PriceSeries] = None,
        estimates: Optional[EstimateRecord] = None,
        short_interest: Optional[ShortInterestRecord] = None,
        options_flow: Optional[OptionsFlowRecord] = None,
        error: Optional[Exception] = None,
        capabilities=None,
        benchmark: Optional[PriceSeries] = None,
    ):
        self.name = name
        self.capabilities = frozenset(capabilities or Capability)
        super().__init__(api_key="test-key")
        self._values = {
            Capability.SERIES: series,
            Capability.ESTIMATES: estimates,
            Capability.SHORT_INTEREST: short_interest,
            Capability.OPTIONS_FLOW: options_flow,
        }
        self.benchmark = benchmark
        self.error = error
        self.calls = []

    def _serve(self, capability: Capability, symbol: str, audit: Optional[CallLog], value=None):
        start = time.perf_counter()
        url = f"fake://{self.name}/{capability.value}/{symbol}"
        self.calls.append((capability, symbol))
        if value is None:
            value = self._values[capability]
        if self.error is not None:
            self._audit(audit, capability, url, False, 503, None, str(self.error), start)
            raise self.error
        if value is None:
            error = MalformedResponse(self.name, f"no {capability.value} for {symbol}")
            self._audit(audit, capability, url, False, 200, None, str(error), start)
            raise error
        self._audit(audit, capability, url, True, 200, {"symbol": symbol}, None, start)
        return value

    async def fetch_series(self, symbol, lookback_days, audit=None):
        if self.benchmark is not None and symbol == self.benchmark.symbol:
            return self._serve(Capability.SERIES, symbol, audit, self.benchmark)
        return self._serve(Capability.SERIES, symbol, audit)

    async def fetch_estimates(self, symbol, audit=None):
        return self._serve(Capability.ESTIMATES, symbol, audit)

    async def fetch_short_interest(self, symbol, audit=None):
        return self._serve(Capability.SHORT_INTEREST, symbol, audit)

    async def fetch_options_flow(self, symbol, audit=None):
        return self._serve(Capability.OPTIONS_FLOW, symbol, audit)


@pytest.fixture
def analysis_date():
    return ANALYSIS_DATE


@pytest.fixture
def uptrend_series():
    """20 closes compounding 2% a day, 1% intraday range."""
    return make_series(uptrend_closes(), symbol="AAPL")


@pytest.fixture
def long_series():
    """260 bars of a gently rising, oscillating market."""
    closes = [100 + 0.1 * i + 3 * math.sin(i / 5) for i in range(260)]
    volumes = [1_000_000 + 50_000 * (i % 7) for i in range(260)]
    return make_series(closes, symbol="MSFT", volumes=volumes, spread=0.015)


@pytest.fixture
def estimates():
    return EstimateRecord(
        symbol="AAPL",
        points=(
            EstimatePoint(period_end=date(2024, 9, 30), eps_estimate=1.50, eps_estimate_prior=1.40),
            EstimatePoint(period_end=date(2024, 12, 31), eps_estimate=1.80),
        ),
        earnings_dates=(date(2024, 5, 2), date(2024, 8, 1)),
        source="fake",
    )


@pytest.fixture
def short_interest():
    return ShortInterestRecord(
        symbol="AAPL",
        points=(
            ShortInterestPoint(date=date(2024, 5, 15), short_interest=1_000_000),
            ShortInterestPoint(date=date(2024, 5, 31), short_interest=1_000_000),
            ShortInterestPoint(date=date(2024, 6, 14), short_interest=1_000_000),
            ShortInterestPoint(date=date(2024, 6, 28), short_interest=800_000),
        ),
        source="fake",
    )


@pytest.fixture
def options_flow():
    return OptionsFlowRecord(
        symbol="AAPL",
        date=date(2024, 6, 28),
        call_volume=3000,
        put_volume=1000,
        call_premium=750_000,
        put_premium=250_000,
        source="fake",
    )
