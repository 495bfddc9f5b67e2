"""
Tests for the batch runner: isolation, bounded concurrency and reporting.
"""
import asyncio

import pytest

from quantscore.batch import BatchItemFailure, BatchRunner, normalize_symbol
from quantscore.database import InMemoryResultStore
from quantscore.explain.base import Explainer
from quantscore.providers import Capability, ProviderChain, RateLimiter
from quantscore.providers.exceptions import StorageError, ValidationError
from quantscore.signals.scoring import StudyKind
from quantscore.studies import TimingStudy
from quantscore.studies.base import Study

from tests.conftest import ANALYSIS_DATE, FakeProvider, make_result


class FakeStudy(Study):
    kind = StudyKind.TIMING

    def __init__(self, delay: float = 0.0, limiter: RateLimiter = None):
        super().__init__()
        self.delay = delay
        self.limiter = limiter
        self.active = 0
        self.max_active = 0
        self.seen = []

    async def analyze(self, symbol, analysis_date):
        self.seen.append(symbol)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.limiter is not None:
                await self.limiter.acquire()
            if symbol == "SLOW":
                await asyncio.sleep(5)
            if symbol == "BOOM":
                raise RuntimeError("indicator blew up")
            await asyncio.sleep(self.delay)
            if symbol == "EMPTY":
                return make_result(symbol, day=analysis_date, available=False)
            return make_result(symbol, day=analysis_date)
        finally:
            self.active -= 1


class BrokenStore(InMemoryResultStore):
    def __init__(self, error):
        super().__init__()
        self.error = error

    async def store(self, record, symbol, analysis_date):
        raise self.error


class StaticExplainer(Explainer):
    async def explain(self, record):
        return f"{record.symbol} looks {record.signal.value}"


class FailingExplainer(Explainer):
    async def explain(self, record):
        raise RuntimeError("model offline")


# ============================================================================
# Symbol handling
# ============================================================================

@pytest.mark.parametrize("raw,expected", [
    ("aapl", "AAPL"),
    ("  msft ", "MSFT"),
    ("BRK.B", "BRK.B"),
])
def test_normalize_symbol(raw, expected):
    assert normalize_symbol(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", None, "BR K"])
def test_normalize_symbol_rejects(raw):
    with pytest.raises(ValidationError):
        normalize_symbol(raw)


def test_max_workers_must_be_positive():
    with pytest.raises(ValueError):
        BatchRunner(FakeStudy(), InMemoryResultStore(), max_workers=0)


# ============================================================================
# Runs
# ============================================================================

@pytest.mark.asyncio
async def test_successes_are_stored():
    store = InMemoryResultStore()
    runner = BatchRunner(FakeStudy(), store)

    report = await runner.run(["AAPL", "MSFT"], ANALYSIS_DATE)

    assert report.study == "TTS"
    assert [s.symbol for s in report.successes] == ["AAPL", "MSFT"]
    assert report.failures == []
    assert len(store) == 2
    stored = await store.get("TTS", "MSFT", ANALYSIS_DATE)
    assert stored.id == report.successes[1].record_id


@pytest.mark.asyncio
async def test_symbols_normalized_and_deduplicated():
    study = FakeStudy()
    runner = BatchRunner(study, InMemoryResultStore())

    report = await runner.run(["aapl", " AAPL ", "msft"], ANALYSIS_DATE)

    assert sorted(study.seen) == ["AAPL", "MSFT"]
    assert report.total == 2


@pytest.mark.asyncio
async def test_invalid_symbols_reported_as_validation_failures():
    runner = BatchRunner(FakeStudy(), InMemoryResultStore())

    report = await runner.run(["", "BR K", "AAPL"], ANALYSIS_DATE)

    assert [s.symbol for s in report.successes] == ["AAPL"]
    assert [(f.symbol, f.stage) for f in report.failures] == [
        ("", "validation"),
        ("BR K", "validation"),
    ]


@pytest.mark.asyncio
async def test_timeout_isolated_to_symbol():
    store = InMemoryResultStore()
    runner = BatchRunner(FakeStudy(), store, symbol_timeout=0.05)

    report = await runner.run(["SLOW", "AAPL"], ANALYSIS_DATE)

    assert [s.symbol for s in report.successes] == ["AAPL"]
    failure = report.failures[0]
    assert (failure.symbol, failure.stage) == ("SLOW", "analysis")
    assert "timed out" in failure.error
    assert await store.get("TTS", "SLOW", ANALYSIS_DATE) is None


@pytest.mark.asyncio
async def test_rate_limit_queue_does_not_count_toward_timeout():
    # Two requests per second shared by four symbols: the last two queue for
    # about a second, well past the timeout, yet only do a moment of work.
    limiter = RateLimiter(max_requests_per_minute=2, window_seconds=1.0, name="shared")
    runner = BatchRunner(
        FakeStudy(delay=0.01, limiter=limiter), InMemoryResultStore(),
        max_workers=4, symbol_timeout=0.3,
    )

    report = await runner.run(["AAPL", "MSFT", "NVDA", "AMZN"], ANALYSIS_DATE)

    assert report.failures == []
    assert sorted(s.symbol for s in report.successes) == ["AAPL", "AMZN", "MSFT", "NVDA"]


@pytest.mark.asyncio
async def test_stuck_symbol_times_out_behind_rate_limit():
    limiter = RateLimiter(max_requests_per_minute=1, window_seconds=0.2, name="shared")
    runner = BatchRunner(
        FakeStudy(limiter=limiter), InMemoryResultStore(), max_workers=2, symbol_timeout=0.1,
    )

    report = await runner.run(["AAPL", "SLOW"], ANALYSIS_DATE)

    assert [s.symbol for s in report.successes] == ["AAPL"]
    assert report.failed_symbols == ["SLOW"]
    assert "timed out after 0.1s" in report.failures[0].error


@pytest.mark.asyncio
async def test_exception_isolated_to_symbol():
    runner = BatchRunner(FakeStudy(), InMemoryResultStore())

    report = await runner.run(["BOOM", "AAPL", "MSFT"], ANALYSIS_DATE)

    assert len(report.successes) == 2
    assert report.failed_symbols == ["BOOM"]
    assert report.failures[0].error == "RuntimeError: indicator blew up"


@pytest.mark.asyncio
async def test_no_data_result_not_stored():
    store = InMemoryResultStore()
    runner = BatchRunner(FakeStudy(), store)

    report = await runner.run(["EMPTY"], ANALYSIS_DATE)

    failure = report.failures[0]
    assert isinstance(failure, BatchItemFailure)
    assert failure.stage == "analysis"
    assert failure.result is not None and not failure.result.has_data
    assert len(store) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("error,expected", [
    (StorageError("disk full"), "disk full"),
    (ConnectionError("reset"), "ConnectionError: reset"),
])
async def test_storage_failure_reported(error, expected):
    runner = BatchRunner(FakeStudy(), BrokenStore(error))

    report = await runner.run(["AAPL"], ANALYSIS_DATE)

    failure = report.failures[0]
    assert failure.stage == "storage"
    assert failure.error == expected
    assert failure.result.symbol == "AAPL"


@pytest.mark.asyncio
async def test_explanation_stored():
    store = InMemoryResultStore()
    runner = BatchRunner(FakeStudy(), store, explainer=StaticExplainer())

    report = await runner.run(["AAPL"], ANALYSIS_DATE)

    assert report.successes[0].result.explanation == "AAPL looks Buy"
    assert (await store.get("TTS", "AAPL", ANALYSIS_DATE)).explanation == "AAPL looks Buy"


@pytest.mark.asyncio
async def test_explainer_failure_still_stores():
    store = InMemoryResultStore()
    runner = BatchRunner(FakeStudy(), store, explainer=FailingExplainer())

    report = await runner.run(["AAPL"], ANALYSIS_DATE)

    assert len(report.successes) == 1
    stored = await store.get("TTS", "AAPL", ANALYSIS_DATE)
    assert stored is not None and stored.explanation is None


@pytest.mark.asyncio
async def test_worker_pool_is_bounded():
    study = FakeStudy(delay=0.01)
    runner = BatchRunner(study, InMemoryResultStore(), max_workers=2)

    report = await runner.run([f"SYM{i}" for i in range(8)], ANALYSIS_DATE)

    assert len(report.successes) == 8
    assert study.max_active == 2


@pytest.mark.asyncio
async def test_rerun_upserts():
    store = InMemoryResultStore()
    runner = BatchRunner(FakeStudy(), store)

    first = await runner.run(["AAPL"], ANALYSIS_DATE)
    second = await runner.run(["AAPL"], ANALYSIS_DATE)

    assert first.successes[0].record_id == second.successes[0].record_id
    assert len(store) == 1


@pytest.mark.asyncio
async def test_report_to_dict():
    runner = BatchRunner(FakeStudy(), InMemoryResultStore())

    report = await runner.run(["AAPL", "BOOM"], ANALYSIS_DATE)

    assert report.to_dict() == {
        "study": "TTS",
        "analysis_date": "2024-06-28",
        "succeeded": 1,
        "failed": 1,
        "failures": [
            {"symbol": "BOOM", "stage": "analysis", "error": "RuntimeError: indicator blew up"},
        ],
    }


@pytest.mark.asyncio
async def test_timing_study_end_to_end(uptrend_series):
    provider = FakeProvider("primary", series=uptrend_series)
    study = TimingStudy(ProviderChain(Capability.SERIES, [provider]))
    store = InMemoryResultStore()

    report = await BatchRunner(study, store).run(["aapl"], ANALYSIS_DATE)

    assert report.failures == []
    stored = await store.get("TTS", "AAPL", ANALYSIS_DATE)
    assert stored.signal == "Buy"
    assert "insufficient_data" in stored.warning_flags
