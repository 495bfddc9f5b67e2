"""
Batch driver.

Runs a study over a symbol list with a bounded worker pool. Each symbol
is analyzed, optionally explained and stored independently; whatever goes
wrong for one symbol becomes a BatchItemFailure and the batch carries on.
Results are keyed by (study, symbol, analysis_date), so re-running only
the failed symbols is safe. Time a symbol spends queued on shared provider
rate limiters does not count toward its timeout.
"""
import asyncio
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Union

from quantscore.database.port import RecordId, ResultStore
from quantscore.explain.base import Explainer
from quantscore.logging import log_timing
from quantscore.logging import logger as engine_logger
from quantscore.providers.exceptions import StorageError, ValidationError
from quantscore.providers.rate_limiter import QueueClock, queue_clock
from quantscore.signals.scoring.types import CompositeResult
from quantscore.studies.base import Study

STAGE_VALIDATION = "validation"
STAGE_ANALYSIS = "analysis"
STAGE_STORAGE = "storage"


@dataclass(frozen=True)
class BatchItemSuccess:
    symbol: str
    record_id: RecordId
    result: CompositeResult


@dataclass(frozen=True)
class BatchItemFailure:
    symbol: str
    stage: str
    error: str
    result: Optional[CompositeResult] = None


BatchItem = Union[BatchItemSuccess, BatchItemFailure]


@dataclass
class BatchReport:
    study: str
    analysis_date: date
    successes: List[BatchItemSuccess] = field(default_factory=list)
    failures: List[BatchItemFailure] = field(default_factory=list)

    @property
    def failed_symbols(self) -> List[str]:
        return [f.symbol for f in self.failures]

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "study": self.study,
            "analysis_date": self.analysis_date.isoformat(),
            "succeeded": len(self.successes),
            "failed": len(self.failures),
            "failures": [
                {"symbol": f.symbol, "stage": f.stage, "error": f.error}
                for f in self.failures
            ],
        }


def normalize_symbol(symbol: str) -> str:
    """
    Raises:
        ValidationError: If the symbol is blank or contains whitespace
    """
    cleaned = (symbol or "").strip().upper()
    if not cleaned:
        raise ValidationError("symbol", "must not be blank")
    if any(ch.isspace() for ch in cleaned):
        raise ValidationError("symbol", f"{symbol!r} contains whitespace")
    return cleaned


class BatchRunner:
    """
    Usage:
        runner = BatchRunner(TimingStudy.from_config(chains, config), store)
        report = await runner.run(["AAPL", "MSFT"], date.today())
        retry = await runner.run(report.failed_symbols, report.analysis_date)
    """

    def __init__(
        self,
        study: Study,
        store: ResultStore,
        explainer: Optional[Explainer] = None,
        max_workers: int = 4,
        symbol_timeout: float = 60.0,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.study = study
        self.store = store
        self.explainer = explainer
        self.max_workers = max_workers
        self.symbol_timeout = symbol_timeout

    @log_timing
    async def run(self, symbols: Iterable[str], analysis_date: date) -> BatchReport:
        report = BatchReport(study=self.study.name, analysis_date=analysis_date)
        semaphore = asyncio.Semaphore(self.max_workers)

        targets: List[str] = []
        for raw in symbols:
            try:
                symbol = normalize_symbol(raw)
            except ValidationError as e:
                report.failures.append(BatchItemFailure(str(raw), STAGE_VALIDATION, str(e)))
                continue
            if symbol not in targets:
                targets.append(symbol)

        engine_logger.info(
            f"Starting {self.study.name} batch for {analysis_date}",
            symbols=len(targets),
            workers=self.max_workers,
        )

        async def worker(symbol: str) -> BatchItem:
            async with semaphore:
                return await self.process(symbol, analysis_date)

        for item in await asyncio.gather(*(worker(s) for s in targets)):
            if isinstance(item, BatchItemSuccess):
                report.successes.append(item)
            else:
                report.failures.append(item)

        engine_logger.info(
            f"Finished {self.study.name} batch for {analysis_date}",
            succeeded=len(report.successes),
            failed=len(report.failures),
        )
        return report

    async def process(self, symbol: str, analysis_date: date) -> BatchItem:
        """Analyze, explain and store one symbol."""
        log = engine_logger.with_context(symbol=symbol, study=self.study.name)

        try:
            result = await self._analyze(symbol, analysis_date)
        except asyncio.TimeoutError:
            log.error(f"Analysis timed out after {self.symbol_timeout}s")
            return BatchItemFailure(symbol, STAGE_ANALYSIS, f"timed out after {self.symbol_timeout}s")
        except Exception as e:
            # One broken symbol must not take down the batch
            log.exception(f"Analysis failed: {e}")
            return BatchItemFailure(symbol, STAGE_ANALYSIS, f"{type(e).__name__}: {e}")

        if not result.has_data:
            log.warning("No component had data, result not stored", flags=sorted(result.warning_flags))
            return BatchItemFailure(symbol, STAGE_ANALYSIS, "no usable data from any provider", result)

        if self.explainer is not None:
            result = await self._explain(result, log)

        try:
            record_id = await self.store.store(result, symbol, analysis_date)
        except StorageError as e:
            log.error(f"Storage failed: {e}")
            return BatchItemFailure(symbol, STAGE_STORAGE, str(e), result)
        except Exception as e:
            log.exception(f"Storage failed: {e}")
            return BatchItemFailure(symbol, STAGE_STORAGE, f"{type(e).__name__}: {e}", result)

        log.result(
            symbol,
            score=round(result.overall_score, 4),
            signal=result.signal.value,
            confidence=round(result.confidence, 3),
            record_id=record_id,
        )
        return BatchItemSuccess(symbol, record_id, result)

    async def _analyze(self, symbol: str, analysis_date: date) -> CompositeResult:
        """
        Run the study within symbol_timeout, extending the deadline by the
        time the analysis has spent queued on rate limiters.

        Raises:
            asyncio.TimeoutError: If the analysis itself outlives the deadline
        """
        clock = QueueClock()
        token = queue_clock.set(clock)
        try:
            # The task copies the current context and so shares the clock
            task = asyncio.ensure_future(self.study.analyze(symbol, analysis_date))
        finally:
            queue_clock.reset(token)

        started = time.monotonic()
        try:
            while True:
                remaining = started + self.symbol_timeout + clock.seconds - time.monotonic()
                if remaining <= 0:
                    raise asyncio.TimeoutError()
                done, _ = await asyncio.wait({task}, timeout=remaining)
                if done:
                    return task.result()
        finally:
            if not task.done():
                task.cancel()
                await asyncio.wait({task})

    async def _explain(self, result: CompositeResult, log) -> CompositeResult:
        try:
            text = await self.explainer.explain(result)
        except Exception as e:
            log.warning(f"Explanation failed, storing without it: {e}")
            return result
        return result.with_explanation(text)
