"""
Study interface.

A study turns one symbol and analysis date into one CompositeResult. It
degrades instead of raising: provider outages and degenerate inputs show
up as unavailable components and quality flags on the result.
"""
import time
from abc import ABC, abstractmethod
from datetime import date

from quantscore.providers.audit import CallLog
from quantscore.signals.scoring.types import CompositeResult, StudyKind


class Study(ABC):
    """Base class for composite studies."""

    kind: StudyKind

    def __init__(self, keep_raw_payloads: bool = True):
        self.keep_raw_payloads = keep_raw_payloads

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    async def analyze(self, symbol: str, analysis_date: date) -> CompositeResult:
        """Run the full pipeline for one symbol as of analysis_date."""

    def _new_audit(self) -> CallLog:
        # One log per run; nothing is shared between symbols
        return CallLog(keep_payloads=self.keep_raw_payloads)

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000.0

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"
