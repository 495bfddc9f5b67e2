"""
Result storage port.

The scoring engine only depends on ResultStore. Every implementation
validates the record contract before writing, so a result missing a
required field (analysis_date in particular) is rejected instead of
being stored half-empty.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from quantscore.providers.exceptions import StorageError
from quantscore.signals.scoring.types import CompositeResult

RecordId = int

REQUIRED_FIELDS = (
    "symbol",
    "analysis_date",
    "study",
    "overall_score",
    "signal",
    "confidence",
    "components",
    "warning_flags",
    "data_points_count",
    "computation_time_ms",
    "provenance",
)


@dataclass(frozen=True)
class StoredResult:
    """A persisted CompositeResult as read back from a store."""
    id: RecordId
    study: str
    symbol: str
    analysis_date: date
    overall_score: float
    signal: str
    confidence: float
    data: Dict[str, Any] = field(default_factory=dict)   # CompositeResult.to_dict()
    updated_at: Optional[datetime] = None

    @property
    def warning_flags(self) -> List[str]:
        return list(self.data.get("warning_flags", []))

    @property
    def explanation(self) -> Optional[str]:
        return self.data.get("explanation")


def validate_record(record: CompositeResult, symbol: str, analysis_date: date) -> Dict[str, Any]:
    """
    Check a result against its storage key and the record contract.

    Returns:
        The serialized record

    Raises:
        StorageError: If the key does not match or a field is missing or out of range
    """
    if analysis_date is None or record.analysis_date is None:
        raise StorageError(f"record for {symbol} has no analysis_date")
    if record.symbol != symbol:
        raise StorageError(f"record symbol {record.symbol!r} does not match key {symbol!r}")
    if record.analysis_date != analysis_date:
        raise StorageError(
            f"record analysis_date {record.analysis_date} does not match key {analysis_date}"
        )

    data = record.to_dict()
    missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
    if missing:
        raise StorageError(f"record for {symbol} is missing required fields: {missing}")

    score = data["overall_score"]
    if not math.isfinite(score) or not -1.0 <= score <= 1.0:
        raise StorageError(f"overall_score {score} outside [-1, 1] for {symbol}")
    confidence = data["confidence"]
    if not math.isfinite(confidence) or not 0.0 <= confidence <= 1.0:
        raise StorageError(f"confidence {confidence} outside [0, 1] for {symbol}")
    return data


class ResultStore(ABC):
    """
    Persistence port for composite results.

    Results are keyed by (study, symbol, analysis_date); storing the same
    key twice replaces the earlier result and keeps its id.
    """

    @abstractmethod
    async def store(self, record: CompositeResult, symbol: str, analysis_date: date) -> RecordId:
        """Validate and upsert one result."""

    @abstractmethod
    async def get(self, study: str, symbol: str, analysis_date: date) -> Optional[StoredResult]:
        """Result for an exact key, or None."""

    @abstractmethod
    async def get_latest(self, study: str, symbol: str) -> Optional[StoredResult]:
        """Most recent analysis date stored for a symbol."""

    @abstractmethod
    async def get_history(self, study: str, symbol: str, limit: int = 30) -> List[StoredResult]:
        """Stored results for a symbol, newest first."""

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass
