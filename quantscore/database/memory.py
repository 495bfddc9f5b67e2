"""
In-process ResultStore, used by tests and dry runs.
"""
import asyncio
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

from quantscore.database.port import RecordId, ResultStore, StoredResult, validate_record
from quantscore.signals.scoring.types import CompositeResult

Key = Tuple[str, str, date]


class InMemoryResultStore(ResultStore):
    def __init__(self):
        self._rows: Dict[Key, StoredResult] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def store(self, record: CompositeResult, symbol: str, analysis_date: date) -> RecordId:
        data = validate_record(record, symbol, analysis_date)
        key = (record.study.value, symbol, analysis_date)
        async with self._lock:
            existing = self._rows.get(key)
            if existing is not None:
                record_id = existing.id
            else:
                record_id = self._next_id
                self._next_id += 1
            self._rows[key] = StoredResult(
                id=record_id,
                study=key[0],
                symbol=symbol,
                analysis_date=analysis_date,
                overall_score=record.overall_score,
                signal=record.signal.value,
                confidence=record.confidence,
                data=data,
                updated_at=datetime.now(timezone.utc),
            )
        return record_id

    async def get(self, study: str, symbol: str, analysis_date: date) -> Optional[StoredResult]:
        return self._rows.get((study, symbol, analysis_date))

    async def get_latest(self, study: str, symbol: str) -> Optional[StoredResult]:
        history = await self.get_history(study, symbol, limit=1)
        return history[0] if history else None

    async def get_history(self, study: str, symbol: str, limit: int = 30) -> List[StoredResult]:
        rows = [r for (s, sym, _), r in self._rows.items() if s == study and sym == symbol]
        rows.sort(key=lambda r: r.analysis_date, reverse=True)
        return rows[:limit]

    def __len__(self) -> int:
        return len(self._rows)
