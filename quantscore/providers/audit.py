"""
Audit trail of provider calls.

Every request an adapter makes is recorded, successful or not, so a stored
result can show exactly which endpoints and raw payloads it was built from.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Capability(str, Enum):
    """Kinds of data a provider can supply."""
    SERIES = "series"
    ESTIMATES = "estimates"
    SHORT_INTEREST = "short_interest"
    OPTIONS_FLOW = "options_flow"


@dataclass(frozen=True)
class CallRecord:
    """One provider request."""
    provider: str
    capability: str
    url: str                       # API keys redacted
    success: bool
    status: Optional[int] = None
    payload: Any = None
    error: Optional[str] = None
    elapsed_ms: float = field(default=0.0, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "capability": self.capability,
            "url": self.url,
            "success": self.success,
            "status": self.status,
            "payload": self.payload,
            "error": self.error,
            "elapsed_ms": self.elapsed_ms,
        }


class CallLog:
    """Append-only call log owned by a single pipeline run."""

    def __init__(self, keep_payloads: bool = True):
        self.keep_payloads = keep_payloads
        self._records: List[CallRecord] = []

    def record(self, record: CallRecord) -> None:
        if not self.keep_payloads and record.payload is not None:
            record = CallRecord(
                provider=record.provider,
                capability=record.capability,
                url=record.url,
                success=record.success,
                status=record.status,
                error=record.error,
                elapsed_ms=record.elapsed_ms,
            )
        self._records.append(record)

    @property
    def records(self) -> Tuple[CallRecord, ...]:
        return tuple(self._records)

    def endpoints(self) -> List[str]:
        return [r.url for r in self._records]

    def __len__(self) -> int:
        return len(self._records)
