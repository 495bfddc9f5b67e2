import math
from datetime import date
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class EstimatePoint(BaseModel):
    """Consensus estimate for one fiscal period"""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    period_end: date
    eps_estimate: Optional[float] = None
    revenue_estimate: Optional[float] = None
    analyst_count: Optional[int] = None
    # Consensus for the same period some weeks ago, when the provider reports it
    eps_estimate_prior: Optional[float] = None


class EstimateRecord(BaseModel):
    """
    Analyst estimates and earnings calendar for one symbol.

    Points are ordered by period_end, oldest first.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    symbol: str
    points: Tuple[EstimatePoint, ...] = ()
    # Known report dates, past and scheduled, ascending
    earnings_dates: Tuple[date, ...] = ()
    source: Optional[str] = None

    def days_to_nearest_earnings(self, as_of: date) -> Optional[int]:
        """Absolute distance in days from as_of to the closest report date"""
        if not self.earnings_dates:
            return None
        return min(abs((d - as_of).days) for d in self.earnings_dates)

    def eps_revision(self) -> Optional[float]:
        """
        Fractional EPS revision, clamped to [-1, 1].

        Prefers the change in consensus for the nearest period when the
        provider reports a prior consensus; otherwise compares the two most
        recent periods.
        """
        with_eps = [p for p in self.points if p.eps_estimate is not None]
        if not with_eps:
            return None

        latest = with_eps[-1]
        for point in with_eps:
            if point.eps_estimate_prior is not None:
                latest = point
                break

        if latest.eps_estimate_prior is not None:
            current, previous = latest.eps_estimate, latest.eps_estimate_prior
        elif len(with_eps) >= 2:
            current, previous = with_eps[-1].eps_estimate, with_eps[-2].eps_estimate
        else:
            return None

        if previous == 0:
            return None
        revision = (current - previous) / abs(previous)
        if not math.isfinite(revision):
            return None
        return max(-1.0, min(1.0, revision))


class ShortInterestPoint(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    date: date
    short_interest: float = Field(ge=0)


class ShortInterestRecord(BaseModel):
    """Reported short interest, oldest first"""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    symbol: str
    points: Tuple[ShortInterestPoint, ...] = ()
    source: Optional[str] = None

    def until(self, as_of: date) -> "ShortInterestRecord":
        return self.model_copy(update={"points": tuple(p for p in self.points if p.date <= as_of)})


class OptionsFlowRecord(BaseModel):
    """Aggregated option activity for one session"""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    symbol: str
    date: date
    call_volume: float = Field(ge=0)
    put_volume: float = Field(ge=0)
    call_premium: float = Field(ge=0)
    put_premium: float = Field(ge=0)
    source: Optional[str] = None

    @property
    def put_call_ratio(self) -> Optional[float]:
        if self.call_volume == 0:
            return None
        return self.put_volume / self.call_volume

    @property
    def premium_skew(self) -> Optional[float]:
        """Share of total premium spent on calls (0.5 is balanced)"""
        total = self.call_premium + self.put_premium
        if total == 0:
            return None
        return self.call_premium / total
