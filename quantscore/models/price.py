from datetime import date
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator


class PricePoint(BaseModel):
    """Daily OHLCV bar"""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    date: date
    open: float = Field(gt=0)
    high: float = Field(gt=0)
    low: float = Field(gt=0)
    close: float = Field(gt=0)
    volume: float = Field(ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> "PricePoint":
        if self.high < self.low:
            raise ValueError(f"high {self.high} below low {self.low} on {self.date}")
        return self


class PriceSeries(BaseModel):
    """
    Ordered daily bars for one symbol, oldest first.

    Dates are strictly increasing. A series is never patched: adapters
    either produce a valid one or fail.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    symbol: str
    points: Tuple[PricePoint, ...] = ()
    source: Optional[str] = None

    @model_validator(mode="after")
    def _check_order(self) -> "PriceSeries":
        for prev, cur in zip(self.points, self.points[1:]):
            if cur.date <= prev.date:
                raise ValueError(
                    f"{self.symbol}: dates must be strictly increasing "
                    f"({prev.date} then {cur.date})"
                )
        return self

    def __len__(self) -> int:
        return len(self.points)

    @property
    def closes(self) -> np.ndarray:
        return np.array([p.close for p in self.points], dtype=float)

    @property
    def highs(self) -> np.ndarray:
        return np.array([p.high for p in self.points], dtype=float)

    @property
    def lows(self) -> np.ndarray:
        return np.array([p.low for p in self.points], dtype=float)

    @property
    def volumes(self) -> np.ndarray:
        return np.array([p.volume for p in self.points], dtype=float)

    @property
    def last_date(self) -> Optional[date]:
        return self.points[-1].date if self.points else None

    @property
    def last_close(self) -> Optional[float]:
        return self.points[-1].close if self.points else None

    def until(self, as_of: date) -> "PriceSeries":
        """Series truncated to bars dated on or before as_of"""
        kept = tuple(p for p in self.points if p.date <= as_of)
        if len(kept) == len(self.points):
            return self
        return self.model_copy(update={"points": kept})

    def tail(self, n: int) -> "PriceSeries":
        if n >= len(self.points):
            return self
        return self.model_copy(update={"points": self.points[-n:]})

    def to_frame(self) -> pd.DataFrame:
        """Bars as a DataFrame indexed by date"""
        frame = pd.DataFrame(
            [p.model_dump() for p in self.points],
            columns=["date", "open", "high", "low", "close", "volume"],
        )
        return frame.set_index("date")
