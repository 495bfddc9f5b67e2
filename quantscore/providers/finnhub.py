"""
Finnhub adapter.

Third-priority source for daily bars and estimates, and the source for
reported short interest.
"""

import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from quantscore.models import (
    EstimatePoint,
    EstimateRecord,
    PriceSeries,
    ShortInterestPoint,
    ShortInterestRecord,
)
from quantscore.providers.audit import CallLog, Capability
from quantscore.providers.base import BaseProvider
from quantscore.providers.exceptions import MalformedResponse, ProviderError
from quantscore.providers.utils import parse_date, parse_optional_float

logger = logging.getLogger(__name__)

SHORT_INTEREST_DAYS = 180
EARNINGS_LOOKAROUND_DAYS = 120


class FinnhubProvider(BaseProvider):
    """Adapter for finnhub.io."""

    name = "finnhub"
    DEFAULT_HOST = "https://finnhub.io"
    capabilities = frozenset({Capability.SERIES, Capability.ESTIMATES, Capability.SHORT_INTEREST})

    def _auth_params(self) -> Dict[str, str]:
        return {"token": self.api_key} if self.api_key else {}

    async def fetch_series(
        self, symbol: str, lookback_days: int, audit: Optional[CallLog] = None
    ) -> PriceSeries:
        now = int(time.time())
        # Trading days to calendar days, with slack for holidays
        calendar_days = int(lookback_days * 7 / 5) + 10
        payload = await self._get_json(
            "/api/v1/stock/candle",
            {
                "symbol": symbol,
                "resolution": "D",
                "from": now - calendar_days * 86400,
                "to": now,
            },
            Capability.SERIES,
            audit,
        )
        if not isinstance(payload, dict) or payload.get("s") != "ok":
            raise MalformedResponse(self.name, f"no candles for {symbol}")

        try:
            columns = [payload[k] for k in ("t", "o", "h", "l", "c", "v")]
        except KeyError as e:
            raise MalformedResponse(self.name, f"candle payload missing {e}")
        if len({len(c) for c in columns}) != 1:
            raise MalformedResponse(self.name, "candle arrays have different lengths")

        rows = [
            {
                "date": datetime.fromtimestamp(t, tz=timezone.utc).date(),
                "open": o, "high": h, "low": l, "close": c, "volume": v,
            }
            for t, o, h, l, c, v in zip(*columns)
        ]
        return self._build_series(symbol, rows, lookback_days)

    async def fetch_estimates(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> EstimateRecord:
        payload = await self._get_json(
            "/api/v1/stock/eps-estimate",
            {"symbol": symbol, "freq": "quarterly"},
            Capability.ESTIMATES,
            audit,
        )
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise MalformedResponse(self.name, f"no estimates for {symbol}")

        points: List[EstimatePoint] = []
        for row in rows:
            eps = parse_optional_float(row.get("epsAvg"))
            if eps is None or not row.get("period"):
                continue
            analysts = parse_optional_float(row.get("numberAnalysts"))
            points.append(EstimatePoint(
                period_end=parse_date(self.name, row["period"], "period"),
                eps_estimate=eps,
                analyst_count=int(analysts) if analysts is not None else None,
            ))
        if not points:
            raise MalformedResponse(self.name, f"no EPS estimates for {symbol}")
        points.sort(key=lambda p: p.period_end)

        return EstimateRecord(
            symbol=symbol,
            points=tuple(points),
            earnings_dates=await self._earnings_dates(symbol, audit),
            source=self.name,
        )

    async def _earnings_dates(self, symbol: str, audit: Optional[CallLog]) -> tuple:
        today = date.today()
        window = timedelta(days=EARNINGS_LOOKAROUND_DAYS)
        try:
            payload = await self._get_json(
                "/api/v1/calendar/earnings",
                {
                    "symbol": symbol,
                    "from": (today - window).isoformat(),
                    "to": (today + window).isoformat(),
                },
                Capability.ESTIMATES,
                audit,
            )
        except ProviderError as e:
            logger.warning(f"finnhub earnings calendar unavailable for {symbol}: {e}")
            return ()
        rows = payload.get("earningsCalendar") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            return ()
        return tuple(sorted({parse_date(self.name, r["date"]) for r in rows if r.get("date")}))

    async def fetch_short_interest(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> ShortInterestRecord:
        today = date.today()
        payload = await self._get_json(
            "/api/v1/stock/short-interest",
            {
                "symbol": symbol,
                "from": (today - timedelta(days=SHORT_INTEREST_DAYS)).isoformat(),
                "to": today.isoformat(),
            },
            Capability.SHORT_INTEREST,
            audit,
        )
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise MalformedResponse(self.name, f"no short interest for {symbol}")

        by_date: Dict[date, ShortInterestPoint] = {}
        for row in rows:
            value = parse_optional_float(row.get("shortInterest"))
            if value is None or not row.get("date"):
                continue
            day = parse_date(self.name, row["date"])
            by_date[day] = ShortInterestPoint(date=day, short_interest=value)

        if not by_date:
            raise MalformedResponse(self.name, f"no short interest for {symbol}")
        return ShortInterestRecord(
            symbol=symbol,
            points=tuple(by_date[d] for d in sorted(by_date)),
            source=self.name,
        )
