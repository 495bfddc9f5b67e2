"""
Financial Modeling Prep adapter.

Primary source for daily bars and analyst estimates.
"""

import logging
from typing import Any, Dict, List, Optional

from quantscore.models import EstimatePoint, EstimateRecord, PriceSeries
from quantscore.providers.audit import CallLog, Capability
from quantscore.providers.base import BaseProvider
from quantscore.providers.exceptions import MalformedResponse, ProviderError, RateLimitError
from quantscore.providers.utils import parse_date, parse_optional_float

logger = logging.getLogger(__name__)


class FMPProvider(BaseProvider):
    """Adapter for financialmodelingprep.com (v3 API)."""

    name = "fmp"
    DEFAULT_HOST = "https://financialmodelingprep.com"
    capabilities = frozenset({Capability.SERIES, Capability.ESTIMATES})

    def _auth_params(self) -> Dict[str, str]:
        return {"apikey": self.api_key} if self.api_key else {}

    def _check_payload(self, payload: Any) -> None:
        if isinstance(payload, dict) and "Error Message" in payload:
            message = str(payload["Error Message"])
            if "limit" in message.lower():
                raise RateLimitError(self.name, message, status=None)
            raise MalformedResponse(self.name, message)

    async def fetch_series(
        self, symbol: str, lookback_days: int, audit: Optional[CallLog] = None
    ) -> PriceSeries:
        payload = await self._get_json(
            f"/api/v3/historical-price-full/{symbol}",
            {"timeseries": lookback_days},
            Capability.SERIES,
            audit,
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("historical"), list):
            raise MalformedResponse(self.name, f"no historical data for {symbol}")

        series = self._build_series(symbol, payload["historical"], lookback_days)
        logger.debug(f"fmp returned {len(series)} bars for {symbol}")
        return series

    async def fetch_estimates(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> EstimateRecord:
        payload = await self._get_json(
            f"/api/v3/analyst-estimates/{symbol}",
            {"period": "quarter", "limit": 8},
            Capability.ESTIMATES,
            audit,
        )
        if not isinstance(payload, list):
            raise MalformedResponse(self.name, f"unexpected estimates payload for {symbol}")

        points: List[EstimatePoint] = []
        for row in payload:
            eps = parse_optional_float(row.get("estimatedEpsAvg"))
            if eps is None:
                continue
            analysts = parse_optional_float(row.get("numberAnalystsEstimatedEps"))
            points.append(EstimatePoint(
                period_end=parse_date(self.name, row.get("date")),
                eps_estimate=eps,
                revenue_estimate=parse_optional_float(row.get("estimatedRevenueAvg")),
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
        """Report dates from the earnings calendar; empty when unavailable."""
        try:
            payload = await self._get_json(
                f"/api/v3/historical/earning_calendar/{symbol}",
                {"limit": 12},
                Capability.ESTIMATES,
                audit,
            )
        except ProviderError as e:
            logger.warning(f"fmp earnings calendar unavailable for {symbol}: {e}")
            return ()
        if not isinstance(payload, list):
            return ()
        dates = {parse_date(self.name, row.get("date")) for row in payload if row.get("date")}
        return tuple(sorted(dates))
