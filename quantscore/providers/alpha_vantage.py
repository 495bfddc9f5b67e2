"""
Alpha Vantage adapter.

Fallback source for daily bars and estimates, and the only source for
options activity. Alpha Vantage reports most errors inside HTTP 200
bodies, so payloads are inspected before parsing.
"""

import logging
from typing import Any, Dict, List, Optional

from quantscore.models import EstimatePoint, EstimateRecord, OptionsFlowRecord, PriceSeries
from quantscore.providers.audit import CallLog, Capability
from quantscore.providers.base import BaseProvider
from quantscore.providers.exceptions import (
    AuthenticationError,
    MalformedResponse,
    ProviderError,
    RateLimitError,
)
from quantscore.providers.utils import parse_date, parse_float, parse_optional_float

logger = logging.getLogger(__name__)

# Alpha Vantage option contracts cover 100 shares
CONTRACT_MULTIPLIER = 100
COMPACT_SIZE = 100


class AlphaVantageProvider(BaseProvider):
    """Adapter for alphavantage.co."""

    name = "alpha_vantage"
    DEFAULT_HOST = "https://www.alphavantage.co"
    capabilities = frozenset({Capability.SERIES, Capability.ESTIMATES, Capability.OPTIONS_FLOW})

    def _auth_params(self) -> Dict[str, str]:
        return {"apikey": self.api_key} if self.api_key else {}

    def _check_payload(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            return
        if "Error Message" in payload:
            raise MalformedResponse(self.name, str(payload["Error Message"]))
        for key in ("Note", "Information"):
            if key in payload:
                message = str(payload[key])
                if "premium" in message.lower():
                    raise AuthenticationError(self.name, message)
                raise RateLimitError(self.name, message, status=None)

    async def fetch_series(
        self, symbol: str, lookback_days: int, audit: Optional[CallLog] = None
    ) -> PriceSeries:
        payload = await self._get_json(
            "/query",
            {
                "function": "TIME_SERIES_DAILY",
                "symbol": symbol,
                "outputsize": "compact" if lookback_days <= COMPACT_SIZE else "full",
            },
            Capability.SERIES,
            audit,
        )
        daily = payload.get("Time Series (Daily)") if isinstance(payload, dict) else None
        if not isinstance(daily, dict):
            raise MalformedResponse(self.name, f"no daily series for {symbol}")

        rows = [
            {
                "date": day,
                "open": bar.get("1. open"),
                "high": bar.get("2. high"),
                "low": bar.get("3. low"),
                "close": bar.get("4. close"),
                "volume": bar.get("5. volume"),
            }
            for day, bar in daily.items()
        ]
        return self._build_series(symbol, rows, lookback_days)

    async def fetch_estimates(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> EstimateRecord:
        payload = await self._get_json(
            "/query",
            {"function": "EARNINGS_ESTIMATES", "symbol": symbol},
            Capability.ESTIMATES,
            audit,
        )
        estimates = payload.get("estimates") if isinstance(payload, dict) else None
        if not isinstance(estimates, list):
            raise MalformedResponse(self.name, f"no estimates for {symbol}")

        points: List[EstimatePoint] = []
        for row in estimates:
            eps = parse_optional_float(row.get("eps_estimate_average"))
            if eps is None:
                continue
            analysts = parse_optional_float(row.get("eps_estimate_analyst_count"))
            points.append(EstimatePoint(
                period_end=parse_date(self.name, row.get("date")),
                eps_estimate=eps,
                revenue_estimate=parse_optional_float(row.get("revenue_estimate_average")),
                analyst_count=int(analysts) if analysts is not None else None,
                eps_estimate_prior=parse_optional_float(row.get("eps_estimate_average_30_days_ago")),
            ))
        if not points:
            raise MalformedResponse(self.name, f"no EPS estimates for {symbol}")

        # Several horizons can share a period end; keep the first seen
        by_period: Dict[Any, EstimatePoint] = {}
        for point in points:
            by_period.setdefault(point.period_end, point)

        return EstimateRecord(
            symbol=symbol,
            points=tuple(sorted(by_period.values(), key=lambda p: p.period_end)),
            earnings_dates=await self._earnings_dates(symbol, audit),
            source=self.name,
        )

    async def _earnings_dates(self, symbol: str, audit: Optional[CallLog]) -> tuple:
        try:
            payload = await self._get_json(
                "/query",
                {"function": "EARNINGS", "symbol": symbol},
                Capability.ESTIMATES,
                audit,
            )
        except ProviderError as e:
            logger.warning(f"alpha_vantage earnings history unavailable for {symbol}: {e}")
            return ()
        quarterly = payload.get("quarterlyEarnings") if isinstance(payload, dict) else None
        if not isinstance(quarterly, list):
            return ()
        dates = {
            parse_date(self.name, row["reportedDate"], "reportedDate")
            for row in quarterly
            if row.get("reportedDate")
        }
        return tuple(sorted(dates))

    async def fetch_options_flow(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> OptionsFlowRecord:
        payload = await self._get_json(
            "/query",
            {"function": "HISTORICAL_OPTIONS", "symbol": symbol},
            Capability.OPTIONS_FLOW,
            audit,
        )
        contracts = payload.get("data") if isinstance(payload, dict) else None
        if not contracts:
            raise MalformedResponse(self.name, f"no option contracts for {symbol}")

        totals = {"call": [0.0, 0.0], "put": [0.0, 0.0]}
        session_date = None
        for contract in contracts:
            kind = str(contract.get("type", "")).lower()
            if kind not in totals:
                continue
            volume = parse_float(self.name, contract.get("volume", 0), "volume")
            mark = parse_optional_float(contract.get("mark"))
            if mark is None:
                mark = parse_optional_float(contract.get("last")) or 0.0
            totals[kind][0] += volume
            totals[kind][1] += volume * mark * CONTRACT_MULTIPLIER
            if session_date is None and contract.get("date"):
                session_date = parse_date(self.name, contract["date"])

        if session_date is None:
            raise MalformedResponse(self.name, f"option contracts for {symbol} carry no date")

        return OptionsFlowRecord(
            symbol=symbol,
            date=session_date,
            call_volume=totals["call"][0],
            put_volume=totals["put"][0],
            call_premium=totals["call"][1],
            put_premium=totals["put"][1],
            source=self.name,
        )
