"""
Base class for market data provider adapters.

Handles the HTTP session, rate limiting, retries, status mapping and the
call audit so concrete adapters only build requests and parse payloads.
"""

import asyncio
import json
import logging
import time
from datetime import date
from typing import Any, Dict, FrozenSet, Iterable, Optional
from urllib.parse import urlencode

import aiohttp
import pydantic

from quantscore.models import (
    EstimateRecord,
    OptionsFlowRecord,
    PricePoint,
    PriceSeries,
    ShortInterestRecord,
)
from quantscore.providers.audit import CallLog, CallRecord, Capability
from quantscore.providers.exceptions import (
    AuthenticationError,
    MalformedResponse,
    ProviderUnavailable,
    RateLimitError,
)
from quantscore.providers.rate_limiter import RateLimiter
from quantscore.providers.utils import parse_date, parse_float, redact_url, retry_with_backoff

logger = logging.getLogger(__name__)


class BaseProvider:
    """
    Asynchronous adapter for one market data vendor.

    Subclasses declare the capabilities they support and implement the
    matching fetch_* coroutines. All requests go through _get_json, which
    applies the shared rate limiter and records every attempt in the
    caller's CallLog.

    Example:
        async with FMPProvider(api_key="...") as fmp:
            series = await fmp.fetch_series("AAPL", lookback_days=250)
    """

    name: str = "base"
    DEFAULT_HOST: str = ""
    capabilities: FrozenSet[Capability] = frozenset()

    def __init__(
        self,
        api_key: Optional[str] = None,
        host: Optional[str] = None,
        max_requests_per_minute: int = 60,
        max_retries: int = 3,
        timeout: float = 30.0,
        retry_base_delay: float = 1.0,
    ):
        self.api_key = api_key
        self.host = (host or self.DEFAULT_HOST).rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_base_delay = retry_base_delay

        self._rate_limiter = RateLimiter(
            max_requests_per_minute=max_requests_per_minute,
            name=self.name,
        )
        self._session: Optional[aiohttp.ClientSession] = None
        self._request_count = 0

        logger.info(
            f"{type(self).__name__} initialized: host={self.host}, "
            f"capabilities={sorted(c.value for c in self.capabilities)}"
        )

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def connect(self) -> None:
        await self._get_session()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        logger.info(f"{type(self).__name__} closed after {self._request_count} requests")

    async def __aenter__(self) -> "BaseProvider":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- capabilities ---

    async def fetch_series(
        self, symbol: str, lookback_days: int, audit: Optional[CallLog] = None
    ) -> PriceSeries:
        raise NotImplementedError(f"{self.name} does not provide price series")

    async def fetch_estimates(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> EstimateRecord:
        raise NotImplementedError(f"{self.name} does not provide estimates")

    async def fetch_short_interest(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> ShortInterestRecord:
        raise NotImplementedError(f"{self.name} does not provide short interest")

    async def fetch_options_flow(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> OptionsFlowRecord:
        raise NotImplementedError(f"{self.name} does not provide options flow")

    # --- transport ---

    def _auth_params(self) -> Dict[str, str]:
        """Query parameters that authenticate a request."""
        return {}

    def _check_payload(self, payload: Any) -> None:
        """Hook for vendors that report errors inside a 200 response."""

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        capability: Capability = Capability.SERIES,
        audit: Optional[CallLog] = None,
    ) -> Any:
        """GET a JSON document, retrying transient failures."""
        return await retry_with_backoff(
            self._request_once,
            path,
            params or {},
            capability,
            audit,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
        )

    async def _request_once(
        self,
        path: str,
        params: Dict[str, Any],
        capability: Capability,
        audit: Optional[CallLog],
    ) -> Any:
        session = await self._get_session()
        url = f"{self.host}{path}"
        query = {**params, **self._auth_params()}
        shown_url = redact_url(f"{url}?{urlencode(query)}" if query else url)

        start = time.perf_counter()
        status: Optional[int] = None
        try:
            try:
                async with self._rate_limiter:
                    self._request_count += 1
                    async with session.get(url, params=query) as response:
                        status = response.status
                        text = await response.text()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"Network error during GET {shown_url}: {e!r}")
                raise ProviderUnavailable(self.name, f"network error: {e!r}")

            if status == 429:
                raise RateLimitError(self.name, status=status)
            elif status in (401, 403):
                raise AuthenticationError(self.name, text[:200] or "unauthorized", status)
            elif status >= 400:
                raise ProviderUnavailable(self.name, text[:200] or "request failed", status)

            try:
                payload = json.loads(text)
            except ValueError:
                raise MalformedResponse(self.name, "response is not valid JSON", status)

            self._check_payload(payload)
        except Exception as e:
            self._audit(audit, capability, shown_url, False, status, None, str(e), start)
            raise

        self._audit(audit, capability, shown_url, True, status, payload, None, start)
        return payload

    def _audit(
        self,
        audit: Optional[CallLog],
        capability: Capability,
        url: str,
        success: bool,
        status: Optional[int],
        payload: Any,
        error: Optional[str],
        start: float,
    ) -> None:
        if audit is None:
            return
        audit.record(CallRecord(
            provider=self.name,
            capability=capability.value,
            url=url,
            success=success,
            status=status,
            payload=payload,
            error=error,
            elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
        ))

    # --- parsing helpers ---

    def _build_series(
        self, symbol: str, rows: Iterable[Dict[str, Any]], lookback_days: int
    ) -> PriceSeries:
        """
        Turn raw bars (any order) into a validated series, oldest first,
        capped to the most recent lookback_days bars.
        """
        points = []
        seen = set()
        for row in rows:
            day: date = parse_date(self.name, row.get("date"))
            if day in seen:
                raise MalformedResponse(self.name, f"duplicate bar for {symbol} on {day}")
            seen.add(day)
            try:
                points.append(PricePoint(
                    date=day,
                    open=parse_float(self.name, row.get("open"), "open"),
                    high=parse_float(self.name, row.get("high"), "high"),
                    low=parse_float(self.name, row.get("low"), "low"),
                    close=parse_float(self.name, row.get("close"), "close"),
                    volume=parse_float(self.name, row.get("volume"), "volume"),
                ))
            except pydantic.ValidationError as e:
                raise MalformedResponse(self.name, f"invalid bar for {symbol} on {day}: {e}")

        points.sort(key=lambda p: p.date)
        if lookback_days > 0:
            points = points[-lookback_days:]
        return PriceSeries(symbol=symbol, points=tuple(points), source=self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(host={self.host!r})"
