"""
Ordered provider fallback per capability.

A chain tries its providers strictly in priority order and returns the
first successful, sufficient answer together with the provider's name.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from quantscore.models import EstimateRecord, OptionsFlowRecord, PriceSeries, ShortInterestRecord
from quantscore.providers.audit import CallLog, Capability
from quantscore.providers.base import BaseProvider
from quantscore.providers.exceptions import (
    AllProvidersFailed,
    InsufficientData,
    MalformedResponse,
    ProviderError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# RSI(14) needs 15 closes; anything shorter is useless to every indicator
DEFAULT_MIN_POINTS = 15


@dataclass(frozen=True)
class Sourced(Generic[T]):
    """A value and the provider that supplied it."""
    value: T
    provider: str


class ProviderChain:
    """
    Fallback chain for a single capability.

    Providers that do not support the capability are dropped at
    construction. Partial or insufficient data from one provider is
    discarded and the next provider is tried.
    """

    def __init__(
        self,
        capability: Capability,
        providers: Sequence[BaseProvider],
        min_points: int = DEFAULT_MIN_POINTS,
    ):
        self.capability = capability
        self.providers: List[BaseProvider] = [p for p in providers if p.supports(capability)]
        self.min_points = min_points

    @property
    def provider_names(self) -> List[str]:
        return [p.name for p in self.providers]

    def __bool__(self) -> bool:
        return bool(self.providers)

    async def fetch_series(
        self,
        symbol: str,
        lookback_days: int,
        as_of: Optional[date] = None,
        audit: Optional[CallLog] = None,
    ) -> Sourced[PriceSeries]:
        """
        First series with at least min_points bars on or before as_of.

        Raises:
            AllProvidersFailed: If no provider produced a sufficient series
        """
        def accept(series: PriceSeries) -> PriceSeries:
            if as_of is not None:
                series = series.until(as_of)
            if len(series) < self.min_points:
                raise InsufficientData(f"{symbol} series", self.min_points, len(series))
            return series

        return await self._first_success(
            symbol,
            lambda p: p.fetch_series(symbol, lookback_days, audit=audit),
            accept,
        )

    async def fetch_estimates(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> Sourced[EstimateRecord]:
        return await self._first_success(symbol, lambda p: p.fetch_estimates(symbol, audit=audit))

    async def fetch_short_interest(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> Sourced[ShortInterestRecord]:
        return await self._first_success(symbol, lambda p: p.fetch_short_interest(symbol, audit=audit))

    async def fetch_options_flow(
        self, symbol: str, audit: Optional[CallLog] = None
    ) -> Sourced[OptionsFlowRecord]:
        return await self._first_success(symbol, lambda p: p.fetch_options_flow(symbol, audit=audit))

    async def _first_success(
        self,
        symbol: str,
        call: Callable[[BaseProvider], Awaitable[T]],
        accept: Optional[Callable[[T], T]] = None,
    ) -> Sourced[T]:
        attempts: List[Tuple[str, Exception]] = []

        for provider in self.providers:
            try:
                value = await call(provider)
                if accept is not None:
                    value = accept(value)
            except (ProviderError, InsufficientData) as e:
                attempts.append((provider.name, e))
                logger.warning(
                    f"{self.capability.value} from {provider.name} failed for {symbol}: {e}"
                )
                continue
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                # Payload shapes the adapter did not anticipate
                error = MalformedResponse(provider.name, f"unparseable payload: {e!r}")
                attempts.append((provider.name, error))
                logger.warning(
                    f"{self.capability.value} from {provider.name} failed for {symbol}: {error}"
                )
                continue

            if attempts:
                logger.info(
                    f"{self.capability.value} for {symbol} served by fallback {provider.name} "
                    f"after {len(attempts)} failure(s)"
                )
            return Sourced(value=value, provider=provider.name)

        raise AllProvidersFailed(self.capability.value, symbol, attempts)

    def __repr__(self) -> str:
        return f"ProviderChain({self.capability.value}, {self.provider_names})"
