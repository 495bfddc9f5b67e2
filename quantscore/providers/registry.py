"""
Builds provider adapters and fallback chains from configuration.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Type

from quantscore.providers.alpha_vantage import AlphaVantageProvider
from quantscore.providers.audit import Capability
from quantscore.providers.base import BaseProvider
from quantscore.providers.chain import ProviderChain
from quantscore.providers.exceptions import ConfigurationError
from quantscore.providers.finnhub import FinnhubProvider
from quantscore.providers.fmp import FMPProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Dict[str, Type[BaseProvider]] = {
    FMPProvider.name: FMPProvider,
    AlphaVantageProvider.name: AlphaVantageProvider,
    FinnhubProvider.name: FinnhubProvider,
}


@dataclass
class ProviderChains:
    """One chain per capability plus the adapters backing them."""
    series: ProviderChain
    estimates: ProviderChain
    short_interest: ProviderChain
    options_flow: ProviderChain
    providers: List[BaseProvider] = field(default_factory=list)

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()


def build_providers(config) -> Dict[str, BaseProvider]:
    """
    Instantiate every known provider that has an API key.

    Providers without a key are skipped with a warning; each adapter gets
    its own rate limiter sized from config.
    """
    keys = {
        "fmp": config.fmp_api_key,
        "alpha_vantage": config.alpha_vantage_api_key,
        "finnhub": config.finnhub_api_key,
    }
    providers: Dict[str, BaseProvider] = {}
    for name, cls in PROVIDER_CLASSES.items():
        api_key = keys.get(name)
        if not api_key:
            logger.warning(f"No API key for {name}, provider disabled")
            continue
        providers[name] = cls(
            api_key=api_key,
            max_requests_per_minute=config.rate_limits.get(name, 60),
            max_retries=config.max_retries,
            timeout=config.request_timeout,
        )
    return providers


def _ordered(names: List[str], providers: Dict[str, BaseProvider]) -> List[BaseProvider]:
    unknown = [n for n in names if n not in PROVIDER_CLASSES]
    if unknown:
        raise ConfigurationError(f"Unknown provider(s) in priority list: {unknown}")
    return [providers[n] for n in names if n in providers]


def build_provider_chains(config, providers: Optional[Dict[str, BaseProvider]] = None) -> ProviderChains:
    """Build the per-capability fallback chains in configured priority order."""
    if providers is None:
        providers = build_providers(config)

    chains = ProviderChains(
        series=ProviderChain(
            Capability.SERIES,
            _ordered(config.series_providers, providers),
            min_points=config.min_series_points,
        ),
        estimates=ProviderChain(Capability.ESTIMATES, _ordered(config.estimate_providers, providers)),
        short_interest=ProviderChain(
            Capability.SHORT_INTEREST, _ordered(config.short_interest_providers, providers)
        ),
        options_flow=ProviderChain(
            Capability.OPTIONS_FLOW, _ordered(config.options_flow_providers, providers)
        ),
        providers=list(providers.values()),
    )

    if not chains.series:
        logger.warning("No price series provider configured; every analysis will be empty")
    return chains
