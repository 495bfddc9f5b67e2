"""
Market data provider adapters.

Adapters for FMP, Alpha Vantage and Finnhub share one transport layer with
rate limiting, retry logic and a per-run call audit. Fallback between them
is handled by one ProviderChain per capability.
"""

from quantscore.providers.exceptions import (
    QuantScoreError,
    ProviderError,
    ProviderUnavailable,
    RateLimitError,
    AuthenticationError,
    MalformedResponse,
    AllProvidersFailed,
    InsufficientData,
    ComputationError,
    StorageError,
    ValidationError,
    ConfigurationError,
)
from quantscore.providers.rate_limiter import QueueClock, RateLimiter, queue_clock
from quantscore.providers.audit import Capability, CallLog, CallRecord
from quantscore.providers.base import BaseProvider
from quantscore.providers.fmp import FMPProvider
from quantscore.providers.alpha_vantage import AlphaVantageProvider
from quantscore.providers.finnhub import FinnhubProvider
from quantscore.providers.chain import ProviderChain, Sourced
from quantscore.providers.registry import ProviderChains, build_providers, build_provider_chains
from quantscore.providers.utils import retry_with_backoff

__all__ = [
    # Exceptions
    "QuantScoreError",
    "ProviderError",
    "ProviderUnavailable",
    "RateLimitError",
    "AuthenticationError",
    "MalformedResponse",
    "AllProvidersFailed",
    "InsufficientData",
    "ComputationError",
    "StorageError",
    "ValidationError",
    "ConfigurationError",
    # Transport
    "RateLimiter",
    "QueueClock",
    "queue_clock",
    "Capability",
    "CallLog",
    "CallRecord",
    "BaseProvider",
    "retry_with_backoff",
    # Adapters
    "FMPProvider",
    "AlphaVantageProvider",
    "FinnhubProvider",
    # Fallback
    "ProviderChain",
    "Sourced",
    "ProviderChains",
    "build_providers",
    "build_provider_chains",
]
