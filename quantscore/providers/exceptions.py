"""
Custom exceptions for the scoring engine.

Provides a hierarchy of exceptions for the failure modes encountered while
fetching market data from providers, computing indicators and persisting
results.
"""

from typing import List, Optional, Tuple


class QuantScoreError(Exception):
    """
    Base exception for all engine errors.

    All other exceptions inherit from this class, making it easy
    to catch any engine-related error.
    """
    pass


class ProviderError(QuantScoreError):
    """
    Exception raised for errors coming from a data provider.

    Attributes:
        provider: Name of the provider that failed
        message: Human readable description
        status: HTTP status code, if the failure was an HTTP response
        response_data: Optional raw response payload
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status: Optional[int] = None,
        response_data: Optional[dict] = None
    ):
        self.provider = provider
        self.message = message
        self.status = status
        self.response_data = response_data
        prefix = f"{provider} error {status}" if status else f"{provider} error"
        super().__init__(f"{prefix}: {message}")


class ProviderUnavailable(ProviderError):
    """
    Exception raised when a provider cannot be reached or refuses service.

    Covers network failures, timeouts, server errors and any non-success
    status that is not more specifically classified.
    """
    pass


class RateLimitError(ProviderUnavailable):
    """
    Exception raised when provider rate limits are hit.

    Check the retry_after attribute for recommended wait time.
    """

    def __init__(
        self,
        provider: str,
        message: str = "Rate limit exceeded",
        status: Optional[int] = 429,
        retry_after: Optional[float] = None,
        response_data: Optional[dict] = None
    ):
        super().__init__(provider, message, status, response_data)
        self.retry_after = retry_after


class AuthenticationError(ProviderUnavailable):
    """
    Exception raised for authentication-related errors.

    This includes invalid or missing API keys and plans that do not
    cover the requested endpoint.
    """
    pass


class MalformedResponse(ProviderError):
    """
    Exception raised when a provider answers with data we cannot use.

    Invalid JSON, missing fields, unparseable numbers and duplicate dates
    all end up here.
    """
    pass


class AllProvidersFailed(ProviderUnavailable):
    """
    Exception raised when every provider in a fallback chain failed.

    Attributes:
        capability: The capability that was requested
        attempts: List of (provider name, error) pairs in the order tried
    """

    def __init__(self, capability: str, symbol: str, attempts: List[Tuple[str, Exception]]):
        self.capability = capability
        self.symbol = symbol
        self.attempts = attempts
        detail = "; ".join(f"{name}: {err}" for name, err in attempts) or "no providers configured"
        super().__init__("chain", f"all providers failed for {capability} {symbol} ({detail})")


class InsufficientData(QuantScoreError):
    """
    Exception raised when a series is too short for a computation.

    Attributes:
        required: Minimum number of points needed
        available: Number of points actually present
    """

    def __init__(self, what: str, required: int, available: int):
        self.what = what
        self.required = required
        self.available = available
        super().__init__(f"{what} needs {required} points, got {available}")


class ComputationError(QuantScoreError):
    """Exception raised for degenerate math such as zero ranges."""
    pass


class StorageError(QuantScoreError):
    """
    Exception raised when a result cannot be persisted.

    Wraps database errors and record contract violations.
    """
    pass


class ValidationError(QuantScoreError):
    """
    Exception raised when input validation fails.

    Check the field and message for details on what validation failed.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Validation error for '{field}': {message}")


class ConfigurationError(QuantScoreError):
    """
    Exception raised for configuration-related errors.

    This includes missing API keys, unknown provider names and invalid weights.
    """
    pass
