"""
Utility functions for provider adapters.

Contains helpers for retry logic, URL redaction and parsing the loosely
typed values market data APIs return.
"""

import asyncio
import logging
import math
import random
from datetime import date, datetime
from typing import Any, Callable, Optional, Tuple, Type
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from quantscore.providers.exceptions import (
    AuthenticationError,
    MalformedResponse,
    ProviderUnavailable,
    RateLimitError,
)

logger = logging.getLogger(__name__)

SECRET_PARAMS = ("apikey", "api_key", "token")


async def retry_with_backoff(
    func: Callable[..., Any],
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        RateLimitError,
        ConnectionError,
        asyncio.TimeoutError,
    ),
    **kwargs
) -> Any:
    """
    Execute an async function with exponential backoff retry logic.

    Rate limits are retried, as are unavailable-provider errors that carry
    a 5xx status or no status at all (network failures). Authentication
    failures are never retried.

    Args:
        func: Async function to execute
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries
        exponential_base: Base for exponential calculation
        jitter: Whether to add random jitter to delays
        retryable_exceptions: Exceptions that always trigger a retry

    Returns:
        Result of the function call

    Raises:
        The last exception if all retries fail
    """
    func_name = getattr(func, "__name__", repr(func))

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except AuthenticationError:
            raise
        except retryable_exceptions as e:
            if attempt == max_retries:
                logger.error(f"All {max_retries + 1} attempts failed for {func_name}: {e}")
                raise
            delay = _backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
            retry_after = getattr(e, "retry_after", None)
            if retry_after:
                delay = max(delay, min(retry_after, max_delay))
            logger.warning(
                f"Attempt {attempt + 1} failed for {func_name}: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)
        except ProviderUnavailable as e:
            # Only retry network failures (no status) and 5xx errors
            if e.status is not None and not 500 <= e.status < 600:
                raise
            if attempt == max_retries:
                raise
            delay = _backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
            logger.warning(
                f"Transient error (attempt {attempt + 1}): {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)

    raise RuntimeError(f"retry loop exited without result for {func_name}")


def _backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
) -> float:
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        # ±25% of delay
        jitter_range = delay * 0.25
        delay = max(0.1, delay + random.uniform(-jitter_range, jitter_range))
    return delay


def redact_url(url: str) -> str:
    """Replace API key query parameters with a placeholder."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, "***" if key.lower() in SECRET_PARAMS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="*")))


def parse_float(provider: str, value: Any, field: str) -> float:
    """
    Parse a numeric field that may arrive as a string.

    Raises:
        MalformedResponse: If the value is missing or not numeric
    """
    if value is None or value == "":
        raise MalformedResponse(provider, f"missing numeric field '{field}'")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedResponse(provider, f"field '{field}' is not numeric: {value!r}")
    if not math.isfinite(number):
        raise MalformedResponse(provider, f"field '{field}' is not finite: {value!r}")
    return number


def parse_optional_float(value: Any) -> Optional[float]:
    """Parse a numeric field, mapping blanks, placeholders and non-finite values to None."""
    if value in (None, "", "None", "-"):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_date(provider: str, value: Any, field: str = "date") -> date:
    """
    Parse an ISO date (or datetime prefix) from a provider payload.

    Raises:
        MalformedResponse: If the value cannot be parsed
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or len(value) < 10:
        raise MalformedResponse(provider, f"invalid {field}: {value!r}")
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise MalformedResponse(provider, f"invalid {field}: {value!r}")
