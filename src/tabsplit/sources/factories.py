"""Factory functions for rate sources and the exchange-rate cache."""

import os
from typing import Optional

from tabsplit.database.base import LocalStore, RateStore
from tabsplit.domain.exchange_rate import ExchangeRateCache
from tabsplit.sources.base import RateSource
from tabsplit.sources.http import (
    DEFAULT_TIMEOUT,
    EXCHANGE_RATE_API_BASE,
    ExchangeRateApiSource,
    RateFunctionSource,
)

SOURCE_KINDS = ("exchangerate-api", "function")


def create_rate_source(
    kind: Optional[str] = None,
    url: Optional[str] = None,
    token: Optional[str] = None,
    timeout: Optional[float] = None,
) -> RateSource:
    """Create the live rate source.

    Args:
        kind: "exchangerate-api" or "function". If None, checks TABSPLIT_RATE_SOURCE,
            then defaults to "exchangerate-api"
        url: Endpoint URL. If None, checks TABSPLIT_RATE_URL, then defaults to the
            public exchangerate-api v4 endpoint (the function source requires a URL)
        token: Bearer token for the function source. If None, checks TABSPLIT_RATE_TOKEN
        timeout: Network timeout in seconds. If None, checks TABSPLIT_RATE_TIMEOUT,
            then defaults to 10 seconds

    Raises:
        ValueError: If the source kind is unknown or a required URL is missing
    """
    kind = (kind or os.environ.get("TABSPLIT_RATE_SOURCE") or "exchangerate-api").lower()
    url = url or os.environ.get("TABSPLIT_RATE_URL")
    token = token or os.environ.get("TABSPLIT_RATE_TOKEN")
    if timeout is None:
        timeout_env = os.environ.get("TABSPLIT_RATE_TIMEOUT")
        timeout = float(timeout_env) if timeout_env else DEFAULT_TIMEOUT

    if kind == "exchangerate-api":
        return ExchangeRateApiSource(api_base=url or EXCHANGE_RATE_API_BASE, timeout=timeout)
    if kind == "function":
        if not url:
            raise ValueError("The function rate source needs TABSPLIT_RATE_URL")
        return RateFunctionSource(url=url, token=token, timeout=timeout)
    raise ValueError(f"Unknown rate source '{kind}'. Supported sources: {', '.join(SOURCE_KINDS)}")


def create_exchange_rate_cache(
    source: RateSource,
    durable_store: Optional[RateStore] = None,
    local_store: Optional[LocalStore] = None,
) -> ExchangeRateCache:
    """Assemble the process-wide exchange-rate cache from its collaborators."""
    return ExchangeRateCache(source=source, durable_store=durable_store, local_store=local_store)
