"""Live exchange-rate sources."""

from tabsplit.sources.base import RateSource, quote_from_payload
from tabsplit.sources.http import ExchangeRateApiSource, RateFunctionSource

__all__ = ["RateSource", "quote_from_payload", "ExchangeRateApiSource", "RateFunctionSource"]
