"""HTTP exchange-rate sources built on httpx."""

import json
import logging
from datetime import datetime, UTC
from decimal import Decimal
from typing import Any, Callable, Optional

import httpx

from tabsplit.domain.entities import ExchangeRateQuote
from tabsplit.domain.errors import RateSourceError
from tabsplit.sources.base import RateSource, decimal_rate_to_scaled, quote_from_payload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
EXCHANGE_RATE_API_BASE = "https://api.exchangerate-api.com/v4/latest"


class _HttpRateSource(RateSource):
    """Shared client handling for HTTP sources.

    A client passed in by the caller is never closed by the source.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send(self, request: httpx.Request) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            RateSourceError: On transport errors, timeouts, non-2xx statuses
                or a body that is not JSON
        """
        try:
            response = await self._get_client().send(request)
        except httpx.TimeoutException as e:
            raise RateSourceError(f"Rate source timed out: {request.url}") from e
        except httpx.HTTPError as e:
            raise RateSourceError(f"Rate source request failed: {e}") from e

        if response.is_error:
            raise RateSourceError(f"Rate source returned {response.status_code} for {request.url}")

        try:
            return json.loads(response.text, parse_float=Decimal)
        except ValueError as e:
            raise RateSourceError(f"Rate source returned invalid JSON: {e}") from e


class RateFunctionSource(_HttpRateSource):
    """Backend rate function returning ``{baseCurrencyCode, quoteCurrencyCode, rateScaled, fetchedAt}``."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self.url = url
        self.token = token

    async def fetch_rate(self, base_currency: str, quote_currency: str) -> ExchangeRateQuote:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        request = self._get_client().build_request(
            "POST",
            self.url,
            json={"baseCurrency": base_currency, "quoteCurrency": quote_currency},
            headers=headers,
            timeout=self.timeout,
        )
        payload = await self._send(request)
        return quote_from_payload(payload, base_currency, quote_currency)


class ExchangeRateApiSource(_HttpRateSource):
    """Public exchangerate-api style endpoint: ``GET {api_base}/{BASE}`` returning ``{"rates": {...}}``."""

    def __init__(
        self,
        api_base: str = EXCHANGE_RATE_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self.api_base = api_base.rstrip("/")
        self.clock = clock or (lambda: datetime.now(UTC))

    async def fetch_rate(self, base_currency: str, quote_currency: str) -> ExchangeRateQuote:
        request = self._get_client().build_request(
            "GET", f"{self.api_base}/{base_currency}", timeout=self.timeout
        )
        data = await self._send(request)

        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict) or quote_currency not in rates:
            logger.debug("No %s rate in response for base %s", quote_currency, base_currency)
            raise RateSourceError(f"No rate found for {base_currency} to {quote_currency}")

        return ExchangeRateQuote(
            base_currency_code=base_currency,
            quote_currency_code=quote_currency,
            rate_scaled=decimal_rate_to_scaled(rates[quote_currency], base_currency, quote_currency),
            fetched_at=self.clock(),
        )
