"""Live exchange-rate source interface."""

from abc import ABC, abstractmethod
from datetime import datetime, UTC
from decimal import Decimal
from typing import Any, Mapping, Optional

from tabsplit.domain.entities import ExchangeRateQuote
from tabsplit.domain.errors import InvalidAmount, RateSourceError
from tabsplit.domain.money import to_scaled
from tabsplit.utils.timestamps import parse_timestamp


class RateSource(ABC):
    """Source of current exchange rates (usually over the network)."""

    @abstractmethod
    async def fetch_rate(self, base_currency: str, quote_currency: str) -> ExchangeRateQuote:
        """Fetch the current rate for a pair.

        Raises:
            RateSourceError: On network errors, timeouts, non-success
                responses, or responses that do not contain the pair
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the source."""
        pass


def rate_to_scaled(value: Any) -> int:
    """Normalize a scaled rate that may arrive as a string or a number."""
    if isinstance(value, bool) or value is None:
        raise RateSourceError(f"Invalid scaled rate: {value!r}")
    if isinstance(value, (float, Decimal)):
        number = Decimal(repr(value)) if isinstance(value, float) else value
        if not number.is_finite() or number != number.to_integral_value():
            raise RateSourceError(f"Scaled rate must be integral, got {value!r}")
        scaled = int(number)
    else:
        try:
            scaled = int(str(value).strip())
        except ValueError as exc:
            raise RateSourceError(f"Invalid scaled rate: {value!r}") from exc
    if scaled <= 0:
        raise RateSourceError(f"Scaled rate must be positive, got {scaled}")
    return scaled


def quote_from_payload(
    payload: Mapping[str, Any],
    base_currency: str,
    quote_currency: str,
    now: Optional[datetime] = None,
) -> ExchangeRateQuote:
    """Build a quote from a ``{baseCurrencyCode, quoteCurrencyCode, rateScaled, fetchedAt}`` payload.

    The payload must describe the requested pair. A missing ``fetchedAt`` is
    replaced by ``now``.

    Raises:
        RateSourceError: If the payload is malformed or for another pair
    """
    if not isinstance(payload, Mapping):
        raise RateSourceError("Rate payload is not an object")
    if "error" in payload:
        raise RateSourceError(f"Rate source returned an error: {payload['error']}")

    base = str(payload.get("baseCurrencyCode") or "").upper()
    quote = str(payload.get("quoteCurrencyCode") or "").upper()
    if base != base_currency.upper() or quote != quote_currency.upper():
        raise RateSourceError(
            f"Rate payload is for {base or '?'}:{quote or '?'}, "
            f"expected {base_currency.upper()}:{quote_currency.upper()}"
        )

    if "rateScaled" not in payload:
        raise RateSourceError(f"No rate found for {base} to {quote}")
    rate_scaled = rate_to_scaled(payload["rateScaled"])

    fetched_raw = payload.get("fetchedAt")
    if fetched_raw:
        try:
            fetched_at = parse_timestamp(str(fetched_raw))
        except ValueError as exc:
            raise RateSourceError(f"Invalid fetchedAt: {fetched_raw!r}") from exc
    else:
        fetched_at = now if now is not None else datetime.now(UTC)

    return ExchangeRateQuote(
        base_currency_code=base,
        quote_currency_code=quote,
        rate_scaled=rate_scaled,
        fetched_at=fetched_at,
    )


def decimal_rate_to_scaled(value: Any, base_currency: str, quote_currency: str) -> int:
    """Scale a plain decimal rate (e.g. ``0.9215``) to the money scale."""
    if isinstance(value, bool) or value is None:
        raise RateSourceError(f"No rate found for {base_currency} to {quote_currency}")
    try:
        scaled = to_scaled(value)
    except InvalidAmount as exc:
        raise RateSourceError(f"Invalid rate for {base_currency} to {quote_currency}: {value!r}") from exc
    if scaled <= 0:
        raise RateSourceError(f"Rate for {base_currency} to {quote_currency} rounds to zero")
    return scaled
