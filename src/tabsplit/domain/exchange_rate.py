"""Exchange-rate cache.

Answers "what is the rate from A to B right now" from three tiers: an
in-process dict, a local persistent store and a durable shared store, and
only then the live rate source. Per currency pair the decision is:

``SAME_CURRENCY``
    A == B. Rate 1.0, nothing is consulted.
``FRESH``
    A tier holds a quote at most ``freshness_window`` old. It is returned.
``STALE`` / ``MISSING``
    One resolution per pair runs at a time; concurrent callers join it. The
    live source is queried and its quote is written to every tier. If the
    source fails, the newest stale quote is returned instead, or None when
    no tier has ever seen the pair.

Store failures are never fatal: read errors count as misses and write errors
are only logged.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, UTC
from enum import Enum
from typing import Callable, Iterable, Optional

from tabsplit.database.base import LocalStore, RateStore
from tabsplit.domain.conversion import same_currency_rate
from tabsplit.domain.entities import ExchangeRatePair, ExchangeRateQuote
from tabsplit.domain.errors import (
    CacheReadFailed,
    CacheWriteFailed,
    RateSourceError,
    RateUnavailable,
)
from tabsplit.sources.base import RateSource
from tabsplit.utils.timestamps import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = timedelta(hours=12)

LOCAL_KEY_PREFIX = "exchange_rate:v1"


class RateState(str, Enum):
    """Cache state of a currency pair."""

    SAME_CURRENCY = "same_currency"
    FRESH = "fresh"
    STALE = "stale"
    MISSING = "missing"


def normalize_currency_code(currency_code: str) -> str:
    """Return the canonical (upper-case) currency code."""
    return currency_code.strip().upper()


def pair_key(base_currency: str, quote_currency: str) -> str:
    """Return the cache key of an ordered pair."""
    return f"{base_currency}:{quote_currency}"


def local_key(key: str) -> str:
    """Return the local-store key for a pair key."""
    return f"{LOCAL_KEY_PREFIX}:{key}"


def classify(
    quote: Optional[ExchangeRateQuote],
    now: datetime,
    window: timedelta = FRESHNESS_WINDOW,
) -> RateState:
    """Classify a cached quote. A quote exactly ``window`` old is still fresh."""
    if quote is None:
        return RateState.MISSING
    if now - quote.fetched_at <= window:
        return RateState.FRESH
    return RateState.STALE


def newest(*quotes: Optional[ExchangeRateQuote]) -> Optional[ExchangeRateQuote]:
    """Return the quote with the latest ``fetched_at`` (first wins on ties)."""
    best = None
    for quote in quotes:
        if quote is not None and (best is None or quote.fetched_at > best.fetched_at):
            best = quote
    return best


def dedupe_pairs(pairs: Iterable[ExchangeRatePair]) -> list[ExchangeRatePair]:
    """Normalize case, drop same-currency pairs and duplicates, keep first-seen order."""
    unique: dict[str, ExchangeRatePair] = {}
    for pair in pairs:
        base = normalize_currency_code(pair.base_currency)
        quote = normalize_currency_code(pair.quote_currency)
        if base == quote:
            continue
        unique.setdefault(pair_key(base, quote), ExchangeRatePair(base, quote))
    return list(unique.values())


def serialize_quote(quote: ExchangeRateQuote) -> str:
    """Serialize a quote for the local store (rate as a string, never a float)."""
    return json.dumps(
        {
            "baseCurrencyCode": quote.base_currency_code,
            "quoteCurrencyCode": quote.quote_currency_code,
            "rateScaled": str(quote.rate_scaled),
            "fetchedAt": format_timestamp(quote.fetched_at),
        }
    )


def deserialize_quote(raw: str, expected_key: Optional[str] = None) -> ExchangeRateQuote:
    """Parse a quote written by ``serialize_quote``.

    Args:
        raw: Stored value
        expected_key: Pair key the value was stored under, checked when given

    Raises:
        ValueError: If the value is not a well-formed serialized quote or
            belongs to another pair
    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("serialized quote is not an object")
    try:
        base = data["baseCurrencyCode"]
        quote = data["quoteCurrencyCode"]
        rate = data["rateScaled"]
        fetched_at = data["fetchedAt"]
    except KeyError as e:
        raise ValueError(f"serialized quote is missing {e}") from e
    if not all(isinstance(value, str) for value in (base, quote, rate, fetched_at)):
        raise ValueError("serialized quote fields must be strings")
    if expected_key is not None and pair_key(base, quote) != expected_key:
        raise ValueError(f"serialized quote is for {pair_key(base, quote)}, not {expected_key}")
    rate_scaled = int(rate)
    if rate_scaled <= 0:
        raise ValueError(f"serialized rate must be positive, got {rate_scaled}")
    return ExchangeRateQuote(
        base_currency_code=base,
        quote_currency_code=quote,
        rate_scaled=rate_scaled,
        fetched_at=parse_timestamp(fetched_at),
    )


class ExchangeRateCache:
    """Multi-tier exchange-rate cache with inflight deduplication.

    Construct one per process and pass it to every call site that needs
    rates; the in-process tier and the inflight registry live on the instance.
    """

    def __init__(
        self,
        source: RateSource,
        durable_store: Optional[RateStore] = None,
        local_store: Optional[LocalStore] = None,
        freshness_window: timedelta = FRESHNESS_WINDOW,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize exchange-rate cache.

        Args:
            source: Live rate source
            durable_store: Shared durable cache (optional)
            local_store: Local persistent key-value store (optional)
            freshness_window: Maximum age of a quote served without a live fetch
            clock: Returns the current UTC time; injectable for tests
        """
        self.source = source
        self.durable_store = durable_store
        self.local_store = local_store
        self.freshness_window = freshness_window
        self.clock = clock or (lambda: datetime.now(UTC))
        self._memory: dict[str, ExchangeRateQuote] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        self._background: set[asyncio.Task] = set()

    def reset(self) -> None:
        """Forget the in-process tier and the inflight registry."""
        self._memory.clear()
        self._inflight.clear()

    @property
    def inflight_pairs(self) -> list[str]:
        """Pair keys with a resolution currently in flight."""
        return sorted(self._inflight)

    def cached_quote(self, base_currency: str, quote_currency: str) -> Optional[ExchangeRateQuote]:
        """Return the in-process quote for a pair, fresh or not."""
        key = pair_key(normalize_currency_code(base_currency), normalize_currency_code(quote_currency))
        return self._memory.get(key)

    def state_of(self, base_currency: str, quote_currency: str) -> RateState:
        """Return the in-process cache state of a pair."""
        base = normalize_currency_code(base_currency)
        quote = normalize_currency_code(quote_currency)
        if base == quote:
            return RateState.SAME_CURRENCY
        return classify(self._memory.get(pair_key(base, quote)), self.clock(), self.freshness_window)

    async def get_exchange_rate(
        self, base_currency: str, quote_currency: str
    ) -> Optional[ExchangeRateQuote]:
        """Get the rate from base to quote currency.

        Returns:
            A fresh quote, a stale quote when the live source failed, or None
            when no rate is known at all
        """
        base = normalize_currency_code(base_currency)
        quote = normalize_currency_code(quote_currency)
        if base == quote:
            return same_currency_rate(base, self.clock())

        key = pair_key(base, quote)
        cached = self._memory.get(key)
        if classify(cached, self.clock(), self.freshness_window) == RateState.FRESH:
            return cached

        # No await between the lookup and the registration below.
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._run_inflight(key, base, quote))
            self._inflight[key] = task
        return await asyncio.shield(task)

    async def require_exchange_rate(self, base_currency: str, quote_currency: str) -> ExchangeRateQuote:
        """Get the rate from base to quote currency or fail.

        Raises:
            RateUnavailable: If no fresh or stale quote exists for the pair
        """
        rate = await self.get_exchange_rate(base_currency, quote_currency)
        if rate is None:
            raise RateUnavailable(
                normalize_currency_code(base_currency), normalize_currency_code(quote_currency)
            )
        return rate

    async def resolve_rate_for_edit(
        self,
        original_currency: str,
        edited_currency: str,
        quote_currency: str,
        original_rate_scaled: int,
        original_fetched_at: Optional[datetime] = None,
    ) -> Optional[ExchangeRateQuote]:
        """Pick the rate for an edited transaction.

        An unchanged currency keeps the stored snapshot rate (no lookup at
        all); a changed currency gets a new rate from the cache.
        """
        original = normalize_currency_code(original_currency)
        edited = normalize_currency_code(edited_currency)
        if original == edited:
            return ExchangeRateQuote(
                base_currency_code=original,
                quote_currency_code=normalize_currency_code(quote_currency),
                rate_scaled=original_rate_scaled,
                fetched_at=original_fetched_at if original_fetched_at is not None else self.clock(),
            )
        return await self.get_exchange_rate(edited, quote_currency)

    def prefetch_exchange_rates(self, pairs: Iterable[ExchangeRatePair]) -> asyncio.Task:
        """Start resolving every distinct pair in the background.

        Must be called from a running event loop. The caller is not blocked;
        the returned task resolves to ``{pair_key: quote or None}`` for callers
        that want to wait.
        """
        unique_pairs = dedupe_pairs(pairs)
        task = asyncio.get_running_loop().create_task(self._prefetch(unique_pairs))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _prefetch(
        self, pairs: list[ExchangeRatePair]
    ) -> dict[str, Optional[ExchangeRateQuote]]:
        results = await asyncio.gather(
            *(self.get_exchange_rate(pair.base_currency, pair.quote_currency) for pair in pairs),
            return_exceptions=True,
        )
        warmed: dict[str, Optional[ExchangeRateQuote]] = {}
        for pair, result in zip(pairs, results):
            key = pair_key(pair.base_currency, pair.quote_currency)
            if isinstance(result, BaseException):
                logger.error("Failed to prefetch exchange rate %s: %s", key, result)
                warmed[key] = None
            else:
                if result is None:
                    logger.warning("No exchange rate available for %s after prefetch", key)
                warmed[key] = result
        return warmed

    async def _run_inflight(self, key: str, base: str, quote: str) -> Optional[ExchangeRateQuote]:
        try:
            return await self._resolve(key, base, quote)
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

    async def _resolve(self, key: str, base: str, quote: str) -> Optional[ExchangeRateQuote]:
        now = self.clock()
        best = newest(self._memory.get(key), await self._read_local(key))
        if classify(best, now, self.freshness_window) == RateState.FRESH:
            self._memory[key] = best
            return best

        durable = await self._read_durable(base, quote)
        if durable is not None and newest(best, durable) is durable:
            best = durable
            if classify(durable, now, self.freshness_window) == RateState.FRESH:
                self._memory[key] = durable
                await self._write_local(key, durable)
                return durable

        try:
            fetched = await self.source.fetch_rate(base, quote)
        except RateSourceError as e:
            if best is None:
                logger.error("Failed to fetch exchange rate %s and no cached rate exists: %s", key, e)
                return None
            logger.warning(
                "Failed to fetch exchange rate %s, serving cached rate from %s: %s",
                key,
                format_timestamp(best.fetched_at),
                e,
            )
            self._memory[key] = best
            return best

        await self._write_durable(fetched)
        await self._write_local(key, fetched)
        self._memory[key] = fetched
        return fetched

    async def _read_local(self, key: str) -> Optional[ExchangeRateQuote]:
        if self.local_store is None:
            return None
        try:
            raw = await self.local_store.get_item(local_key(key))
        except CacheReadFailed as e:
            logger.warning("Failed to read local exchange rate cache for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return deserialize_quote(raw, expected_key=key)
        except ValueError as e:
            logger.warning("Ignoring malformed local exchange rate entry for %s: %s", key, e)
            return None

    async def _read_durable(self, base: str, quote: str) -> Optional[ExchangeRateQuote]:
        if self.durable_store is None:
            return None
        try:
            return await self.durable_store.get_rate(base, quote)
        except CacheReadFailed as e:
            logger.warning("Failed to read durable exchange rate cache for %s:%s: %s", base, quote, e)
            return None

    async def _write_local(self, key: str, quote: ExchangeRateQuote) -> None:
        if self.local_store is None:
            return
        try:
            await self.local_store.set_item(local_key(key), serialize_quote(quote))
        except CacheWriteFailed as e:
            logger.warning("Failed to persist exchange rate %s locally: %s", key, e)

    async def _write_durable(self, quote: ExchangeRateQuote) -> None:
        if self.durable_store is None:
            return
        try:
            await self.durable_store.upsert_rate(quote)
        except CacheWriteFailed as e:
            logger.warning(
                "Failed to cache exchange rate %s:%s: %s",
                quote.base_currency_code,
                quote.quote_currency_code,
                e,
            )
