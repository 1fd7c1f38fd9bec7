"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class InvalidAmount(ValidationError):
    """Malformed or out-of-range monetary value."""


class SplitValidationError(ValidationError):
    """Split inputs that cannot be allocated without losing or inventing units."""


class InvalidParticipantCount(SplitValidationError):
    """A split was requested for zero participants."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class RateUnavailable(DomainError):
    """No fresh or stale exchange rate could be produced for a pair.

    The financial action in progress must not proceed; the condition is
    retryable once the rate source is reachable again.
    """

    def __init__(self, base_currency: str, quote_currency: str):
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        super().__init__(rate_unavailable(base_currency, quote_currency))


class StoreError(Exception):
    """Base class for cache-tier failures that the rate cache absorbs."""


class CacheReadFailed(StoreError):
    """A cache tier could not be read. Treated as a cache miss."""


class CacheWriteFailed(StoreError):
    """A cache tier could not be written. Logged, never fatal."""


class RateSourceError(Exception):
    """The live rate source failed or returned an unusable response."""


def invalid_amount(value: object, reason: str) -> str:
    """Return message for an amount that cannot be represented."""
    return f"Invalid amount '{value}': {reason}"


def percentages_do_not_sum(total: object) -> str:
    """Return message for percentages outside the 100% tolerance."""
    return f"Percentages must sum to 100%, got {total}"


def exact_amounts_do_not_sum(shares_total: int, expected_total: int) -> str:
    """Return message for exact amounts that do not add up to the total."""
    from tabsplit.domain.money import format_scaled

    return (
        f"Exact amounts sum to {format_scaled(shares_total)} but the total is "
        f"{format_scaled(expected_total)}. Correct the amounts or normalize them."
    )


def length_mismatch(kind: str, got: int, expected: int) -> str:
    """Return message when per-participant inputs do not match participants."""
    return f"Expected {expected} {kind} (one per participant), got {got}"


def rate_unavailable(base_currency: str, quote_currency: str) -> str:
    """Return message for a pair with no usable exchange rate."""
    return (
        f"No exchange rate available for {base_currency} to {quote_currency}. "
        "Please try again when the rate service is reachable."
    )


def expense_not_found(expense_id: str) -> str:
    """Return message for missing expense."""
    return f"Expense {expense_id} not found"
