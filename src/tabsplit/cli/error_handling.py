"""CLI error handling helpers."""

import click

from tabsplit.domain.errors import DomainError, RateUnavailable


def rate_retry_hint(error: RateUnavailable) -> str:
    """Tell the user how to retry once the rate service is reachable."""
    pair = f"{error.base_currency}:{error.quote_currency}"
    return f"Retry with 'tabsplit prefetch {pair}', then run the command again."


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure.

    A missing exchange rate is retryable, so it also gets a retry hint.
    """
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, RateUnavailable):
        click.echo(rate_retry_hint(error), err=True)
    ctx.exit(1)
