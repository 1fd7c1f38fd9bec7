"""Exchange rate commands."""

import click

from tabsplit.cli.error_handling import handle_domain_error
from tabsplit.cli.services import Services, run_with_services
from tabsplit.domain.entities import ExchangeRatePair
from tabsplit.domain.exchange_rate import RateState, classify
from tabsplit.domain.money import format_rate
from tabsplit.utils.timestamps import format_timestamp


def _parse_pair(value: str) -> ExchangeRatePair:
    base, sep, quote = value.partition(":")
    if not sep or not base.strip() or not quote.strip():
        raise click.BadParameter(f"'{value}' is not a BASE:QUOTE pair")
    return ExchangeRatePair(base.strip().upper(), quote.strip().upper())


@click.command("rate")
@click.argument("base")
@click.argument("quote")
@click.pass_context
def rate_command(ctx, base: str, quote: str) -> None:
    """Show the exchange rate from BASE to QUOTE currency.

    Uses a cached rate younger than 12 hours, otherwise fetches a new one.
    If the rate service is down the last known rate is shown instead.

    Examples:
        tabsplit rate USD EUR
    """

    async def lookup(services: Services):
        cache = services.rate_cache
        result = await cache.require_exchange_rate(base, quote)
        return result, classify(result, cache.clock(), cache.freshness_window) == RateState.STALE

    try:
        result, stale = run_with_services(ctx.obj, lookup)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(
        f"1 {result.base_currency_code} = {format_rate(result.rate_scaled)} {result.quote_currency_code}"
    )
    click.echo(f"Fetched at {format_timestamp(result.fetched_at)}{' (stale)' if stale else ''}")


@click.command("prefetch")
@click.argument("pairs", nargs=-1)
@click.pass_context
def prefetch_command(ctx, pairs) -> None:
    """Warm the rate cache for currency pairs.

    Without arguments, every pair already used by saved expenses is
    prefetched.

    Examples:
        tabsplit prefetch USD:EUR GBP:EUR
        tabsplit prefetch
    """
    requested = [_parse_pair(pair) for pair in pairs]

    async def warm(services: Services):
        if requested:
            task = services.rate_cache.prefetch_exchange_rates(requested)
        else:
            task = await services.expenses.prefetch_known_rates()
        if task is None:
            return {}
        return await task

    try:
        warmed = run_with_services(ctx.obj, warm)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if not warmed:
        click.echo("No currency pairs to prefetch.")
        return
    for key, result in warmed.items():
        if result is None:
            click.echo(f"{key}: unavailable")
        else:
            click.echo(f"{key}: {format_rate(result.rate_scaled)} (fetched {format_timestamp(result.fetched_at)})")


def register_commands(cli: click.Group) -> None:
    """Register rate commands with main CLI."""
    cli.add_command(rate_command)
    cli.add_command(prefetch_command)
