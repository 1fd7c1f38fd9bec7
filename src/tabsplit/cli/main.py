"""Main CLI entry point."""

import logging

import click

# Import and register all commands at module level
from tabsplit.cli.commands import expense, rate, settle, split

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides TABSPLIT_DB_PATH environment variable)",
    envvar="TABSPLIT_DB_PATH",
)
@click.option(
    "--cache-path",
    type=click.Path(),
    help="Path to the local rate cache (overrides TABSPLIT_CACHE_PATH environment variable)",
    envvar="TABSPLIT_CACHE_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Log cache and rate source activity")
@click.pass_context
def cli(ctx, db_path: str | None, cache_path: str | None, verbose: bool):
    """Tabsplit - Shared expenses in multiple currencies.

    Split group expenses exactly, convert them into the group's main currency
    with a snapshotted exchange rate, and work out who owes whom.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)

    # Storage and the rate source are created per command inside its event loop
    ctx.obj.setdefault("db_path", db_path)
    ctx.obj.setdefault("cache_path", cache_path)


# Register all commands
split.register_commands(cli)
rate.register_commands(cli)
expense.register_commands(cli)
settle.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
