"""Settle-up command."""

import click

from tabsplit.cli.error_handling import handle_domain_error
from tabsplit.cli.services import Services, run_with_services
from tabsplit.domain.money import format_scaled
from tabsplit.domain.settlement import (
    compute_balances,
    compute_pairwise_settlements,
    compute_settlements,
)


@click.command("settle")
@click.argument("group_id")
@click.option("--member", "-m", "members", multiple=True, help="Group member (repeat; members without expenses show 0)")
@click.option("--pairwise", is_flag=True, help="Show debts per pair instead of the simplified plan")
@click.pass_context
def settle_command(ctx, group_id: str, members, pairwise: bool) -> None:
    """Show balances and the payments that settle a group.

    Amounts are in the group's main currency.

    Examples:
        tabsplit settle trip -m alice -m bob -m carol
        tabsplit settle trip --pairwise
    """

    async def fetch(services: Services):
        return await services.expenses.list_expenses(group_id)

    try:
        records = run_with_services(ctx.obj, fetch)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if not records:
        click.echo("No expenses found.")
        return

    currencies = sorted({record.main_currency_code for record in records})
    if len(currencies) > 1:
        click.echo(f"Error: Group uses several main currencies: {', '.join(currencies)}", err=True)
        ctx.exit(1)
    currency = currencies[0]

    balances = compute_balances(records, members)
    width = max(len(member_id) for member_id in balances)
    click.echo("Balances:")
    for member_id, balance in balances.items():
        click.echo(f"  {member_id:<{width}}  {format_scaled(balance):>12} {currency}")

    if pairwise:
        settlements = compute_pairwise_settlements(records, members)
    else:
        settlements = compute_settlements(records, members)

    click.echo("Settlements:")
    if not settlements:
        click.echo("  All settled.")
    for settlement in settlements:
        click.echo(
            f"  {settlement.from_member_id} pays {settlement.to_member_id} "
            f"{format_scaled(settlement.amount_scaled)} {currency}"
        )


def register_commands(cli: click.Group) -> None:
    """Register settle command with main CLI."""
    cli.add_command(settle_command)
