"""Split preview command."""

import click

from tabsplit.cli.error_handling import handle_domain_error
from tabsplit.domain.entities import SplitMethod
from tabsplit.domain.money import format_scaled
from tabsplit.domain.split import allocate_shares
from tabsplit.utils.amount_parser import parse_amount, parse_scaled_amount

SPLIT_METHODS = [method.value for method in SplitMethod]


@click.command("split")
@click.argument("total")
@click.option("--member", "-m", "members", multiple=True, required=True, help="Participant (repeat, in order)")
@click.option("--method", type=click.Choice(SPLIT_METHODS), default="equal", help="Split method")
@click.option("--percent", "percents", multiple=True, help="Percentage per participant (percentage split)")
@click.option("--amount", "amounts", multiple=True, help="Amount per participant (exact split)")
@click.option("--normalize", is_flag=True, help="Rescale exact amounts that do not add up to the total")
@click.pass_context
def split_command(ctx, total: str, members, method: str, percents, amounts, normalize: bool) -> None:
    """Preview how a total is split between participants.

    Nothing is saved. Remainder cents go to the first participants.

    Examples:
        tabsplit split 100 -m alice -m bob -m carol
        tabsplit split 50 -m alice -m bob --method percentage --percent 70 --percent 30
        tabsplit split 10 -m alice -m bob --method exact --amount 4 --amount 5 --normalize
    """
    try:
        total_scaled = parse_scaled_amount(total)
        allocation = allocate_shares(
            method,
            total_scaled,
            members,
            percentages=[parse_amount(p) for p in percents] if percents else None,
            exact_amounts=[parse_amount(a) for a in amounts] if amounts else None,
            normalize=normalize,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    width = max(len(member) for member in members)
    for member_id, share in allocation:
        click.echo(f"{member_id:<{width}}  {format_scaled(share):>12}")
    click.echo(f"{'Total':<{width}}  {format_scaled(total_scaled):>12}")


def register_commands(cli: click.Group) -> None:
    """Register split command with main CLI."""
    cli.add_command(split_command)
