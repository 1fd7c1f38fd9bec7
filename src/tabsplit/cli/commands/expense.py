"""Expense and transfer commands."""

import click

from tabsplit.cli.error_handling import handle_domain_error
from tabsplit.cli.services import Services, run_with_services
from tabsplit.domain.entities import ExpenseDraft, ExpenseRecord, PaymentType, SplitMethod
from tabsplit.domain.money import format_rate, format_scaled, from_scaled
from tabsplit.domain.split import percentages_from_shares
from tabsplit.utils.amount_parser import parse_amount
from tabsplit.utils.date_parser import parse_expense_datetime

SPLIT_METHODS = [method.value for method in SplitMethod]


def _echo_record(record: ExpenseRecord) -> None:
    converted = record.currency_code != record.main_currency_code
    line = f"{format_scaled(record.total_amount_scaled)} {record.currency_code}"
    if converted:
        line += (
            f" = {format_scaled(record.total_in_main_scaled)} {record.main_currency_code}"
            f" (rate {format_rate(record.exchange_rate_to_main_scaled)})"
        )
    click.echo(f"  {line}, paid by {record.payer_member_id}")
    for share in record.shares:
        share_line = f"{format_scaled(share.share_amount_scaled)} {record.currency_code}"
        if converted:
            share_line += f" = {format_scaled(share.share_in_main_scaled)} {record.main_currency_code}"
        click.echo(f"    {share.member_id}: {share_line}")


@click.group()
def expense_group():
    """Record group expenses and transfers."""
    pass


@expense_group.command("add")
@click.option("--group", "group_id", required=True, help="Group ID")
@click.option("--payer", required=True, help="Member who paid")
@click.option("--member", "-m", "members", multiple=True, required=True, help="Participant (repeat, in order)")
@click.option("--amount", required=True, help="Total amount (e.g., 42.50)")
@click.option("--currency", required=True, help="Currency of the expense (e.g., USD)")
@click.option("--main-currency", required=True, help="Main currency of the group (e.g., EUR)")
@click.option("--method", type=click.Choice(SPLIT_METHODS), default="equal", help="Split method")
@click.option("--percent", "percents", multiple=True, help="Percentage per participant (percentage split)")
@click.option("--share", "shares", multiple=True, help="Amount per participant (exact split)")
@click.option("--normalize", is_flag=True, help="Rescale exact shares that do not add up to the amount")
@click.option("--description", help="Expense description")
@click.option("--date", help="Expense date (YYYY-MM-DD, 'today', 'yesterday')")
@click.pass_context
def add_expense(
    ctx,
    group_id: str,
    payer: str,
    members,
    amount: str,
    currency: str,
    main_currency: str,
    method: str,
    percents,
    shares,
    normalize: bool,
    description: str | None,
    date: str | None,
) -> None:
    """Add an expense split between members.

    The amount is converted into the main currency with one exchange rate
    that is stored with the expense.

    Examples:
        tabsplit expense add --group trip --payer alice -m alice -m bob --amount 30 --currency USD --main-currency EUR
        tabsplit expense add --group trip --payer bob -m alice -m bob --amount 10 --currency EUR \\
            --main-currency EUR --method exact --share 7.5 --share 2.5
    """
    try:
        draft = ExpenseDraft(
            group_id=group_id,
            payer_member_id=payer,
            currency_code=currency,
            main_currency_code=main_currency,
            amount=parse_amount(amount),
            member_ids=list(members),
            split_method=SplitMethod(method),
            percentages=[parse_amount(p) for p in percents] if percents else None,
            exact_amounts=[parse_amount(s) for s in shares] if shares else None,
            normalize=normalize,
            description=description,
            date_time=parse_expense_datetime(date) if date else None,
        )

        async def save(services: Services):
            expense_id = await services.expenses.create_expense(draft)
            return expense_id, await services.expenses.get_expense(expense_id)

        expense_id, record = run_with_services(ctx.obj, save)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Recorded expense {expense_id}")
    _echo_record(record)


@expense_group.command("transfer")
@click.option("--group", "group_id", required=True, help="Group ID")
@click.option("--from", "from_member", required=True, help="Member who sends money")
@click.option("--to", "to_member", required=True, help="Member who receives money")
@click.option("--amount", required=True, help="Amount sent")
@click.option("--currency", required=True, help="Currency of the transfer")
@click.option("--main-currency", required=True, help="Main currency of the group")
@click.option("--description", help="Transfer description")
@click.option("--date", help="Transfer date (YYYY-MM-DD, 'today', 'yesterday')")
@click.pass_context
def add_transfer(
    ctx,
    group_id: str,
    from_member: str,
    to_member: str,
    amount: str,
    currency: str,
    main_currency: str,
    description: str | None,
    date: str | None,
) -> None:
    """Record money sent from one member to another.

    Examples:
        tabsplit expense transfer --group trip --from bob --to alice --amount 15 --currency EUR --main-currency EUR
    """
    try:
        total = parse_amount(amount)
        date_time = parse_expense_datetime(date) if date else None

        async def save(services: Services):
            return await services.expenses.create_transfer(
                group_id,
                from_member,
                to_member,
                total,
                currency,
                main_currency,
                description=description,
                date_time=date_time,
            )

        expense_id = run_with_services(ctx.obj, save)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Recorded transfer {expense_id}: {from_member} -> {to_member}")


@expense_group.command("edit")
@click.argument("expense_id")
@click.option("--payer", help="Member who paid")
@click.option("--member", "-m", "members", multiple=True, help="Participants (replaces all, in order)")
@click.option("--amount", help="Total amount")
@click.option("--currency", help="Currency of the expense")
@click.option("--main-currency", help="Main currency of the group")
@click.option("--method", type=click.Choice(SPLIT_METHODS), help="Split method")
@click.option("--percent", "percents", multiple=True, help="Percentage per participant (percentage split)")
@click.option("--share", "shares", multiple=True, help="Amount per participant (exact split)")
@click.option("--normalize", is_flag=True, help="Rescale exact shares that do not add up to the amount")
@click.option("--description", help="Expense description")
@click.option("--date", help="Expense date")
@click.pass_context
def edit_expense(
    ctx,
    expense_id: str,
    payer: str | None,
    members,
    amount: str | None,
    currency: str | None,
    main_currency: str | None,
    method: str | None,
    percents,
    shares,
    normalize: bool,
    description: str | None,
    date: str | None,
) -> None:
    """Edit an expense.

    Options that are not given keep their current value. When the currency
    stays the same the stored exchange rate is kept; changing it fetches a
    new rate. Shares are always recomputed.

    Examples:
        tabsplit expense edit 3f2a... --amount 45
        tabsplit expense edit 3f2a... --currency GBP
    """
    try:
        new_amount = parse_amount(amount) if amount is not None else None
        percentages = [parse_amount(p) for p in percents] if percents else None
        exact_amounts = [parse_amount(s) for s in shares] if shares else None
        date_time = parse_expense_datetime(date) if date else None

        async def update(services: Services):
            original = await services.expenses.get_expense(expense_id)
            split_method = SplitMethod(method) if method else original.split_method
            member_ids = list(members) if members else [share.member_id for share in original.shares]
            draft_exact = exact_amounts
            draft_percentages = percentages
            # Same members and method: carry the stored split over
            keep_split = not members and split_method == original.split_method
            if keep_split and split_method == SplitMethod.EXACT and draft_exact is None:
                draft_exact = [from_scaled(share.share_amount_scaled) for share in original.shares]
            if keep_split and split_method == SplitMethod.PERCENTAGE and draft_percentages is None:
                draft_percentages = percentages_from_shares(
                    [share.share_amount_scaled for share in original.shares],
                    original.total_amount_scaled,
                )
            draft = ExpenseDraft(
                group_id=original.group_id,
                payer_member_id=payer or original.payer_member_id,
                currency_code=currency or original.currency_code,
                main_currency_code=main_currency or original.main_currency_code,
                amount=new_amount if new_amount is not None else from_scaled(original.total_amount_scaled),
                member_ids=member_ids,
                split_method=split_method,
                percentages=draft_percentages,
                exact_amounts=draft_exact,
                normalize=normalize,
                description=description if description is not None else original.description,
                date_time=date_time,
                payment_type=original.payment_type,
            )
            return await services.expenses.update_expense(expense_id, draft)

        record = run_with_services(ctx.obj, update)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Updated expense {expense_id}")
    _echo_record(record)


@expense_group.command("list")
@click.option("--group", "group_id", required=True, help="Group ID")
@click.option("--verbose", "-v", is_flag=True, help="Show shares of each expense")
@click.pass_context
def list_expenses(ctx, group_id: str, verbose: bool) -> None:
    """List expenses and transfers of a group, oldest first."""

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

    for record in records:
        kind = "transfer" if record.payment_type == PaymentType.TRANSFER else "expense"
        click.echo(
            f"{record.date_time.date().isoformat()}  {record.id}  {kind:<8}  "
            f"{format_scaled(record.total_in_main_scaled):>12} {record.main_currency_code}  "
            f"{record.description or ''}"
        )
        if verbose:
            _echo_record(record)


def register_commands(cli: click.Group) -> None:
    """Register expense commands with main CLI."""
    cli.add_command(expense_group, name="expense")
