"""Group balances and settle-up suggestions.

All amounts are scaled integers in the group's main currency. A positive
balance means the member is owed money.
"""

from typing import Iterable, Sequence

from tabsplit.domain.entities import ExpenseRecord, Settlement


def _member_order(records: Sequence[ExpenseRecord], member_ids: Iterable[str]) -> list[str]:
    """Known members first, then anyone only seen in records."""
    order = list(dict.fromkeys(member_ids))
    seen = set(order)
    for record in records:
        for member_id in [record.payer_member_id, *(share.member_id for share in record.shares)]:
            if member_id not in seen:
                seen.add(member_id)
                order.append(member_id)
    return order


def compute_balances(records: Iterable[ExpenseRecord], member_ids: Iterable[str]) -> dict[str, int]:
    """Compute each member's net balance.

    The payer is credited the converted total and every share debits its
    member. Balances always sum to zero.

    Args:
        records: Expenses and transfers of one group
        member_ids: Group members (listed members get a balance even if idle)

    Returns:
        Mapping of member ID to scaled balance, in member order
    """
    records = list(records)
    balances = {member_id: 0 for member_id in _member_order(records, member_ids)}
    for record in records:
        balances[record.payer_member_id] += record.total_in_main_scaled
        for share in record.shares:
            balances[share.member_id] -= share.share_in_main_scaled
    return balances


def compute_settlements(
    records: Iterable[ExpenseRecord], member_ids: Iterable[str]
) -> list[Settlement]:
    """Suggest the payments that settle every balance.

    Debtors and creditors are matched greedily in member order, which needs
    at most (members - 1) payments.
    """
    balances = compute_balances(records, member_ids)
    debtors = [[member_id, -balance] for member_id, balance in balances.items() if balance < 0]
    creditors = [[member_id, balance] for member_id, balance in balances.items() if balance > 0]

    settlements = []
    debtor_idx = creditor_idx = 0
    while debtor_idx < len(debtors) and creditor_idx < len(creditors):
        debtor = debtors[debtor_idx]
        creditor = creditors[creditor_idx]
        amount = min(debtor[1], creditor[1])
        settlements.append(Settlement(debtor[0], creditor[0], amount))
        debtor[1] -= amount
        creditor[1] -= amount
        if debtor[1] == 0:
            debtor_idx += 1
        if creditor[1] == 0:
            creditor_idx += 1
    return settlements


def compute_pairwise_settlements(
    records: Iterable[ExpenseRecord], member_ids: Iterable[str]
) -> list[Settlement]:
    """List who owes whom without simplifying across members.

    Each share is a debt from its member to the payer; mutual debts between
    two members are netted.
    """
    records = list(records)
    order = _member_order(records, member_ids)
    owed: dict[tuple[str, str], int] = {}
    for record in records:
        for share in record.shares:
            if share.member_id == record.payer_member_id:
                continue
            key = (share.member_id, record.payer_member_id)
            owed[key] = owed.get(key, 0) + share.share_in_main_scaled

    settlements = []
    for debtor in order:
        for creditor in order:
            if debtor == creditor:
                continue
            net = owed.get((debtor, creditor), 0) - owed.get((creditor, debtor), 0)
            if net > 0:
                settlements.append(Settlement(debtor, creditor, net))
    return settlements
