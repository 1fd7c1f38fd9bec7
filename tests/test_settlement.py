"""Tests for balances and settlements."""

from datetime import datetime, UTC

from tabsplit.domain.entities import (
    ExpenseRecord,
    PaymentType,
    Settlement,
    Share,
    SplitMethod,
)
from tabsplit.domain.settlement import (
    compute_balances,
    compute_pairwise_settlements,
    compute_settlements,
)

MEMBERS = ["m1", "m2", "m3"]


def record(payer, total, shares, payment_type=PaymentType.EXPENSE):
    return ExpenseRecord(
        group_id="group-1",
        description=None,
        date_time=datetime(2025, 3, 1, tzinfo=UTC),
        currency_code="EUR",
        main_currency_code="EUR",
        total_amount_scaled=total,
        exchange_rate_to_main_scaled=10000,
        rate_fetched_at=datetime(2025, 3, 1, tzinfo=UTC),
        total_in_main_scaled=total,
        payer_member_id=payer,
        split_method=SplitMethod.EQUAL,
        payment_type=payment_type,
        shares=tuple(Share(member, amount, amount) for member, amount in shares),
    )


class TestComputeBalances:
    """Tests for member balances."""

    def test_no_expenses(self):
        assert compute_balances([], MEMBERS) == {"m1": 0, "m2": 0, "m3": 0}

    def test_single_expense(self):
        expense = record("m1", 100000, [("m1", 33334), ("m2", 33333), ("m3", 33333)])
        assert compute_balances([expense], MEMBERS) == {"m1": 66666, "m2": -33333, "m3": -33333}

    def test_multiple_expenses(self):
        expenses = [
            record("m1", 90000, [("m1", 30000), ("m2", 30000), ("m3", 30000)]),
            record("m2", 60000, [("m1", 20000), ("m2", 20000), ("m3", 20000)]),
        ]
        assert compute_balances(expenses, MEMBERS) == {"m1": 40000, "m2": 10000, "m3": -50000}

    def test_balances_sum_to_zero(self):
        expenses = [
            record("m1", 100000, [("m1", 33334), ("m2", 33333), ("m3", 33333)]),
            record("m3", 12345, [("m2", 12345)]),
        ]
        assert sum(compute_balances(expenses, MEMBERS).values()) == 0

    def test_transfer_settles_debt(self):
        expenses = [
            record("m1", 100000, [("m1", 50000), ("m2", 50000)]),
            record("m2", 50000, [("m1", 50000)], payment_type=PaymentType.TRANSFER),
        ]
        assert compute_balances(expenses, ["m1", "m2"]) == {"m1": 0, "m2": 0}

    def test_unknown_members_are_appended(self):
        expense = record("m9", 100, [("m1", 100)])
        assert list(compute_balances([expense], ["m1"])) == ["m1", "m9"]


class TestComputeSettlements:
    """Tests for the simplified settle-up plan."""

    def test_everyone_pays_the_payer(self):
        expense = record("m1", 90000, [("m1", 30000), ("m2", 30000), ("m3", 30000)])
        assert compute_settlements([expense], MEMBERS) == [
            Settlement("m2", "m1", 30000),
            Settlement("m3", "m1", 30000),
        ]

    def test_chain_is_simplified(self):
        # m2 owes m1 and m3 owes m2 the same amount: m3 pays m1 directly.
        expenses = [
            record("m1", 10000, [("m2", 10000)]),
            record("m2", 10000, [("m3", 10000)]),
        ]
        assert compute_settlements(expenses, MEMBERS) == [Settlement("m3", "m1", 10000)]

    def test_settled_group(self):
        assert compute_settlements([], MEMBERS) == []

    def test_settlements_clear_every_balance(self):
        expenses = [
            record("m1", 100000, [("m1", 33334), ("m2", 33333), ("m3", 33333)]),
            record("m2", 45000, [("m1", 15000), ("m3", 30000)]),
        ]
        balances = compute_balances(expenses, MEMBERS)
        for settlement in compute_settlements(expenses, MEMBERS):
            balances[settlement.from_member_id] += settlement.amount_scaled
            balances[settlement.to_member_id] -= settlement.amount_scaled
        assert set(balances.values()) == {0}


class TestComputePairwiseSettlements:
    """Tests for unsimplified debts."""

    def test_mutual_debts_are_netted(self):
        expenses = [
            record("m1", 30000, [("m2", 30000)]),
            record("m2", 10000, [("m1", 10000)]),
        ]
        assert compute_pairwise_settlements(expenses, MEMBERS) == [Settlement("m2", "m1", 20000)]

    def test_chain_is_not_simplified(self):
        expenses = [
            record("m1", 10000, [("m2", 10000)]),
            record("m2", 10000, [("m3", 10000)]),
        ]
        assert compute_pairwise_settlements(expenses, MEMBERS) == [
            Settlement("m2", "m1", 10000),
            Settlement("m3", "m2", 10000),
        ]

    def test_payer_share_is_not_a_debt(self):
        expense = record("m1", 20000, [("m1", 10000), ("m2", 10000)])
        assert compute_pairwise_settlements([expense], MEMBERS) == [Settlement("m2", "m1", 10000)]

    def test_even_mutual_debts_cancel(self):
        expenses = [
            record("m1", 10000, [("m2", 10000)]),
            record("m2", 10000, [("m1", 10000)]),
        ]
        assert compute_pairwise_settlements(expenses, MEMBERS) == []
