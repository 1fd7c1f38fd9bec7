"""Tests for the command line interface."""

import sqlite3
from contextlib import closing

from tabsplit.cli.main import cli


def invoke(cli_runner, cli_env, cli_source, *args):
    return cli_runner.invoke(cli, [*cli_env, *args], obj={"rate_source": cli_source})


def test_help(cli_runner):
    """Help needs no storage."""
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Shared expenses" in result.output


class TestSplitCommand:
    """Tests for the split preview."""

    def test_equal_split(self, cli_runner):
        result = cli_runner.invoke(cli, ["split", "10", "-m", "alice", "-m", "bob", "-m", "carol"])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].split() == ["alice", "3.33"]
        assert lines[-1].split() == ["Total", "10.00"]

    def test_percentage_split(self, cli_runner):
        result = cli_runner.invoke(
            cli,
            ["split", "50", "-m", "alice", "-m", "bob", "--method", "percentage", "--percent", "70", "--percent", "30"],
        )

        assert result.exit_code == 0
        assert "35.00" in result.output
        assert "15.00" in result.output

    def test_exact_mismatch_suggests_normalize(self, cli_runner):
        result = cli_runner.invoke(
            cli,
            ["split", "10", "-m", "alice", "-m", "bob", "--method", "exact", "--amount", "4", "--amount", "5"],
        )

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "normalize" in result.output

    def test_exact_normalized(self, cli_runner):
        result = cli_runner.invoke(
            cli,
            ["split", "10", "-m", "a", "-m", "b", "--method", "exact", "--amount", "4", "--amount", "5", "--normalize"],
        )

        assert result.exit_code == 0
        assert "4.44" in result.output
        assert "5.56" in result.output

    def test_invalid_total(self, cli_runner):
        result = cli_runner.invoke(cli, ["split", "ten", "-m", "alice"])

        assert result.exit_code == 1
        assert "Invalid amount" in result.output


class TestRateCommands:
    """Tests for rate lookups."""

    def test_rate(self, cli_runner, cli_env, cli_source, tmp_path):
        result = invoke(cli_runner, cli_env, cli_source, "rate", "usd", "eur")

        assert result.exit_code == 0
        assert "1 USD = 0.9215 EUR" in result.output
        assert "stale" not in result.output
        with closing(sqlite3.connect(tmp_path / "rate_cache.db")) as conn:
            keys = [row[0] for row in conn.execute("SELECT key FROM local_items")]
        assert keys == ["exchange_rate:v1:USD:EUR"]

    def test_rate_served_from_cache_across_runs(self, cli_runner, cli_env, cli_source):
        invoke(cli_runner, cli_env, cli_source, "rate", "USD", "EUR")
        cli_source.fail = True

        result = invoke(cli_runner, cli_env, cli_source, "rate", "USD", "EUR")

        assert result.exit_code == 0
        assert "0.9215" in result.output
        assert len(cli_source.calls) == 1

    def test_rate_unavailable(self, cli_runner, cli_env, cli_source):
        cli_source.fail = True

        result = invoke(cli_runner, cli_env, cli_source, "rate", "USD", "EUR")

        assert result.exit_code == 1
        assert "No exchange rate available for USD to EUR" in result.output
        assert "tabsplit prefetch USD:EUR" in result.output

    def test_prefetch_pairs(self, cli_runner, cli_env, cli_source):
        result = invoke(cli_runner, cli_env, cli_source, "prefetch", "USD:EUR", "usd:eur", "GBP:EUR")

        assert result.exit_code == 0
        assert "USD:EUR: 0.9215" in result.output
        assert "GBP:EUR: 1.1700" in result.output
        assert len(cli_source.calls) == 2

    def test_prefetch_bad_pair(self, cli_runner, cli_env, cli_source):
        result = invoke(cli_runner, cli_env, cli_source, "prefetch", "USDEUR")

        assert result.exit_code == 2
        assert "BASE:QUOTE" in result.output

    def test_prefetch_without_expenses(self, cli_runner, cli_env, cli_source):
        result = invoke(cli_runner, cli_env, cli_source, "prefetch")

        assert result.exit_code == 0
        assert "No currency pairs" in result.output


def add_dinner(cli_runner, cli_env, cli_source, *extra):
    result = invoke(
        cli_runner,
        cli_env,
        cli_source,
        "expense",
        "add",
        "--group",
        "trip",
        "--payer",
        "alice",
        "-m",
        "alice",
        "-m",
        "bob",
        "-m",
        "carol",
        "--amount",
        "10",
        "--currency",
        "USD",
        "--main-currency",
        "EUR",
        "--description",
        "Dinner",
        "--date",
        "2025-03-01",
        *extra,
    )
    assert result.exit_code == 0, result.output
    return result.output.splitlines()[0].split()[-1], result


class TestExpenseCommands:
    """Tests for recording and editing expenses."""

    def test_add(self, cli_runner, cli_env, cli_source):
        _, result = add_dinner(cli_runner, cli_env, cli_source)

        assert "10.00 USD = 9.22 EUR (rate 0.9215), paid by alice" in result.output
        assert "alice: 3.33 USD = 3.07 EUR" in result.output

    def test_add_rate_unavailable(self, cli_runner, cli_env, cli_source):
        cli_source.fail = True

        result = invoke(
            cli_runner,
            cli_env,
            cli_source,
            "expense",
            "add",
            "--group",
            "trip",
            "--payer",
            "alice",
            "-m",
            "alice",
            "--amount",
            "10",
            "--currency",
            "USD",
            "--main-currency",
            "EUR",
        )

        assert result.exit_code == 1
        assert "try again" in result.output
        assert "Retry with 'tabsplit prefetch USD:EUR'" in result.output

    def test_edit_keeps_rate(self, cli_runner, cli_env, cli_source):
        expense_id, _ = add_dinner(cli_runner, cli_env, cli_source)
        cli_source.fail = True

        result = invoke(cli_runner, cli_env, cli_source, "expense", "edit", expense_id, "--amount", "20")

        assert result.exit_code == 0, result.output
        assert "20.00 USD = 18.43 EUR (rate 0.9215)" in result.output

    def test_edit_currency_fetches_new_rate(self, cli_runner, cli_env, cli_source):
        expense_id, _ = add_dinner(cli_runner, cli_env, cli_source)

        result = invoke(cli_runner, cli_env, cli_source, "expense", "edit", expense_id, "--currency", "GBP")

        assert result.exit_code == 0, result.output
        assert "(rate 1.1700)" in result.output
        assert cli_source.calls[-1] == ("GBP", "EUR")

    def test_edit_exact_split_keeps_shares(self, cli_runner, cli_env, cli_source):
        expense_id, _ = add_dinner(
            cli_runner, cli_env, cli_source, "--method", "exact", "--share", "5", "--share", "3", "--share", "2"
        )

        result = invoke(cli_runner, cli_env, cli_source, "expense", "edit", expense_id, "--description", "Late dinner")

        assert result.exit_code == 0, result.output
        assert "bob: 3.00 USD" in result.output

    def test_edit_percentage_split_keeps_percentages(self, cli_runner, cli_env, cli_source):
        expense_id, _ = add_dinner(
            cli_runner,
            cli_env,
            cli_source,
            "--method",
            "percentage",
            "--percent",
            "50",
            "--percent",
            "30",
            "--percent",
            "20",
        )

        result = invoke(cli_runner, cli_env, cli_source, "expense", "edit", expense_id, "--amount", "20")

        assert result.exit_code == 0, result.output
        assert "alice: 10.00 USD" in result.output
        assert "bob: 6.00 USD" in result.output
        assert "carol: 4.00 USD" in result.output

    def test_edit_missing(self, cli_runner, cli_env, cli_source):
        result = invoke(cli_runner, cli_env, cli_source, "expense", "edit", "nope", "--amount", "5")

        assert result.exit_code == 1
        assert "Expense nope not found" in result.output

    def test_transfer_and_list(self, cli_runner, cli_env, cli_source):
        add_dinner(cli_runner, cli_env, cli_source)
        transfer = invoke(
            cli_runner,
            cli_env,
            cli_source,
            "expense",
            "transfer",
            "--group",
            "trip",
            "--from",
            "bob",
            "--to",
            "alice",
            "--amount",
            "3.07",
            "--currency",
            "EUR",
            "--main-currency",
            "EUR",
            "--date",
            "2025-03-02",
        )
        assert transfer.exit_code == 0, transfer.output
        assert "bob -> alice" in transfer.output

        result = invoke(cli_runner, cli_env, cli_source, "expense", "list", "--group", "trip")

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert len(lines) == 2
        assert "expense" in lines[0] and "Dinner" in lines[0]
        assert "transfer" in lines[1]

    def test_list_empty(self, cli_runner, cli_env, cli_source):
        result = invoke(cli_runner, cli_env, cli_source, "expense", "list", "--group", "trip")

        assert result.exit_code == 0
        assert "No expenses found." in result.output


class TestSettleCommand:
    """Tests for settling up."""

    def test_settle(self, cli_runner, cli_env, cli_source):
        add_dinner(cli_runner, cli_env, cli_source)

        result = invoke(cli_runner, cli_env, cli_source, "settle", "trip", "-m", "alice", "-m", "bob", "-m", "carol", "-m", "dave")

        assert result.exit_code == 0, result.output
        assert "bob pays alice 3.07 EUR" in result.output
        assert "carol pays alice 3.07 EUR" in result.output
        assert "dave" in result.output

    def test_settle_pairwise(self, cli_runner, cli_env, cli_source):
        add_dinner(cli_runner, cli_env, cli_source)

        result = invoke(cli_runner, cli_env, cli_source, "settle", "trip", "--pairwise")

        assert result.exit_code == 0
        assert "bob pays alice" in result.output

    def test_settle_empty_group(self, cli_runner, cli_env, cli_source):
        result = invoke(cli_runner, cli_env, cli_source, "settle", "trip")

        assert result.exit_code == 0
        assert "No expenses found." in result.output
