"""Command line for ``finance_tracker``.

Command handlers (``cmd_*``) hold the logic and return a process exit code;
the Typer commands at the bottom of the module only parse options and
delegate. Every handler follows the same cycle: load the state from the
key-value store, run a command from :mod:`finance_tracker.ledger`, save,
print tab-separated output.

Environment variables are read from a local ``.env`` (``python-dotenv``,
never overriding values already set):

- ``FINANCE_TRACKER_DATABASE_URL``: SQLAlchemy URL of the state store.
- ``FINANCE_TRACKER_LOG_LEVEL``: logging level (default ``INFO``).
"""

from __future__ import annotations

import re
import sys
from collections.abc import Callable
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from . import ledger
from .aggregation import current_month, month_options_around
from .categories import CATEGORIES
from .exchange import BackupError, backup_to_json, export_csv, restore_backup
from .logging_setup import configure_logging, get_logger
from .models import AppState
from .normalizers import CsvImportError, to_decimal
from .store import StateStore

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

_logger = get_logger("finance_tracker.cli")


# ---- Small module-level helpers ---------------------------------------------


def _err(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)


def _money(d: Decimal) -> str:
    return f"{d:.2f}"


def _resolve_month(month: str | None) -> str | None:
    """Default to the current month; ``None`` signals an invalid value."""

    if month is None:
        return current_month()
    m = month.strip()
    return m if _MONTH_RE.match(m) else None


def _save(store: StateStore, state: AppState) -> None:
    # A failed write is reported but not fatal.
    if not store.save(state):
        typer.echo("Warning: changes could not be saved; they apply to this run only.", err=True)


def _mutate(database_url: str | None, fn: Callable[[AppState], AppState]) -> AppState:
    """Load, apply ``fn``, save."""

    store = StateStore(database_url)
    state = fn(store.load())
    _save(store, state)
    return state


def _read_text(path: Path) -> str:
    # utf-8-sig strips the BOM that spreadsheet exports tend to add.
    return path.read_text(encoding="utf-8-sig")


def _write_or_echo(text: str, out: Path | None) -> None:
    if out is None:
        typer.echo(text, nl=False)
    else:
        out.write_text(text, encoding="utf-8")


# ---- Command handlers --------------------------------------------------------


def cmd_import_csv(csv_path: Path, *, database_url: str | None = None) -> int:
    """Import a bank CSV, classify it with the stored rules and save.

    Read and parse failures are reported once on stderr and nothing is saved.
    """

    try:
        text = _read_text(csv_path)
    except FileNotFoundError:
        _err(f"File not found: {csv_path}")
        return 1
    except PermissionError:
        _err(f"Permission denied: {csv_path}")
        return 1
    except (OSError, UnicodeDecodeError) as e:
        _err(f"Failed to read '{csv_path}': {e}")
        return 1

    store = StateStore(database_url)
    before = store.load()
    try:
        after = ledger.import_csv_text(before, text)
    except CsvImportError as e:
        _err(f"Failed to import CSV: {e}")
        return 1
    _save(store, after)

    added = len(after.transactions) - len(before.transactions)
    typer.echo(f"Imported {added} transactions ({len(after.transactions)} total).")
    return 0


def cmd_export_csv(out: Path | None, *, database_url: str | None = None) -> int:
    state = StateStore(database_url).load()
    try:
        _write_or_echo(export_csv(state.transactions), out)
    except OSError as e:
        _err(f"Failed to write '{out}': {e}")
        return 1
    return 0


def cmd_backup(out: Path | None, *, database_url: str | None = None) -> int:
    state = StateStore(database_url).load()
    try:
        _write_or_echo(backup_to_json(state) + "\n", out)
    except OSError as e:
        _err(f"Failed to write '{out}': {e}")
        return 1
    return 0


def cmd_restore(path: Path, *, database_url: str | None = None) -> int:
    """Restore a JSON backup; an invalid file changes nothing."""

    try:
        text = _read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        _err(f"Failed to read '{path}': {e}")
        return 1

    store = StateStore(database_url)
    try:
        state = restore_backup(store.load(), text)
    except BackupError as e:
        _err(f"Invalid backup file: {e}")
        return 1
    _save(store, state)
    typer.echo("Backup restored.")
    return 0


def cmd_add(
    *,
    amount: str,
    description: str,
    date: str | None = None,
    category: str | None = None,
    account: str | None = None,
    method: str | None = None,
    database_url: str | None = None,
) -> int:
    """Record a manual entry; unlike imports, an unreadable amount is an error."""

    if to_decimal(amount) is None:
        _err(f"Invalid amount: {amount!r}")
        return 1
    state = _mutate(
        database_url,
        lambda s: ledger.add_transaction(
            s,
            amount=amount,
            description=description,
            date=date,
            category=category,
            account=account,
            method=method,
        ),
    )
    tx = state.transactions[0]
    typer.echo(f"{tx.id}\t{tx.date}\t{_money(tx.amount)}\t{tx.description}")
    return 0


def cmd_set_category(tx_id: str, category: str, *, database_url: str | None = None) -> int:
    """Set (or with an empty string, clear) a transaction's category."""

    store = StateStore(database_url)
    state = store.load()
    if not any(t.id == tx_id for t in state.transactions):
        _err(f"Unknown transaction id: {tx_id}")
        return 1
    _save(store, ledger.update_transaction(state, tx_id, category=category))
    return 0


def cmd_remove(tx_id: str, *, database_url: str | None = None) -> int:
    store = StateStore(database_url)
    state = store.load()
    if not any(t.id == tx_id for t in state.transactions):
        _err(f"Unknown transaction id: {tx_id}")
        return 1
    _save(store, ledger.remove_transaction(state, tx_id))
    return 0


def cmd_clear_transactions(*, database_url: str | None = None) -> int:
    _mutate(database_url, ledger.clear_transactions)
    typer.echo("All transactions removed.")
    return 0


def cmd_apply_rules(*, database_url: str | None = None) -> int:
    store = StateStore(database_url)
    before = store.load()
    after = ledger.apply_rules(before)
    _save(store, after)
    changed = sum(1 for a, b in zip(before.transactions, after.transactions, strict=True) if a is not b)
    typer.echo(f"Categorized {changed} transactions.")
    return 0


def cmd_transactions(month: str | None, *, database_url: str | None = None) -> int:
    """List transactions (all of them, or one month), one per line."""

    state = StateStore(database_url).load()
    txs = state.transactions
    if month is not None:
        m = _resolve_month(month)
        if m is None:
            _err(f"Invalid month (expected YYYY-MM): {month}")
            return 1
        txs = ledger.recompute_month(state, m).summary.transactions
    for t in txs:
        typer.echo(
            f"{t.id}\t{t.date}\t{_money(t.amount)}\t{t.category or ''}\t{t.description}"
        )
    return 0


def cmd_summary(month: str | None, *, database_url: str | None = None) -> int:
    m = _resolve_month(month)
    if m is None:
        _err(f"Invalid month (expected YYYY-MM): {month}")
        return 1
    summary = ledger.recompute_month(StateStore(database_url).load(), m).summary

    typer.echo(f"month\t{summary.month}")
    typer.echo(f"income\t{_money(summary.income)}")
    typer.echo(f"expense\t{_money(summary.expense)}")
    typer.echo(f"result\t{_money(summary.result)}")
    for name, spent in sorted(summary.spend_by_category.items(), key=lambda kv: -kv[1]):
        typer.echo(f"spend\t{name}\t{_money(spent)}")
    for point in summary.daily:
        typer.echo(f"day\t{point.date}\t{_money(point.income)}\t{_money(point.expense)}")
    return 0


def cmd_budget(month: str | None, *, database_url: str | None = None) -> int:
    m = _resolve_month(month)
    if m is None:
        _err(f"Invalid month (expected YYYY-MM): {month}")
        return 1
    view = ledger.recompute_month(StateStore(database_url).load(), m)

    typer.echo("category\tallocated\tbudgeted\tspent\tvariance\tfulfillment\tstatus")
    for row in view.budget_rows:
        typer.echo(
            f"{row.category}\t{row.allocated:.0%}\t{_money(row.budgeted)}\t{_money(row.spent)}"
            f"\t{_money(row.variance)}\t{row.fulfillment:.0%}\t{row.status}"
        )
    return 0


def cmd_set_budget(category: str, fraction: float, *, database_url: str | None = None) -> int:
    if category not in CATEGORIES:
        _err(f"Unknown category: {category!r}. Choose one of: {', '.join(CATEGORIES)}")
        return 1
    state = _mutate(database_url, lambda s: ledger.set_budget_allocation(s, category, fraction))
    typer.echo(f"{category}\t{state.budget[category]:.0%}")
    return 0


def cmd_reset_budget(*, database_url: str | None = None) -> int:
    _mutate(database_url, ledger.restore_default_budget)
    typer.echo("Budget restored to defaults.")
    return 0


def cmd_rules(*, database_url: str | None = None) -> int:
    state = StateStore(database_url).load()
    for r in state.rules:
        flag = "on" if r.enabled else "off"
        typer.echo(f"{r.id}\t{r.priority}\t{flag}\t{r.category}\t{r.keywords}")
    return 0


def cmd_add_rule(
    *,
    keywords: str,
    category: str,
    priority: int | None = None,
    enabled: bool = True,
    database_url: str | None = None,
) -> int:
    if not keywords.strip():
        _err("Keywords cannot be empty")
        return 1
    state = _mutate(
        database_url,
        lambda s: ledger.add_rule(
            s, keywords=keywords, category=category, enabled=enabled, priority=priority
        ),
    )
    rule = state.rules[-1]
    typer.echo(f"{rule.id}\t{rule.priority}\t{rule.category}\t{rule.keywords}")
    return 0


def cmd_update_rule(
    rule_id: str,
    *,
    keywords: str | None = None,
    category: str | None = None,
    priority: int | None = None,
    enabled: bool | None = None,
    database_url: str | None = None,
) -> int:
    changes = {
        k: v
        for k, v in {
            "keywords": keywords,
            "category": category,
            "priority": priority,
            "enabled": enabled,
        }.items()
        if v is not None
    }
    try:
        _mutate(database_url, lambda s: ledger.update_rule(s, rule_id, **changes))
    except ValueError as e:
        _err(str(e))
        return 1
    return 0


def cmd_remove_rule(rule_id: str, *, database_url: str | None = None) -> int:
    store = StateStore(database_url)
    state = store.load()
    if not any(r.id == rule_id for r in state.rules):
        _err(f"Unknown rule id: {rule_id}")
        return 1
    _save(store, ledger.remove_rule(state, rule_id))
    return 0


def cmd_months(month: str | None) -> int:
    m = _resolve_month(month)
    if m is None:
        _err(f"Invalid month (expected YYYY-MM): {month}")
        return 1
    for option in month_options_around(m):
        typer.echo(option)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Personal finance tracker: import bank CSVs, classify them with keyword "
        "rules and compare monthly spend with your budget."
    ),
)

# Module-level option objects keep calls out of parameter defaults (ruff B008).
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url",
    help="Override FINANCE_TRACKER_DATABASE_URL (defaults to ./finance_tracker.db).",
)
MONTH_OPTION: OptionInfo = typer.Option(
    "--month", help="Month as YYYY-MM (defaults to the current month)."
)
OUT_OPTION: OptionInfo = typer.Option(
    "--out", dir_okay=False, help="Write to this file instead of stdout."
)


@app.command("import-csv")
def import_csv_cmd(
    csv_path: Annotated[Path, typer.Option("--csv-path", dir_okay=False, help="CSV to import")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Import transactions from a CSV export and apply the rules."""

    raise typer.Exit(cmd_import_csv(csv_path, database_url=database_url))


@app.command("export-csv")
def export_csv_cmd(
    out: Annotated[Path | None, OUT_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Export every transaction as CSV."""

    raise typer.Exit(cmd_export_csv(out, database_url=database_url))


@app.command("backup")
def backup_cmd(
    out: Annotated[Path | None, OUT_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Write a JSON backup of transactions, budget and rules."""

    raise typer.Exit(cmd_backup(out, database_url=database_url))


@app.command("restore")
def restore_cmd(
    path: Annotated[Path, typer.Argument(dir_okay=False, help="Backup JSON file")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Restore a JSON backup (collections missing from the file are kept)."""

    raise typer.Exit(cmd_restore(path, database_url=database_url))


@app.command("add")
def add_cmd(
    amount: Annotated[str, typer.Option(help="Signed amount; negative for expenses.")],
    description: Annotated[str, typer.Option(help="Free-text description.")],
    date: Annotated[str | None, typer.Option(help="Date (defaults to today).")] = None,
    category: Annotated[str | None, typer.Option(help="Category name.")] = None,
    account: Annotated[str | None, typer.Option(help="Account alias.")] = None,
    method: Annotated[str | None, typer.Option(help="Payment method.")] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Add a transaction by hand."""

    raise typer.Exit(
        cmd_add(
            amount=amount,
            description=description,
            date=date,
            category=category,
            account=account,
            method=method,
            database_url=database_url,
        )
    )


@app.command("set-category")
def set_category_cmd(
    tx_id: Annotated[str, typer.Argument(help="Transaction id")],
    category: Annotated[str, typer.Argument(help="Category; empty string clears it")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Set or clear a transaction's category."""

    raise typer.Exit(cmd_set_category(tx_id, category, database_url=database_url))


@app.command("remove")
def remove_cmd(
    tx_id: Annotated[str, typer.Argument(help="Transaction id")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete one transaction."""

    raise typer.Exit(cmd_remove(tx_id, database_url=database_url))


@app.command("clear-transactions")
def clear_transactions_cmd(
    yes: Annotated[bool, typer.Option("--yes", help="Do not ask for confirmation.")] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete every transaction (budget and rules are kept)."""

    if not yes and not typer.confirm("This removes all transactions. Continue?"):
        raise typer.Exit(1)
    raise typer.Exit(cmd_clear_transactions(database_url=database_url))


@app.command("apply-rules")
def apply_rules_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Classify uncategorized transactions with the enabled rules."""

    raise typer.Exit(cmd_apply_rules(database_url=database_url))


@app.command("transactions")
def transactions_cmd(
    month: Annotated[str | None, typer.Option("--month", help="Only this YYYY-MM month.")] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """List transactions."""

    raise typer.Exit(cmd_transactions(month, database_url=database_url))


@app.command("summary")
def summary_cmd(
    month: Annotated[str | None, MONTH_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Income, expense, result, category spend and daily totals for a month."""

    raise typer.Exit(cmd_summary(month, database_url=database_url))


@app.command("budget")
def budget_cmd(
    month: Annotated[str | None, MONTH_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Budget table for a month: budgeted vs. spent per category."""

    raise typer.Exit(cmd_budget(month, database_url=database_url))


@app.command("set-budget")
def set_budget_cmd(
    category: Annotated[str, typer.Argument(help="Category name")],
    fraction: Annotated[float, typer.Argument(help="Share of monthly income, 0..1")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Set a category's allocation (clamped to 0..1)."""

    raise typer.Exit(cmd_set_budget(category, fraction, database_url=database_url))


@app.command("reset-budget")
def reset_budget_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Restore the suggested budget."""

    raise typer.Exit(cmd_reset_budget(database_url=database_url))


@app.command("rules")
def rules_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """List rules in stored order."""

    raise typer.Exit(cmd_rules(database_url=database_url))


@app.command("add-rule")
def add_rule_cmd(
    keywords: Annotated[str, typer.Option(help="Comma-separated keywords, e.g. 'uber, taxi'.")],
    category: Annotated[str, typer.Option(help="Category assigned on match.")],
    priority: Annotated[int | None, typer.Option(help="Lower runs first (default: last + 10).")] = None,
    enabled: Annotated[bool, typer.Option("--enabled/--disabled")] = True,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Add a keyword rule."""

    raise typer.Exit(
        cmd_add_rule(
            keywords=keywords,
            category=category,
            priority=priority,
            enabled=enabled,
            database_url=database_url,
        )
    )


@app.command("update-rule")
def update_rule_cmd(
    rule_id: Annotated[str, typer.Argument(help="Rule id")],
    keywords: Annotated[str | None, typer.Option()] = None,
    category: Annotated[str | None, typer.Option()] = None,
    priority: Annotated[int | None, typer.Option()] = None,
    enabled: Annotated[bool | None, typer.Option("--enabled/--disabled")] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Edit a rule; omitted options keep their value."""

    raise typer.Exit(
        cmd_update_rule(
            rule_id,
            keywords=keywords,
            category=category,
            priority=priority,
            enabled=enabled,
            database_url=database_url,
        )
    )


@app.command("remove-rule")
def remove_rule_cmd(
    rule_id: Annotated[str, typer.Argument(help="Rule id")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete a rule."""

    raise typer.Exit(cmd_remove_rule(rule_id, database_url=database_url))


@app.command("months")
def months_cmd(
    month: Annotated[str | None, MONTH_OPTION] = None,
) -> None:
    """List the six months either side of a month."""

    raise typer.Exit(cmd_months(month))


@app.callback()
def _root(
    log_level: Annotated[
        str | None, typer.Option(help="Override FINANCE_TRACKER_LOG_LEVEL.")
    ] = None,
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)
    _logger.debug("argv: %s", sys.argv[1:])


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover - exercised via the console script
    main()
