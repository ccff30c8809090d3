"""Command functions over :class:`~finance_tracker.models.AppState`.

Each command takes a state snapshot and returns a new one; nothing is mutated
and nothing is persisted here. Callers (the CLI, or any other front end) load
a state from :class:`~finance_tracker.store.StateStore`, run commands and save
the result.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any

from . import budget as budget_mod
from . import rules as rules_mod
from .aggregation import summarize_month
from .categories import default_budget
from .logging_setup import get_logger
from .models import AppState, MonthView, Rule, Transaction
from .normalizers import normalize_rows, parse_amount, parse_date, read_csv_rows

# Fields a caller may edit on an existing transaction; ``id`` is immutable.
EDITABLE_TRANSACTION_FIELDS = frozenset(
    {"date", "amount", "description", "account", "method", "category"}
)
EDITABLE_RULE_FIELDS = frozenset({"keywords", "category", "enabled", "priority"})

_logger = get_logger("finance_tracker.ledger")


def default_state() -> AppState:
    """Initial state: no transactions, the suggested budget, no rules."""

    return AppState(transactions=(), budget=default_budget(), rules=())


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def import_rows(
    state: AppState, rows: Iterable[Mapping[str, Any]], *, today: date | None = None
) -> AppState:
    """Normalize ``rows``, append them and classify the merged set."""

    imported = normalize_rows(rows, today=today)
    merged = [*state.transactions, *imported]
    classified = rules_mod.apply_rules(merged, state.rules)
    _logger.info("imported %d transactions (%d total)", len(imported), len(classified))
    return replace(state, transactions=tuple(classified))


def import_csv_text(state: AppState, csv_text: str, *, today: date | None = None) -> AppState:
    """Import a CSV export.

    Raises :class:`~finance_tracker.normalizers.CsvImportError` when the text
    cannot be parsed; in that case no row is imported.
    """

    return import_rows(state, read_csv_rows(csv_text), today=today)


def add_transaction(
    state: AppState,
    *,
    amount: Decimal | float | int | str,
    description: str,
    date: str | None = None,
    category: str | None = None,
    account: str | None = None,
    method: str | None = None,
    today: date | None = None,
) -> AppState:
    """Record a manual entry, placed first in the list."""

    tx = Transaction(
        date=parse_date(date, today=today),
        amount=parse_amount(amount),
        description=description,
        category=category or None,
        account=account or None,
        method=method or None,
    )
    return replace(state, transactions=(tx, *state.transactions))


def update_transaction(
    state: AppState, tx_id: str, *, today: date | None = None, **changes: Any
) -> AppState:
    """Apply ``changes`` to the transaction with ``tx_id``.

    Edited dates and amounts go through the same parsing as imports. Unknown
    ids leave the state unchanged. Passing ``category=None`` clears the
    category so rules may classify the transaction again. Raises
    ``ValueError`` for fields that cannot be edited.
    """

    bad = sorted(set(changes) - EDITABLE_TRANSACTION_FIELDS)
    if bad:
        raise ValueError(f"cannot edit transaction fields: {bad}")
    if "date" in changes:
        changes["date"] = parse_date(changes["date"], today=today)
    if "amount" in changes:
        changes["amount"] = parse_amount(changes["amount"])
    if "category" in changes and not changes["category"]:
        changes["category"] = None
    updated: list[Transaction] = []
    for t in state.transactions:
        if t.id == tx_id:
            # Re-validate so amount strings and the like are coerced.
            t = Transaction.model_validate({**t.model_dump(), **changes, "id": t.id})
        updated.append(t)
    return replace(state, transactions=tuple(updated))


def remove_transaction(state: AppState, tx_id: str) -> AppState:
    return replace(state, transactions=tuple(t for t in state.transactions if t.id != tx_id))


def clear_transactions(state: AppState) -> AppState:
    return replace(state, transactions=())


def apply_rules(state: AppState) -> AppState:
    """Classify every uncategorized transaction with the current rules."""

    return replace(
        state, transactions=tuple(rules_mod.apply_rules(state.transactions, state.rules))
    )


# ---------------------------------------------------------------------------
# Budget
# ---------------------------------------------------------------------------


def set_budget_allocation(state: AppState, category: str, fraction: float) -> AppState:
    return replace(state, budget=budget_mod.set_allocation(state.budget, category, fraction))


def restore_default_budget(state: AppState) -> AppState:
    return replace(state, budget=budget_mod.restore_defaults())


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def add_rule(
    state: AppState,
    *,
    keywords: str,
    category: str,
    enabled: bool = True,
    priority: int | None = None,
) -> AppState:
    rule = rules_mod.new_rule(
        state.rules, keywords=keywords, category=category, enabled=enabled, priority=priority
    )
    return replace(state, rules=(*state.rules, rule))


def update_rule(state: AppState, rule_id: str, **changes: Any) -> AppState:
    """Apply ``changes`` to the rule with ``rule_id``; raises ``ValueError`` if absent."""

    bad = sorted(set(changes) - EDITABLE_RULE_FIELDS)
    if bad:
        raise ValueError(f"cannot edit rule fields: {bad}")
    if not any(r.id == rule_id for r in state.rules):
        raise ValueError(f"unknown rule id: {rule_id!r}")
    return replace(
        state,
        rules=tuple(
            Rule.model_validate({**r.model_dump(), **changes, "id": r.id}) if r.id == rule_id else r
            for r in state.rules
        ),
    )


def remove_rule(state: AppState, rule_id: str) -> AppState:
    return replace(state, rules=tuple(r for r in state.rules if r.id != rule_id))


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def recompute_month(state: AppState, month: str) -> MonthView:
    """Summary and budget table for ``month`` (``YYYY-MM``)."""

    summary = summarize_month(state.transactions, month)
    rows = budget_mod.evaluate_budget(state.budget, summary.income, summary.spend_by_category)
    return MonthView(summary=summary, budget_rows=tuple(rows))


__all__ = [
    "EDITABLE_RULE_FIELDS",
    "EDITABLE_TRANSACTION_FIELDS",
    "add_rule",
    "add_transaction",
    "apply_rules",
    "clear_transactions",
    "default_state",
    "import_csv_text",
    "import_rows",
    "recompute_month",
    "remove_rule",
    "remove_transaction",
    "restore_default_budget",
    "set_budget_allocation",
    "update_rule",
    "update_transaction",
]
