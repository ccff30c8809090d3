"""Budget evaluation: allocations versus actual spend.

An allocation is a fraction of the month's income. For each vocabulary
category the evaluator derives the budgeted amount, the variance and a status:

- ``neutral``: nothing budgeted and nothing spent.
- ``over``: spend against a zero budget, or fulfillment above 1.0.
- ``watch``: fulfillment between 0.8 and 1.0 inclusive.
- ``onTrack``: fulfillment below 0.8.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

from .categories import CATEGORIES, budget_bucket, clamp_fraction, default_budget, normalize_name
from .models import BudgetRow, BudgetStatus

WATCH_THRESHOLD = 0.8
OVER_THRESHOLD = 1.0

_ZERO = Decimal(0)


def classify_status(budgeted: Decimal, spent: Decimal, fulfillment: float) -> BudgetStatus:
    if budgeted <= 0:
        # No budget: any spend at all is an overrun.
        return BudgetStatus.OVER if spent > 0 else BudgetStatus.NEUTRAL
    if fulfillment < WATCH_THRESHOLD:
        return BudgetStatus.ON_TRACK
    if fulfillment <= OVER_THRESHOLD:
        return BudgetStatus.WATCH
    return BudgetStatus.OVER


def fold_spend(spend: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Re-key category spend onto the vocabulary, merging strays into ``Other``."""

    folded: dict[str, Decimal] = {}
    for name, amount in spend.items():
        key = budget_bucket(name)
        folded[key] = folded.get(key, _ZERO) + amount
    return folded


def evaluate_category(
    category: str, allocated: float, monthly_income: Decimal, spent: Decimal
) -> BudgetRow:
    budgeted = Decimal(str(allocated)) * monthly_income
    fulfillment = float(spent / budgeted) if budgeted > 0 else 0.0
    return BudgetRow(
        category=category,
        allocated=allocated,
        budgeted=budgeted,
        spent=spent,
        variance=budgeted - spent,
        fulfillment=fulfillment,
        status=classify_status(budgeted, spent, fulfillment),
    )


def evaluate_budget(
    budget: Mapping[str, float],
    monthly_income: Decimal,
    spend: Mapping[str, Decimal],
    categories: Sequence[str] = CATEGORIES,
) -> list[BudgetRow]:
    """Return one :class:`BudgetRow` per entry of ``categories``, in order."""

    income = Decimal(monthly_income)
    folded = fold_spend(spend)
    return [
        evaluate_category(c, float(budget.get(c, 0.0)), income, folded.get(c, _ZERO))
        for c in categories
    ]


def set_allocation(budget: Mapping[str, float], category: str, fraction: float) -> dict[str, float]:
    """Return a copy of ``budget`` with ``category`` set to ``fraction``.

    The fraction is clamped to ``[0, 1]``. Raises ``ValueError`` for a
    category outside the vocabulary.
    """

    name = normalize_name(category)
    if name not in CATEGORIES:
        raise ValueError(f"unknown category: {category!r}")
    updated = dict(budget)
    updated[name] = clamp_fraction(fraction)
    return updated


def restore_defaults() -> dict[str, float]:
    return default_budget()


__all__ = [
    "OVER_THRESHOLD",
    "WATCH_THRESHOLD",
    "classify_status",
    "evaluate_budget",
    "evaluate_category",
    "fold_spend",
    "restore_defaults",
    "set_allocation",
]
