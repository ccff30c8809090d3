"""Category vocabulary and budget defaults.

The vocabulary is fixed and ordered; it drives the budget table and any
category selector offered to the user. A transaction's ``category`` may still
hold an arbitrary string (imported verbatim from a CSV), which is why
:func:`budget_bucket` exists.
"""

from __future__ import annotations

import math
from typing import Any

CATCH_ALL = "Other"

CATEGORIES: tuple[str, ...] = (
    "Housing",
    "Food",
    "Transport",
    "Health",
    "Education",
    "Leisure",
    "Personal Shopping",
    "Subscriptions & Services",
    "Taxes/Fees",
    "Emergencies",
    "Investments/Reserve",
    CATCH_ALL,
)

# Suggested split of monthly income; sums to 1.0 with nothing left for Other.
DEFAULT_BUDGET: dict[str, float] = {
    "Housing": 0.30,
    "Food": 0.15,
    "Transport": 0.10,
    "Health": 0.08,
    "Education": 0.05,
    "Leisure": 0.08,
    "Personal Shopping": 0.06,
    "Subscriptions & Services": 0.05,
    "Taxes/Fees": 0.05,
    "Emergencies": 0.04,
    "Investments/Reserve": 0.04,
    CATCH_ALL: 0.0,
}

_KNOWN = frozenset(CATEGORIES)


def default_budget() -> dict[str, float]:
    """Return a fresh, caller-owned copy of :data:`DEFAULT_BUDGET`."""

    return dict(DEFAULT_BUDGET)


def normalize_name(name: str) -> str:
    """Return ``name`` trimmed with internal whitespace collapsed.

    Case is preserved; the vocabulary is matched exactly.
    """

    return " ".join(name.strip().split())


def is_known_category(name: str | None) -> bool:
    if not name:
        return False
    return normalize_name(name) in _KNOWN


def budget_bucket(name: str | None) -> str:
    """Map a transaction category onto the vocabulary for budget totals.

    Unset and out-of-vocabulary names land in :data:`CATCH_ALL`.
    """

    if not name:
        return CATCH_ALL
    n = normalize_name(name)
    return n if n in _KNOWN else CATCH_ALL


def clamp_fraction(value: Any) -> float:
    """Clamp an allocation to ``[0, 1]``; NaN counts as zero."""

    f = float(value)
    if math.isnan(f):
        return 0.0
    return max(0.0, min(1.0, f))


__all__ = [
    "CATCH_ALL",
    "CATEGORIES",
    "DEFAULT_BUDGET",
    "budget_bucket",
    "clamp_fraction",
    "default_budget",
    "is_known_category",
    "normalize_name",
]
