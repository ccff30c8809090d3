"""Data models for ``finance_tracker``.

Records that cross an I/O boundary (transactions and rules, which travel
through CSV, backups and the key-value store) are pydantic models so they are
validated on the way in. Derived views (monthly summaries, budget rows) are
frozen dataclasses; they are produced by pure functions and never parsed.

Every model is frozen. Operations return new objects rather than mutating
their inputs.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Amounts at or above 10**16 are rejected. Decimal literals are exact, so a
# value like 1e1000000 would parse and then overflow the arithmetic context.
MAX_AMOUNT_EXPONENT = 15


def new_id() -> str:
    """Return an opaque identifier, unique for the life of the data set."""

    return uuid.uuid4().hex


def amount_in_range(amount: Decimal) -> bool:
    return amount.is_finite() and amount.adjusted() <= MAX_AMOUNT_EXPONENT


# ---------------------------------------------------------------------------
# Stored collections
# ---------------------------------------------------------------------------


class Transaction(BaseModel):
    """A single dated, signed monetary record.

    Attributes
    ----------
    id:
        Opaque identifier. Never changes once assigned.
    date:
        ``YYYY-MM-DD``. Kept as a string: a ``DD/MM/YYYY`` import is rearranged
        without range checks and must survive as written.
    amount:
        Positive for income, negative for expense.
    description:
        Free text; the normalizer supplies a placeholder when absent.
    account, method:
        Optional labels (account alias, payment method).
    category:
        Assigned category, or ``None`` while unclassified. May hold a name
        outside the vocabulary when it came from an import.
    raw:
        The original import row, kept for auditing only.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default="", validate_default=True)
    date: str
    amount: Decimal
    description: str
    account: str | None = None
    method: str | None = None
    category: str | None = None
    raw: dict[str, Any] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_or_new(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return new_id()
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def _float_via_repr(cls, v: Any) -> Any:
        # 0.1 should become Decimal("0.1"), not its binary expansion.
        if isinstance(v, float):
            return Decimal(repr(v))
        return v

    @field_validator("amount")
    @classmethod
    def _bounded(cls, v: Decimal) -> Decimal:
        if not amount_in_range(v):
            raise ValueError(f"amount out of range: {v}")
        return v

    @property
    def is_categorized(self) -> bool:
        return bool(self.category)


class Rule(BaseModel):
    """Keyword rule assigning ``category`` to unclassified transactions.

    ``keywords`` is a comma-separated list of case-insensitive substrings.
    Lower ``priority`` values are evaluated first.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    id: str = Field(default="", validate_default=True)
    keywords: str
    category: str
    enabled: bool = True
    priority: int = 0

    @field_validator("id", mode="before")
    @classmethod
    def _id_or_new(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return new_id()
        return v


type Budget = Mapping[str, float]
"""Category name to allocation fraction of monthly income, each in ``[0, 1]``.

The fractions are not required to sum to one.
"""


@dataclass(frozen=True, slots=True)
class AppState:
    """The three independently persisted collections, passed by value.

    Command functions in :mod:`finance_tracker.ledger` take a state and return
    a new one; the persistence layer decides when to write it.
    """

    transactions: tuple[Transaction, ...] = ()
    budget: Mapping[str, float] = field(default_factory=dict)
    rules: tuple[Rule, ...] = ()


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


class BudgetStatus(StrEnum):
    NEUTRAL = "neutral"
    ON_TRACK = "onTrack"
    WATCH = "watch"
    OVER = "over"


@dataclass(frozen=True, slots=True)
class DailyPoint:
    """Income and expense totals (both non-negative) for one calendar day."""

    date: str
    income: Decimal
    expense: Decimal


@dataclass(frozen=True, slots=True)
class MonthlySummary:
    month: str
    transactions: tuple[Transaction, ...]
    income: Decimal
    expense: Decimal
    result: Decimal
    spend_by_category: Mapping[str, Decimal]
    daily: tuple[DailyPoint, ...]


@dataclass(frozen=True, slots=True)
class BudgetRow:
    """One line of the budget table.

    ``variance`` is positive while under budget. ``fulfillment`` is
    ``spent / budgeted`` and ``0.0`` when nothing was budgeted.
    """

    category: str
    allocated: float
    budgeted: Decimal
    spent: Decimal
    variance: Decimal
    fulfillment: float
    status: BudgetStatus


@dataclass(frozen=True, slots=True)
class MonthView:
    """Everything a presentation layer needs to render one month."""

    summary: MonthlySummary
    budget_rows: tuple[BudgetRow, ...]


__all__ = [
    "MAX_AMOUNT_EXPONENT",
    "AppState",
    "Budget",
    "BudgetRow",
    "BudgetStatus",
    "DailyPoint",
    "MonthView",
    "MonthlySummary",
    "Rule",
    "Transaction",
    "amount_in_range",
    "new_id",
]
