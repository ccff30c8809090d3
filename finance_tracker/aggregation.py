"""Monthly roll-ups over a transaction set.

Every function here is a pure function of its arguments. Dates are
``YYYY-MM-DD`` strings, so the month is the first seven characters and
lexicographic order is chronological order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from .categories import CATCH_ALL
from .models import DailyPoint, MonthlySummary, Transaction

_ZERO = Decimal(0)


def month_of(date_str: str) -> str:
    return date_str[:7]


def current_month(today: date | None = None) -> str:
    return (today or date.today()).strftime("%Y-%m")


def month_options_around(month: str, span: int = 6) -> list[str]:
    """Months from ``span`` before to ``span`` after ``month``, ascending.

    Feeds a month picker. Raises ``ValueError`` when ``month`` is not
    ``YYYY-MM``.
    """

    year_s, _, month_s = month.partition("-")
    year, mon = int(year_s), int(month_s)
    if not 1 <= mon <= 12:
        raise ValueError(f"invalid month: {month!r}")
    base = year * 12 + (mon - 1)
    out: list[str] = []
    for offset in range(-span, span + 1):
        y, m = divmod(base + offset, 12)
        out.append(f"{y:04d}-{m + 1:02d}")
    return out


def filter_month(transactions: Iterable[Transaction], month: str) -> list[Transaction]:
    return [t for t in transactions if month_of(t.date) == month]


def monthly_income(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions if t.amount > 0), _ZERO)


def monthly_expense(transactions: Iterable[Transaction]) -> Decimal:
    """Total spend as a non-negative number."""

    return sum((-t.amount for t in transactions if t.amount < 0), _ZERO)


def spend_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Absolute spend per category over expense transactions.

    Unset categories are counted under ``Other``; any other name, including
    names outside the vocabulary, is kept as written. Keys appear in order of
    first occurrence.
    """

    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.amount < 0:
            key = t.category or CATCH_ALL
            totals[key] = totals.get(key, _ZERO) - t.amount
    return totals


def daily_series(transactions: Iterable[Transaction]) -> list[DailyPoint]:
    """Per-day income and expense, one point per distinct date, ascending."""

    income: dict[str, Decimal] = {}
    expense: dict[str, Decimal] = {}
    for t in transactions:
        income.setdefault(t.date, _ZERO)
        expense.setdefault(t.date, _ZERO)
        if t.amount > 0:
            income[t.date] += t.amount
        else:
            expense[t.date] -= t.amount
    return [DailyPoint(date=d, income=income[d], expense=expense[d]) for d in sorted(income)]


def summarize_month(transactions: Sequence[Transaction], month: str) -> MonthlySummary:
    """Bundle the month subset with its totals, category spend and daily series."""

    subset = filter_month(transactions, month)
    income = monthly_income(subset)
    expense = monthly_expense(subset)
    return MonthlySummary(
        month=month,
        transactions=tuple(subset),
        income=income,
        expense=expense,
        result=income - expense,
        spend_by_category=spend_by_category(subset),
        daily=tuple(daily_series(subset)),
    )


__all__ = [
    "current_month",
    "daily_series",
    "filter_month",
    "month_of",
    "month_options_around",
    "monthly_expense",
    "monthly_income",
    "spend_by_category",
    "summarize_month",
]
