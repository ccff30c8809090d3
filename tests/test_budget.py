from decimal import Decimal

import pytest

from finance_tracker.budget import (
    classify_status,
    evaluate_budget,
    evaluate_category,
    set_allocation,
)
from finance_tracker.categories import CATEGORIES, DEFAULT_BUDGET, default_budget
from finance_tracker.models import BudgetStatus


def test_overspent_category():
    row = evaluate_category("Food", 0.5, Decimal(1000), Decimal(600))
    assert row.budgeted == Decimal(500)
    assert row.spent == Decimal(600)
    assert row.variance == Decimal(-100)
    assert row.fulfillment == pytest.approx(1.2)
    assert row.status is BudgetStatus.OVER
    assert row.status == "over"


def test_nothing_budgeted_nothing_spent_is_neutral():
    row = evaluate_category("Leisure", 0.0, Decimal(1000), Decimal(0))
    assert row.fulfillment == 0.0
    assert row.status is BudgetStatus.NEUTRAL


def test_spend_against_zero_budget_is_over():
    row = evaluate_category("Leisure", 0.0, Decimal(1000), Decimal(15))
    assert row.fulfillment == 0.0
    assert row.status is BudgetStatus.OVER


def test_spend_without_income_is_over():
    row = evaluate_category("Food", 0.15, Decimal(0), Decimal(15))
    assert row.budgeted == Decimal(0)
    assert row.status is BudgetStatus.OVER


@pytest.mark.parametrize(
    "spent, expected",
    [
        ("0", BudgetStatus.ON_TRACK),
        ("79.99", BudgetStatus.ON_TRACK),
        ("80", BudgetStatus.WATCH),
        ("100", BudgetStatus.WATCH),
        ("100.01", BudgetStatus.OVER),
    ],
)
def test_status_thresholds(spent, expected):
    row = evaluate_category("Food", 0.1, Decimal(1000), Decimal(spent))
    assert row.status is expected


def test_classify_status_direct():
    assert classify_status(Decimal(0), Decimal(0), 0.0) is BudgetStatus.NEUTRAL
    assert classify_status(Decimal(10), Decimal(0), 0.0) is BudgetStatus.ON_TRACK


def test_one_row_per_vocabulary_category_in_order():
    rows = evaluate_budget(default_budget(), Decimal(2000), {})
    assert [r.category for r in rows] == list(CATEGORIES)
    housing = rows[0]
    assert housing.allocated == DEFAULT_BUDGET["Housing"]
    assert housing.budgeted == Decimal(600)
    assert housing.status is BudgetStatus.ON_TRACK


def test_missing_allocation_defaults_to_zero():
    rows = evaluate_budget({}, Decimal(2000), {"Food": Decimal(10)})
    food = next(r for r in rows if r.category == "Food")
    assert food.allocated == 0.0
    assert food.status is BudgetStatus.OVER


def test_unknown_categories_are_folded_into_other():
    spend = {"Other": Decimal(5), "Groceries": Decimal(7), "Food": Decimal(3)}
    rows = {r.category: r for r in evaluate_budget({"Other": 0.1}, Decimal(1000), spend)}
    assert rows["Other"].spent == Decimal(12)
    assert rows["Food"].spent == Decimal(3)
    assert "Groceries" not in rows


def test_set_allocation_clamps_and_copies():
    budget = default_budget()
    updated = set_allocation(budget, "Food", 1.5)
    assert updated["Food"] == 1.0
    assert budget["Food"] == 0.15
    assert set_allocation(budget, "Food", -0.2)["Food"] == 0.0


def test_set_allocation_rejects_unknown_category():
    with pytest.raises(ValueError):
        set_allocation(default_budget(), "Groceries", 0.1)
