"""Public interface for the ``finance_tracker`` package.

Symbol re-exports only; there is no runtime logic here. The core engine is
made of four pure pieces (normalizer, rule engine, aggregator, budget
evaluator); :mod:`finance_tracker.ledger` composes them into commands over an
immutable :class:`AppState`, and :mod:`finance_tracker.store` persists that
state.
"""

from .aggregation import (
    current_month,
    daily_series,
    filter_month,
    month_options_around,
    spend_by_category,
    summarize_month,
)
from .budget import evaluate_budget, set_allocation
from .categories import CATCH_ALL, CATEGORIES, DEFAULT_BUDGET, default_budget
from .exchange import (
    BackupError,
    backup_to_json,
    dump_backup,
    export_csv,
    restore_backup,
)
from .ledger import (
    add_rule,
    add_transaction,
    clear_transactions,
    default_state,
    import_csv_text,
    import_rows,
    recompute_month,
    remove_rule,
    remove_transaction,
    restore_default_budget,
    set_budget_allocation,
    update_rule,
    update_transaction,
)
from .models import (
    AppState,
    Budget,
    BudgetRow,
    BudgetStatus,
    DailyPoint,
    MonthlySummary,
    MonthView,
    Rule,
    Transaction,
)
from .normalizers import CsvImportError, normalize_row, normalize_rows, read_csv_rows
from .rules import apply_rules

__all__ = [
    # Core
    "normalize_row",
    "normalize_rows",
    "read_csv_rows",
    "apply_rules",
    "filter_month",
    "spend_by_category",
    "daily_series",
    "summarize_month",
    "current_month",
    "month_options_around",
    "evaluate_budget",
    "set_allocation",
    # Commands
    "default_state",
    "import_rows",
    "import_csv_text",
    "add_transaction",
    "update_transaction",
    "remove_transaction",
    "clear_transactions",
    "set_budget_allocation",
    "restore_default_budget",
    "add_rule",
    "update_rule",
    "remove_rule",
    "recompute_month",
    # Exchange
    "export_csv",
    "dump_backup",
    "backup_to_json",
    "restore_backup",
    # Errors
    "BackupError",
    "CsvImportError",
    # Models / constants
    "AppState",
    "Budget",
    "BudgetRow",
    "BudgetStatus",
    "DailyPoint",
    "MonthView",
    "MonthlySummary",
    "Rule",
    "Transaction",
    "CATCH_ALL",
    "CATEGORIES",
    "DEFAULT_BUDGET",
    "default_budget",
]
