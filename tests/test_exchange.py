import csv
import json
from decimal import Decimal
from io import StringIO

import pytest

from finance_tracker.categories import default_budget
from finance_tracker.exchange import (
    EXPORT_COLUMNS,
    BackupError,
    backup_to_json,
    dump_backup,
    export_csv,
    restore_backup,
)
from finance_tracker.ledger import default_state, import_csv_text
from finance_tracker.models import AppState, Rule, Transaction


def _state() -> AppState:
    txs = (
        Transaction(
            date="2025-09-15",
            amount=Decimal("1234.56"),
            description="Salario",
            account="Nubank",
            raw={"Data": "15/09/2025", "Valor": "1.234,56"},
        ),
        Transaction(
            date="2025-09-16",
            amount=Decimal("-20.10"),
            description="Padaria, centro",
            category="Food",
            method="pix",
        ),
    )
    rules = (Rule(keywords="uber, 99", category="Transport", priority=10),)
    budget = {**default_budget(), "Food": 0.2}
    return AppState(transactions=txs, budget=budget, rules=rules)


def test_export_csv_has_fixed_columns():
    text = export_csv(_state().transactions)
    lines = text.splitlines()
    assert lines[0] == "date,amount,description,category,account,method"
    rows = list(csv.DictReader(StringIO(text)))
    assert tuple(rows[0]) == EXPORT_COLUMNS
    assert rows[0] == {
        "date": "2025-09-15",
        "amount": "1234.56",
        "description": "Salario",
        "category": "",
        "account": "Nubank",
        "method": "",
    }
    assert rows[1]["description"] == "Padaria, centro"


def test_exported_csv_imports_again():
    state = _state()
    again = import_csv_text(default_state(), export_csv(state.transactions))

    def fields(t: Transaction):
        return (t.date, t.amount, t.description, t.category, t.account, t.method)

    assert [fields(t) for t in again.transactions] == [fields(t) for t in state.transactions]


def test_backup_round_trip_preserves_everything():
    state = _state()
    restored = restore_backup(default_state(), backup_to_json(state))
    assert restored.transactions == state.transactions
    assert dict(restored.budget) == dict(state.budget)
    assert restored.rules == state.rules


def test_backup_amounts_are_strings():
    doc = dump_backup(_state())
    assert doc["transactions"][0]["amount"] == "1234.56"
    assert set(doc) == {"transactions", "budget", "rules"}


def test_absent_keys_leave_collections_untouched():
    state = _state()
    restored = restore_backup(state, {"rules": []})
    assert restored.rules == ()
    assert restored.transactions == state.transactions
    assert restored.budget == state.budget


def test_legacy_tx_key_is_accepted():
    state = _state()
    payload = json.dumps({"tx": json.loads(backup_to_json(state))["transactions"]})
    restored = restore_backup(default_state(), payload)
    assert restored.transactions == state.transactions


def test_restored_budget_is_clamped():
    restored = restore_backup(default_state(), {"budget": {"Food": 2, "Leisure": -1}})
    assert restored.budget == {"Food": 1.0, "Leisure": 0.0}


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "[1, 2, 3]",
        json.dumps({"transactions": [{"date": "2025-09-01"}]}),
        json.dumps({"budget": {"Food": "lots"}, "rules": []}),
        json.dumps({"rules": "uber"}),
    ],
)
def test_invalid_backup_is_rejected_whole(payload):
    state = _state()
    with pytest.raises(BackupError):
        restore_backup(state, payload)


def test_backup_with_out_of_range_amount_is_rejected():
    doc = dump_backup(_state())
    doc["transactions"][0]["amount"] = "1e1000000"
    with pytest.raises(BackupError):
        restore_backup(default_state(), json.dumps(doc))
