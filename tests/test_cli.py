import json
import textwrap
from pathlib import Path

from typer.testing import CliRunner

from finance_tracker.cli import app
from finance_tracker.store import StateStore

# INFO records would interleave with command output on the shared stream.
runner = CliRunner(env={"FINANCE_TRACKER_LOG_LEVEL": "WARNING"})

BANK_CSV = textwrap.dedent(
    """\
    Data,Valor,Descrição,Conta
    01/09/2025,"5.000,00",Salario,Itau
    02/09/2025,"-1.800,00",Aluguel,Itau
    03/09/2025,-35,UBER *TRIP,Nubank
    03/09/2025,-120,Farmacia,Nubank
    """
)


def _write(tmp_path: Path, name: str, text: str) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def _import(tmp_path: Path) -> None:
    result = runner.invoke(app, ["add-rule", "--keywords", "uber, 99", "--category", "Transport"])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["add-rule", "--keywords", "aluguel", "--category", "Housing"])
    assert result.exit_code == 0, result.output
    csv_path = _write(tmp_path, "bank.csv", BANK_CSV)
    result = runner.invoke(app, ["import-csv", "--csv-path", str(csv_path)])
    assert result.exit_code == 0, result.output
    assert "Imported 4 transactions (4 total)." in result.stdout


def test_import_then_summary(tmp_path: Path):
    _import(tmp_path)

    result = runner.invoke(app, ["summary", "--month", "2025-09"])
    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    assert "income\t5000.00" in lines
    assert "expense\t1955.00" in lines
    assert "result\t3045.00" in lines
    assert "spend\tHousing\t1800.00" in lines
    assert "spend\tOther\t120.00" in lines
    assert "spend\tTransport\t35.00" in lines
    assert "day\t2025-09-03\t0.00\t155.00" in lines


def test_budget_table(tmp_path: Path):
    _import(tmp_path)

    result = runner.invoke(app, ["budget", "--month", "2025-09"])
    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    assert lines[0].startswith("category\tallocated")
    rows = {line.split("\t")[0]: line.split("\t") for line in lines[1:]}
    assert rows["Housing"][2:] == ["1500.00", "1800.00", "-300.00", "120%", "over"]
    assert rows["Transport"][-1] == "onTrack"
    assert rows["Other"][-1] == "over"
    assert rows["Leisure"][-1] == "onTrack"


def test_invalid_month_is_rejected():
    result = runner.invoke(app, ["summary", "--month", "2025-13"])
    assert result.exit_code == 1
    assert "Invalid month" in result.output


def test_missing_csv_is_reported(tmp_path: Path):
    result = runner.invoke(app, ["import-csv", "--csv-path", str(tmp_path / "nope.csv")])
    assert result.exit_code == 1
    assert "File not found" in result.output
    assert StateStore().load().transactions == ()


def test_export_backup_and_restore(tmp_path: Path):
    _import(tmp_path)
    backup_path = tmp_path / "backup.json"
    assert runner.invoke(app, ["backup", "--out", str(backup_path)]).exit_code == 0
    saved = json.loads(backup_path.read_text(encoding="utf-8"))
    assert len(saved["transactions"]) == 4

    result = runner.invoke(app, ["export-csv"])
    assert result.exit_code == 0
    assert result.stdout.splitlines()[0] == "date,amount,description,category,account,method"

    assert runner.invoke(app, ["clear-transactions", "--yes"]).exit_code == 0
    assert StateStore().load().transactions == ()

    result = runner.invoke(app, ["restore", str(backup_path)])
    assert result.exit_code == 0, result.output
    assert "Backup restored." in result.stdout
    assert len(StateStore().load().transactions) == 4


def test_invalid_backup_changes_nothing(tmp_path: Path):
    _import(tmp_path)
    bad = _write(tmp_path, "bad.json", '{"transactions": [{"amount": "x"}]}')
    result = runner.invoke(app, ["restore", str(bad)])
    assert result.exit_code == 1
    assert "Invalid backup file" in result.output
    assert len(StateStore().load().transactions) == 4


def test_manual_entry_and_set_category():
    result = runner.invoke(
        app, ["add", "--amount", "-42,50", "--description", "Livraria", "--date", "2025-09-10"]
    )
    assert result.exit_code == 0, result.output
    tx_id = result.stdout.split("\t")[0]

    assert runner.invoke(app, ["set-category", tx_id, "Education"]).exit_code == 0
    tx = StateStore().load().transactions[0]
    assert tx.category == "Education"

    assert runner.invoke(app, ["set-category", "missing", "Food"]).exit_code == 1
    assert runner.invoke(app, ["remove", tx_id]).exit_code == 0
    assert StateStore().load().transactions == ()


def test_set_budget_and_reset():
    result = runner.invoke(app, ["set-budget", "Leisure", "1.7"])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "Leisure\t100%"

    assert runner.invoke(app, ["set-budget", "Groceries", "0.1"]).exit_code == 1
    assert runner.invoke(app, ["reset-budget"]).exit_code == 0
    assert StateStore().load().budget["Leisure"] == 0.08


def test_rule_lifecycle():
    result = runner.invoke(app, ["add-rule", "--keywords", "netflix", "--category", "Leisure"])
    rule_id = result.stdout.split("\t")[0]

    assert runner.invoke(app, ["update-rule", rule_id, "--disabled", "--priority", "5"]).exit_code == 0
    result = runner.invoke(app, ["rules"])
    assert result.stdout.strip() == f"{rule_id}\t5\toff\tLeisure\tnetflix"

    assert runner.invoke(app, ["update-rule", "missing", "--enabled"]).exit_code == 1
    assert runner.invoke(app, ["remove-rule", rule_id]).exit_code == 0
    assert runner.invoke(app, ["rules"]).stdout == ""


def test_months_listing():
    result = runner.invoke(app, ["months", "--month", "2025-01"])
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0] == "2024-07"
    assert lines[-1] == "2025-07"


def test_manual_entry_rejects_unreadable_amount():
    result = runner.invoke(app, ["add", "--amount", "abc", "--description", "Livraria"])
    assert result.exit_code == 1
    assert "Invalid amount" in result.output
    assert StateStore().load().transactions == ()


def test_oversized_import_amount_keeps_summary_working(tmp_path: Path):
    csv_path = _write(tmp_path, "huge.csv", "date,amount,description\n2025-09-01,1e1000000,x\n")
    assert runner.invoke(app, ["import-csv", "--csv-path", str(csv_path)]).exit_code == 0

    result = runner.invoke(app, ["summary", "--month", "2025-09"])
    assert result.exit_code == 0, result.output
    assert "income\t0.00" in result.stdout.splitlines()
    assert runner.invoke(app, ["budget", "--month", "2025-09"]).exit_code == 0
