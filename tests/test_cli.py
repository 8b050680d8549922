"""
tests/test_cli.py

settle-ledger command line, driven through main(argv).
"""

import json

import pytest

from config import load_ledger, save_ledger
from csv_handler import export_expenses_to_csv
from settle_ledger_cli import main


@pytest.fixture
def ledger_path(tmp_path, trip_ledger):
    path = str(tmp_path / "trip.json")
    save_ledger(trip_ledger, path)
    return path


def test_balances_json(ledger_path, capsys):
    assert main(["--ledger", ledger_path, "balances", "--json"]) == 0
    assert json.loads(capsys.readouterr().out) == {"Alice": 150.0, "Bob": 0.0, "Charlie": -150.0}


def test_balances_text(ledger_path, capsys):
    assert main(["--ledger", ledger_path, "balances"]) == 0
    out = capsys.readouterr().out
    assert "should receive" in out
    assert "settled up" in out
    assert "Total spent: ₹450.00" in out


def test_transfers_json(ledger_path, capsys):
    assert main(["--ledger", ledger_path, "transfers", "--json"]) == 0
    (t,) = json.loads(capsys.readouterr().out)
    assert (t["from"], t["to"], t["amount"], t["confirmed"], t["remainingAmount"]) == ("Charlie", "Alice", 150.0, False, 150.0)


def test_confirm_appends_to_log(ledger_path, capsys):
    assert main(["--ledger", ledger_path, "confirm", "charlie", "alice", "100", "--by", "Alice"]) == 0
    ledger = load_ledger(ledger_path)
    (c,) = ledger.confirmations
    assert (c.from_person, c.to_person, c.amount, c.confirmed_by) == ("Charlie", "Alice", 100.0, "Alice")
    assert c.confirmed_at.endswith("Z")

    capsys.readouterr()
    main(["--ledger", ledger_path, "transfers"])
    assert "₹50.00 left" in capsys.readouterr().out


def test_confirm_rejects_non_positive(ledger_path, capsys):
    assert main(["--ledger", ledger_path, "confirm", "Charlie", "Alice", "0", "--by", "Alice"]) == 1
    assert load_ledger(ledger_path).confirmations == []


def test_summary(ledger_path, capsys):
    assert main(["--ledger", ledger_path, "summary", "ALICE"]) == 0
    out = capsys.readouterr().out
    assert "Alice is owed ₹150.00" in out
    assert "Group total: ₹450.00" in out


def test_summary_unknown_person(ledger_path, capsys):
    assert main(["--ledger", ledger_path, "summary", "Zed"]) == 1
    assert "Zed" in capsys.readouterr().err


def test_export_and_import_csv(ledger_path, tmp_path, capsys):
    csv_path = str(tmp_path / "out.csv")
    assert main(["--ledger", ledger_path, "export-csv", csv_path]) == 0
    assert main(["--ledger", ledger_path, "import-csv", csv_path]) == 0
    assert "Added 0, updated 2" in capsys.readouterr().out
    assert len(load_ledger(ledger_path).expenses) == 2
    assert main(["--ledger", ledger_path, "balances", "--json"]) == 0
    assert json.loads(capsys.readouterr().out) == {"Alice": 150.0, "Bob": 0.0, "Charlie": -150.0}
    assert main(["--ledger", ledger_path, "import-csv", csv_path, "--replace"]) == 0
    assert len(load_ledger(ledger_path).expenses) == 2


def test_import_csv_merges_by_id(ledger_path, tmp_path):
    csv_path = tmp_path / "more.csv"
    csv_path.write_text(
        "id,amount,paid_by,split_between,status\n"
        "e2,300,Bob,Alice;Bob;Charlie,approved\n"
        "e3,90,Charlie,Alice;Bob;Charlie,approved\n",
        encoding="utf-8",
    )
    assert main(["--ledger", ledger_path, "import-csv", str(csv_path)]) == 0
    ledger = load_ledger(ledger_path)
    assert [(e.id, e.amount) for e in ledger.expenses] == [("e1", 300.0), ("e2", 300.0), ("e3", 90.0)]


def test_import_csv_creates_new_ledger(tmp_path, monkeypatch, trip_expenses):
    monkeypatch.setenv("SETTLE_LEDGER_HOME", str(tmp_path))
    csv_path = str(tmp_path / "in.csv")
    export_expenses_to_csv(trip_expenses, csv_path)
    new_path = tmp_path / "fresh.json"
    assert main(["--ledger", str(new_path), "import-csv", csv_path]) == 0
    assert new_path.exists()
    assert len(load_ledger(str(new_path)).expenses) == 2


def test_read_command_on_missing_ledger(tmp_path, capsys):
    assert main(["--ledger", str(tmp_path / "missing.json"), "balances"]) == 1
    assert "not found" in capsys.readouterr().err


def test_malformed_record_reported(tmp_path, capsys):
    path = tmp_path / "odd.json"
    path.write_text(json.dumps({"participants": ["A"], "expenses": ["oops"]}), encoding="utf-8")
    assert main(["--ledger", str(path), "balances"]) == 1
    assert "JSON object" in capsys.readouterr().err


def test_export_excel(ledger_path, tmp_path):
    out = tmp_path / "report.xlsx"
    assert main(["--ledger", ledger_path, "export-excel", str(out), "--start", "2025-12-01"]) == 0
    assert out.exists()


def test_invalid_expense_reported(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({
        "participants": ["A"],
        "expenses": [{"id": "x", "amount": -3, "paidBy": "A", "splitBetween": ["A"], "status": "approved"}],
    }), encoding="utf-8")
    assert main(["--ledger", str(path), "balances"]) == 1
    assert "negative" in capsys.readouterr().err
