import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from library_catalog.main import app
from library_catalog.ui_helpers import OUTPUT_MODE_ENV, print_loans_result

runner = CliRunner()


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


@pytest.fixture
def past_due_loan(lib, member, book):
    # Due on the fixed test date, which is in the past for the CLI's real clock
    return lib.loans.create(member.id, book.id, lib.members.clock())


def test_init_db(tmp_path):
    db_file = str(tmp_path / "fresh.db")
    result = runner.invoke(app, ["--db-file", db_file, "init-db"])
    assert result.exit_code == 0
    assert f"Database initialized at {db_file}" in result.stdout
    assert (tmp_path / "fresh.db").exists()


def test_stats_plain(lib, book, member):
    result = runner.invoke(app, ["--db-file", lib.db_file, "stats"])
    assert result.exit_code == 0
    assert "Available Books: 1" in result.stdout
    assert "Active Members: 1" in result.stdout
    assert "Overdue Loans: 0" in result.stdout


def test_stats_json(lib, book):
    result = runner.invoke(app, ["--output", "json", "--db-file", lib.db_file, "stats"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"available_books": 1, "active_members": 0, "overdue_loans": 0}


def test_sweep_and_overdue(lib, past_due_loan):
    result = runner.invoke(app, ["--db-file", lib.db_file, "overdue"])
    assert "No overdue loans." in result.stdout

    result = runner.invoke(app, ["--db-file", lib.db_file, "sweep"])
    assert result.exit_code == 0
    assert "Marked 1 loan(s) as OVERDUE." in result.stdout

    result = runner.invoke(app, ["--db-file", lib.db_file, "sweep"])
    assert "Marked 0 loan(s) as OVERDUE." in result.stdout

    result = runner.invoke(app, ["--db-file", lib.db_file, "overdue"])
    assert result.exit_code == 0
    assert f"Loan {past_due_loan.id}: member {past_due_loan.member_id}" in result.stdout
    assert "[OVERDUE]" in result.stdout


def test_quota(lib, member, book):
    lib.loans.create(member.id, book.id, lib.members.clock())

    result = runner.invoke(app, ["--db-file", lib.db_file, "quota", str(member.id)])
    assert result.exit_code == 0
    assert "Remaining quota: 2 / 3" in result.stdout
    assert "Can borrow: yes" in result.stdout


def test_quota_json(lib, member):
    result = runner.invoke(app, ["-o", "json", "--db-file", lib.db_file, "quota", str(member.id)])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["remainingQuota"] == 3


def test_quota_unknown_member_exits_with_error(lib):
    result = runner.invoke(app, ["--db-file", lib.db_file, "quota", "404"])
    assert result.exit_code == 1
    assert "Error: Member with id 404 not found" in result.stdout


@patch("subprocess.run")
def test_serve_command(mock_subprocess_run, tmp_path):
    db_file = str(tmp_path / "serve.db")
    result = runner.invoke(app, ["--db-file", db_file, "serve", "--host", "0.0.0.0", "--port", "9000"])
    assert result.exit_code == 0
    assert "Starting API on http://0.0.0.0:9000/" in result.stdout

    mock_subprocess_run.assert_called_once()
    args = mock_subprocess_run.call_args[0][0]
    assert args[1:] == ["-m", "uvicorn", "library_catalog.api:app", "--host", "0.0.0.0", "--port", "9000"]
    assert mock_subprocess_run.call_args[1]["env"]["LIBRARY_DB_FILE"] == db_file


def test_loan_printer_uses_caller_labels(capsys, lib, member, book):
    print_loans_result([], title="Member loans", empty_message="No loans for this member.")
    assert capsys.readouterr().out.strip() == "No loans for this member."

    loan = lib.loans.create(member.id, book.id, lib.members.clock())
    print_loans_result([loan])
    assert f"Loan {loan.id}: member {member.id}, book {book.id}" in capsys.readouterr().out
