"""Tests for the command line interface."""

import json
from datetime import date

import pytest

from gig_ledger.calculators.periods import current_quarter
from gig_ledger.cli import GigLedgerCli


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"


def run(database_url, *args):
    return GigLedgerCli().run(["--database-url", database_url, *args])


class TestCli:
    """Test CLI commands end to end against a file database."""

    def test_no_command_prints_help(self, capsys):
        assert GigLedgerCli().run([]) == 1
        assert "gig-ledger" in capsys.readouterr().out

    def test_summary_on_empty_database(self, database_url, capsys):
        assert run(database_url, "init-db") == 0
        capsys.readouterr()

        code = run(
            database_url,
            "summary",
            "--user-id",
            "1",
            "--period",
            "quarterly",
            "--year",
            "2025",
            "--quarter",
            "2",
        )

        output = json.loads(capsys.readouterr().out)
        assert code == 0
        assert output["label"] == "Q2 2025"
        assert output["booking_count"] == 0
        assert output["estimated_tax"] == "0"

    def test_invalid_period_reports_error(self, database_url, capsys):
        run(database_url, "init-db")

        code = run(database_url, "summary", "--user-id", "1", "--year", "2025")

        assert code == 1
        assert "Month (1-12) is required" in capsys.readouterr().err

    def test_promote_and_lifetime(self, database_url, capsys):
        run(database_url, "init-db")
        capsys.readouterr()

        assert run(database_url, "promote-statuses", "--user-id", "1", "--today", "2025-03-10") == 0
        assert json.loads(capsys.readouterr().out) == {"user_id": 1, "promoted": 0}

        assert run(database_url, "lifetime", "--user-id", "1") == 0
        assert json.loads(capsys.readouterr().out)["booking_count"] == 0

    def test_quarter_defaults_to_current(self, database_url, capsys):
        run(database_url, "init-db")
        capsys.readouterr()

        code = run(
            database_url, "summary", "--user-id", "1", "--period", "quarterly", "--year", "2025"
        )

        output = json.loads(capsys.readouterr().out)
        assert code == 0
        assert output["label"] == f"Q{current_quarter(date.today())} 2025"
