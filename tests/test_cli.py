"""CLI tests."""

import pytest
from typer.testing import CliRunner

from dialdesk.cli import main as cli
from dialdesk.models import CallLog


runner = CliRunner()


@pytest.fixture(autouse=True)
def keep_test_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level=None, log_format=None: None)


@pytest.fixture
def cli_repo(repo, monkeypatch):
    monkeypatch.setattr(cli, "get_repository", lambda: repo)
    return repo


class TestScoreCommand:

    def test_described_lead(self):
        result = runner.invoke(cli.app, [
            "score", "--name", "John Smith Plumbing", "--phone", "07777 123456",
            "--rating", "4.8", "--reviews", "127",
        ])
        assert result.exit_code == 0, result.output
        assert "Score 75" in result.output
        assert "High potential" in result.output

    def test_stored_lead(self, cli_repo, make_lead):
        lead = cli_repo.save_lead(make_lead(total_ratings=8))
        result = runner.invoke(cli.app, ["score", "--id", lead.id])
        assert result.exit_code == 0, result.output
        assert "Score 45" in result.output

    def test_missing_lead(self, cli_repo):
        result = runner.invoke(cli.app, ["score", "--id", "missing"])
        assert result.exit_code == 1


class TestUpdateStatus:

    def test_updates_every_lead_with_phone(self, cli_repo, make_lead):
        first = cli_repo.save_lead(make_lead(phone_number="07700 900123"))
        second = cli_repo.save_lead(make_lead(phone_number="07700 900123"))

        result = runner.invoke(cli.app, ["update-status", "07700 900123", "sent_number"])

        assert result.exit_code == 0, result.output
        assert "Updated all of them" in result.output
        for lead_id in (first.id, second.id):
            stored = cli_repo.get_lead(lead_id)
            assert stored.status == "sent_number"
            assert stored.last_called_at is not None
        assert cli_repo.list_call_logs()[1] == 2

    def test_unknown_status(self, cli_repo):
        result = runner.invoke(cli.app, ["update-status", "07700 900123", "hot"])
        assert result.exit_code == 1
        assert "Unknown status" in result.output

    def test_unknown_phone(self, cli_repo):
        result = runner.invoke(cli.app, ["update-status", "0000", "contacted"])
        assert result.exit_code == 0
        assert "No lead found" in result.output


class TestMaintenance:

    def test_backfills(self, cli_repo, make_lead):
        lead = cli_repo.save_lead(make_lead())
        cli_repo.log_call(CallLog(lead_id=lead.id, call_outcome="no_answer"))

        result = runner.invoke(cli.app, ["backfill-status"])
        assert result.exit_code == 0, result.output
        assert cli_repo.get_lead(lead.id).status == "contacted"

        result = runner.invoke(cli.app, ["backfill-last-called"])
        assert result.exit_code == 0, result.output

    def test_stats(self, cli_repo, make_lead):
        cli_repo.save_lead(make_lead())
        result = runner.invoke(cli.app, ["stats"])
        assert result.exit_code == 0, result.output
        assert "DialDesk Statistics" in result.output

    def test_version(self):
        result = runner.invoke(cli.app, ["version"])
        assert result.exit_code == 0
        assert "DialDesk" in result.output
