"""
Integration tests for the command line interface.

Each invocation opens the database, delivers whatever is due, performs its
action and prints a JSON result, the same way a user runs it from a shell.
"""

import json

import pytest

from checklist.cli import main


pytestmark = pytest.mark.integration


@pytest.fixture
def run_cli(tmp_path, config_file, capsys):
    """Invoke the CLI against a scratch database and parse its JSON output."""
    db_path = tmp_path / "checklist.db"

    def _run(*argv: str):
        exit_code = main([*argv, "--db", str(db_path), "--config", str(config_file)])
        out = capsys.readouterr().out
        return exit_code, out

    return _run


def _json(out: str) -> dict:
    return json.loads(out)


class TestStatus:
    def test_fresh_database(self, run_cli):
        """Should report the seeded counter and every catalog task."""
        exit_code, out = run_cli("--action", "status")
        result = _json(out)

        assert exit_code == 0
        assert result["success"] is True
        assert result["data"]["days_remaining"] == 10
        assert [t["id"] for t in result["data"]["tasks"]] == ["tidy", "journal", "stretch", "reading", "hydrate"]
        assert all(t["phase"] == "idle" for t in result["data"]["tasks"])


    def test_out_of_range_reset_hour(self, tmp_path, capsys):
        """Should still answer in JSON with the default reset hour."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("daily_reset:\n  hour: 25\n")

        exit_code = main(["--action", "status", "--db", str(tmp_path / "bad.db"), "--config", str(config_path)])

        assert exit_code == 0
        assert _json(capsys.readouterr().out)["success"] is True


class TestStartAndCancel:
    def test_start_duration_task(self, run_cli):
        """Should schedule both timers alongside the daily reset."""
        exit_code, out = run_cli("--action", "start", "--task", "stretch")
        assert exit_code == 0
        assert _json(out)["data"]["phase"] == "completing"

        _, out = run_cli("--action", "notifications")
        keys = {n["key"] for n in _json(out)["data"]["notifications"]}

        assert keys == {"stretchTaskCompletion", "stretchTaskCooldown", "dailyTaskReset"}

    def test_start_twice_fails(self, run_cli):
        """A running task should be rejected with a JSON error."""
        run_cli("--action", "start", "--task", "stretch")

        exit_code, out = run_cli("--action", "start", "--task", "stretch")
        result = _json(out)

        assert exit_code == 1
        assert result["success"] is False
        assert "stretch" in result["error"]

    def test_immediate_task_subtracts(self, run_cli):
        """An immediate task is delivered within the same invocation."""
        run_cli("--action", "start", "--task", "tidy")

        _, out = run_cli("--action", "status")
        data = _json(out)["data"]

        assert data["days_remaining"] == 9
        tidy = next(t for t in data["tasks"] if t["id"] == "tidy")
        assert tidy["phase"] == "cooldown"

    def test_cancel_running_task(self, run_cli):
        run_cli("--action", "start", "--task", "reading")

        exit_code, out = run_cli("--action", "cancel", "--task", "reading")

        assert exit_code == 0
        assert _json(out)["success"] is True

        _, out = run_cli("--action", "status")
        assert _json(out)["data"]["days_remaining"] == 10

    def test_cancel_idle_task_fails(self, run_cli):
        exit_code, out = run_cli("--action", "cancel", "--task", "reading")

        assert exit_code == 1
        assert "not running" in _json(out)["error"]

    def test_unknown_task(self, run_cli):
        exit_code, out = run_cli("--action", "start", "--task", "nope")

        assert exit_code == 1
        assert _json(out)["success"] is False

    def test_task_required(self, run_cli):
        exit_code, out = run_cli("--action", "start")

        assert exit_code == 1
        assert "--task required" in _json(out)["error"]


class TestRollAndBoard:
    def test_roll(self, run_cli):
        exit_code, out = run_cli("--action", "roll", "--roll-id", "dailyRoll", "--value", "3")
        result = _json(out)

        assert exit_code == 0
        assert result["data"]["finalValue"] == 3
        assert result["data"]["finished"] is False

    def test_roll_rejects_out_of_range(self, run_cli):
        exit_code, out = run_cli("--action", "roll", "--roll-id", "dailyRoll", "--value", "7")

        assert exit_code == 1
        assert "between 1 and 6" in _json(out)["error"]

    def test_board_prints_text(self, run_cli):
        exit_code, out = run_cli("--action", "board")

        assert exit_code == 0
        assert out.startswith("Days remaining: 10 days")
        assert "Stretch for 15 minutes" in out

    def test_process_reports_counter(self, run_cli):
        exit_code, out = run_cli("--action", "process")

        assert exit_code == 0
        assert _json(out)["data"]["days_remaining"] == 10
