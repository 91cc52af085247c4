"""
Tests for the command-line entry point and the live trigger.
"""

import json

import pytest

from conftest import requires_git, write_jobs, write_skill_tree
from shipcheck import cli
from shipcheck.config import Settings
from shipcheck.probes.base import TOOL_NOT_FOUND, CommandRunner, ProbeError
from shipcheck.trigger import TriggerResult, follow_up_commands, trigger_job


@pytest.fixture
def cli_env(monkeypatch, temp_dir, make_context, settings):
    """Route the CLI to a fake context built from a healthy file tree."""
    monkeypatch.chdir(temp_dir)
    write_skill_tree(settings.skill_dir)
    write_jobs(settings.jobs_file)
    ctx = make_context()
    monkeypatch.setattr(cli.Probes, "from_settings", lambda _settings: ctx)
    return settings


class TestMain:
    """Tests for argument handling and exit codes."""

    def test_list(self, capsys):
        assert cli.main(["--list"]) == 0
        out = capsys.readouterr().out
        assert "repo_health" in out
        assert "remote_mirror" in out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            cli.main(["--version"])
        assert info.value.code == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_unknown_check_is_usage_error(self, cli_env, capsys):
        assert cli.main(["--only", "nope"]) == 2
        assert "unknown check id" in capsys.readouterr().err

    def test_invalid_settings(self, monkeypatch, temp_dir, capsys):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("SHIPCHECK_COMMAND_TIMEOUT_SECONDS", "0")
        assert cli.main([]) == 2
        assert "invalid settings" in capsys.readouterr().err

    def test_healthy_run_exits_zero(self, cli_env, capsys):
        assert cli.main([]) == 0
        out = capsys.readouterr().out
        assert "[PASS]" in out
        assert "[FAIL]" not in out

    def test_failure_exits_one(self, cli_env, capsys):
        write_jobs(cli_env.jobs_file, timeout=60)
        assert cli.main(["--only", "job_config", "--quiet"]) == 1
        assert capsys.readouterr().out.strip() == "FAILED: 1 failure(s), 0 warning(s)"

    def test_warnings_exit_zero(self, cli_env, capsys):
        message = "git add references/CURRENT-CONTEXT.md package.json\nGIT_OK\nSKIP_CLAWHUB\n"
        write_jobs(cli_env.jobs_file, message=message)
        assert cli.main(["--only", "job_config", "--quiet"]) == 0
        assert capsys.readouterr().out.startswith("PASSED WITH WARNINGS")

    def test_json_output_file(self, cli_env, temp_dir, capsys):
        target = temp_dir / "report.json"
        assert cli.main(["--only", "version_bump", "--format", "json", "--output", str(target)]) == 0
        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["verdict"]["fail_count"] == 0
        assert [c["check_id"] for c in data["checks"]] == ["version_bump"]
        assert "Report written to" in capsys.readouterr().out

    def test_unwritable_output(self, cli_env, temp_dir):
        target = temp_dir / "missing-dir" / "report.txt"
        assert cli.main(["--only", "version_bump", "--output", str(target)]) == 2

    def test_live_trigger_never_changes_exit_code(self, cli_env, monkeypatch, capsys):
        calls = []

        def fake_trigger(settings):
            calls.append(settings)
            return TriggerResult(["pnpm"], error=ProbeError(TOOL_NOT_FOUND, "pnpm"))

        monkeypatch.setattr(cli, "trigger_job", fake_trigger)
        assert cli.main(["--only", "version_bump", "--live"]) == 0
        assert len(calls) == 1
        assert "tool not found: pnpm" in capsys.readouterr().out


class TestStopFlag:
    """Tests for the signal-driven cancellation flag."""

    def test_request(self):
        import signal

        flag = cli.StopFlag()
        assert flag() is False
        flag.request(signal.SIGINT, None)
        assert flag() is True


class TestTrigger:
    """Tests for the live trigger."""

    def test_missing_command(self):
        settings = Settings(_env_file=None, live_command="shipcheck-missing-tool run {job_id}")
        result = trigger_job(settings)
        assert not result.ok
        assert result.error.cause == TOOL_NOT_FOUND
        assert result.argv[-1] == settings.job_id

    @requires_git
    def test_successful_command(self):
        settings = Settings(_env_file=None, live_command="git --version")
        result = trigger_job(settings, CommandRunner(timeout_s=30))
        assert result.ok
        assert result.summary() == "git --version: exited 0"

    def test_follow_up_commands(self):
        settings = Settings(_env_file=None)
        commands = follow_up_commands(settings)
        assert any("repos/Glucksberg/pr-ship/commits/main" in c for c in commands)
