"""
Tests for report rendering.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from shipcheck.aggregate import aggregate
from shipcheck.report import generate_report, print_summary, verdict_line
from shipcheck.types import Assertion, CheckRecord, Outcome, Run, Verdict


@pytest.fixture
def sample_run():
    started = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    run = Run(started_at=started, finished_at=started + timedelta(seconds=2.5))
    run.append(CheckRecord("repo_health", "Repository health", (
        Assertion("state_present", ".git directory exists", Outcome.PASS, "/x/.git"),
        Assertion("on_primary_branch", "On branch main", Outcome.FAIL, "on branch 'dev', expected main"),
    )))
    run.append(CheckRecord("provenance", "Provenance verification", (
        Assertion("heads_match", "local HEAD == remote HEAD", Outcome.WARN, "may need push"),
    )))
    return run


class TestVerdictLine:
    """Tests for the one-line verdict."""

    def test_labels(self):
        assert verdict_line(Verdict(3, 0, 0)) == "ALL PASSED"
        assert verdict_line(Verdict(3, 2, 0)).startswith("PASSED WITH WARNINGS")
        assert verdict_line(Verdict(3, 2, 1)) == "FAILED: 1 failure(s), 2 warning(s)"


class TestGenerateReport:
    """Tests for the three report formats."""

    def test_text_tags_every_assertion(self, sample_run):
        output = generate_report(sample_run)
        assert "  [PASS] .git directory exists - /x/.git" in output
        assert "  [FAIL] On branch main - on branch 'dev', expected main" in output
        assert "  [WARN] local HEAD == remote HEAD - may need push" in output
        assert "Results: 1 passed, 1 warnings, 1 failed (3 assertions)" in output
        assert output.rstrip().splitlines()[-2] == "FAILED: 1 failure(s), 1 warning(s)"

    def test_markdown(self, sample_run):
        output = generate_report(sample_run, format="markdown")
        assert output.startswith("# Update Pipeline Validation Report")
        assert "### Repository health `repo_health`" in output
        assert "## Failure Details" in output
        assert "`repo_health/on_primary_branch`" in output
        assert "## Warnings" in output

    def test_json_carries_counts_and_assertions(self, sample_run):
        data = json.loads(generate_report(sample_run, format="json"))
        assert data["verdict"] == {
            "label": "failed",
            "exit_code": 1,
            "pass_count": 1,
            "warn_count": 1,
            "fail_count": 1,
        }
        assert [c["check_id"] for c in data["checks"]] == ["repo_health", "provenance"]
        assert data["checks"][0]["assertions"][1]["outcome"] == "fail"
        assert data["aborted"] is False

    def test_rendering_does_not_change_counts(self, sample_run):
        before = aggregate(sample_run)
        for fmt in ("text", "markdown", "json"):
            generate_report(sample_run, format=fmt)
        assert aggregate(sample_run) == before

    def test_unknown_format(self, sample_run):
        with pytest.raises(ValueError, match="Unknown format"):
            generate_report(sample_run, format="xml")

    def test_aborted_run_is_flagged(self, sample_run):
        sample_run.aborted = True
        assert "aborted" in generate_report(sample_run)

    def test_print_summary(self, sample_run, capsys):
        print_summary(sample_run)
        out = capsys.readouterr().out
        assert "FAILED: 1 failure(s), 1 warning(s)" in out
        assert "[FAIL] Repository health: On branch main" in out
