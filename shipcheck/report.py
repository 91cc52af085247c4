"""
Validation report generation.

Renders a Run and its Verdict as plain text, Markdown or JSON. Rendering is
a projection of the run: the counts come from ``aggregate`` and are never
recomputed here.
"""

import json
from typing import Any, Dict, List, Optional

from .aggregate import aggregate
from .types import Assertion, CheckRecord, Outcome, Run, Verdict

TAGS = {
    Outcome.PASS: "[PASS]",
    Outcome.WARN: "[WARN]",
    Outcome.FAIL: "[FAIL]",
}


def verdict_line(verdict: Verdict) -> str:
    """One-line verdict, e.g. ``FAILED: 3 failure(s), 1 warning(s)``."""
    if verdict.fail_count > 0:
        return f"FAILED: {verdict.fail_count} failure(s), {verdict.warn_count} warning(s)"
    if verdict.warn_count > 0:
        return f"PASSED WITH WARNINGS: {verdict.warn_count} warning(s)"
    return "ALL PASSED"


def totals_line(verdict: Verdict) -> str:
    return (
        f"Results: {verdict.pass_count} passed, {verdict.warn_count} warnings, "
        f"{verdict.fail_count} failed ({verdict.total} assertions)"
    )


def generate_report(run: Run, format: str = "text", verdict: Optional[Verdict] = None) -> str:
    """
    Generate a full validation report in the specified format.

    Args:
        run: The completed run
        format: Output format ("text", "markdown", "json")
        verdict: Precomputed verdict for ``run``; aggregated when omitted

    Returns:
        Formatted report string
    """
    verdict = verdict or aggregate(run)
    if format == "text":
        return _generate_text_report(run, verdict)
    elif format == "markdown":
        return _generate_markdown_report(run, verdict)
    elif format == "json":
        return _generate_json_report(run, verdict)
    else:
        raise ValueError(f"Unknown format: {format}")


def _assertion_text(assertion: Assertion) -> str:
    line = f"  {TAGS[assertion.outcome]} {assertion.description}"
    if assertion.detail:
        line += f" - {assertion.detail}"
    return line


def _generate_text_report(run: Run, verdict: Verdict) -> str:
    """Generate a plain-text report."""
    lines = []

    lines.append("=" * 60)
    lines.append("UPDATE PIPELINE VALIDATION")
    lines.append("=" * 60)
    lines.append(f"Started: {run.started_at.isoformat()}")
    if run.duration_seconds is not None:
        lines.append(f"Duration: {run.duration_seconds:.1f}s")
    lines.append("")

    for record in run.checks:
        lines.append(f"{record.title} ({record.check_id})")
        for assertion in record.assertions:
            lines.append(_assertion_text(assertion))
        lines.append("")

    lines.append("-" * 60)
    lines.append(totals_line(verdict))
    if run.aborted:
        lines.append("Run was aborted before every check had run.")
    lines.append(verdict_line(verdict))
    lines.append("-" * 60)

    return "\n".join(lines)


def _generate_markdown_report(run: Run, verdict: Verdict) -> str:
    """Generate a Markdown-formatted report."""
    lines = []

    lines.append("# Update Pipeline Validation Report")
    lines.append("")
    lines.append(f"**Started:** {run.started_at.isoformat()}")
    if run.duration_seconds is not None:
        lines.append(f"**Duration:** {run.duration_seconds:.1f}s")
    lines.append("")

    lines.append("## Verdict")
    lines.append("")
    lines.append(f"**{verdict_line(verdict)}**")
    lines.append("")
    lines.append(f"- **Passed:** {verdict.pass_count}")
    lines.append(f"- **Warnings:** {verdict.warn_count}")
    lines.append(f"- **Failed:** {verdict.fail_count}")
    if run.aborted:
        lines.append("- **Aborted:** yes")
    lines.append("")

    lines.append("## Checks")
    lines.append("")
    for record in run.checks:
        _append_check_markdown(lines, record)

    failures = run.get_failures()
    if failures:
        lines.append("## Failure Details")
        lines.append("")
        for record, assertion in failures:
            lines.append(f"- `{record.check_id}/{assertion.key}`: {assertion.detail or assertion.description}")
        lines.append("")

    warnings = run.get_warnings()
    if warnings:
        lines.append("## Warnings")
        lines.append("")
        for record, assertion in warnings:
            lines.append(f"- `{record.check_id}/{assertion.key}`: {assertion.detail or assertion.description}")
        lines.append("")

    return "\n".join(lines)


def _append_check_markdown(lines: List[str], record: CheckRecord) -> None:
    """Append a single check to the markdown output."""
    lines.append(f"### {record.title} `{record.check_id}`")
    lines.append("")
    for assertion in record.assertions:
        entry = f"- {TAGS[assertion.outcome]} {assertion.description}"
        if assertion.detail:
            entry += f" ({assertion.detail})"
        lines.append(entry)
    lines.append("")


def _serialize_record(record: CheckRecord) -> Dict[str, Any]:
    return {
        "check_id": record.check_id,
        "title": record.title,
        "worst": record.worst.value,
        "assertions": [
            {
                "key": a.key,
                "description": a.description,
                "outcome": a.outcome.value,
                "detail": a.detail,
            }
            for a in record.assertions
        ],
    }


def _generate_json_report(run: Run, verdict: Verdict) -> str:
    """Generate a JSON report."""
    data = {
        "started_at": run.started_at.isoformat(),
        "finished_at": run.finished_at.isoformat() if run.finished_at else None,
        "aborted": run.aborted,
        "verdict": {
            "label": verdict.label,
            "exit_code": verdict.exit_code,
            "pass_count": verdict.pass_count,
            "warn_count": verdict.warn_count,
            "fail_count": verdict.fail_count,
        },
        "checks": [_serialize_record(r) for r in run.checks],
    }
    return json.dumps(data, indent=2)


def print_summary(run: Run, verdict: Optional[Verdict] = None) -> None:
    """Print a brief summary to stdout."""
    verdict = verdict or aggregate(run)
    print()
    print("=" * 50)
    print(verdict_line(verdict))
    print("=" * 50)
    print(f"Passed: {verdict.pass_count}")
    print(f"Warnings: {verdict.warn_count}")
    print(f"Failed: {verdict.fail_count}")
    for record, assertion in run.get_failures():
        print(f"  [FAIL] {record.title}: {assertion.description}")
    print()
