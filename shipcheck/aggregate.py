"""Reduction of a run record into its verdict."""

from .types import Outcome, Run, Verdict


def aggregate(run: Run) -> Verdict:
    """
    Count assertions by outcome across all checks of ``run``.

    The exit code is 1 when any assertion failed and 0 otherwise; warnings
    never change it.
    """
    counts = {outcome: 0 for outcome in Outcome}
    for record in run.checks:
        for assertion in record.assertions:
            counts[assertion.outcome] += 1
    return Verdict(
        pass_count=counts[Outcome.PASS],
        warn_count=counts[Outcome.WARN],
        fail_count=counts[Outcome.FAIL],
    )
