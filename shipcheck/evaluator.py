"""
Assertion evaluation.

Turns a probe result or a predicate into a classified Assertion. Which
failures are hard (FAIL) and which are advisory (WARN) is decided by an
explicit per-check policy table, never inferred from the check's code.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Union

from .probes.base import ProbeError, ProbeResult
from .types import Assertion, CheckRecord, Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Policy:
    """Outcomes for a failed predicate and for a probe that errored."""
    on_false: Outcome
    on_error: Outcome
    name: str = ""


# Hard invariant: any failure is FAIL.
REQUIRED = Policy(on_false=Outcome.FAIL, on_error=Outcome.FAIL, name="required")
# Advisory expectation: a violated predicate warns, an unreadable probe still fails.
ADVISORY = Policy(on_false=Outcome.WARN, on_error=Outcome.FAIL, name="advisory")
# Best-effort probe: neither a violation nor a probe error fails the run.
BEST_EFFORT = Policy(on_false=Outcome.WARN, on_error=Outcome.WARN, name="best-effort")


Evidence = Union[bool, ProbeError, ProbeResult]


def evaluate(
    key: str,
    description: str,
    result: Evidence,
    policy: Policy = REQUIRED,
    detail: str = "",
    failure: str = "",
) -> Assertion:
    """
    Classify one validation step.

    Args:
        key: Policy-table key of the step
        description: What is being validated
        result: The predicate value, a ProbeError, or a ProbeResult whose
            value is interpreted as the predicate
        policy: Outcome mapping for a false predicate or a probe error
        detail: What was observed when the step passed
        failure: Explanation used when the predicate is false (defaults to
            ``detail``); a probe error always reports its own cause

    Returns:
        An immutable Assertion
    """
    if isinstance(result, ProbeResult):
        result = result.error if result.error is not None else bool(result.value)

    if isinstance(result, ProbeError):
        return Assertion(key, description, policy.on_error, str(result))
    if result:
        return Assertion(key, description, Outcome.PASS, detail)
    return Assertion(key, description, policy.on_false, failure or detail)


class AssertionLog:
    """
    Incremental builder for one check's assertions.

    Every key recorded must appear in the check's policy table; an unknown
    key raises KeyError, which the harness reports as an internal error.
    """

    def __init__(self, check_id: str, title: str, policies: Mapping[str, Policy]):
        self.check_id = check_id
        self.title = title
        self.policies: Dict[str, Policy] = dict(policies)
        self._assertions: List[Assertion] = []
        self._frozen: Optional[CheckRecord] = None

    def __len__(self) -> int:
        return len(self._assertions)

    def expect(
        self,
        key: str,
        description: str,
        result: Evidence,
        detail: str = "",
        failure: str = "",
    ) -> Assertion:
        """Evaluate ``result`` under the policy for ``key`` and append it."""
        if self._frozen is not None:
            raise RuntimeError(f"check {self.check_id} is already complete")
        try:
            policy = self.policies[key]
        except KeyError:
            raise KeyError(f"assertion {key!r} is not in the policy table of {self.check_id}") from None
        assertion = evaluate(key, description, result, policy, detail, failure)
        logger.debug("%s/%s -> %s %s", self.check_id, key, assertion.outcome.value, assertion.detail)
        self._assertions.append(assertion)
        return assertion

    def freeze(self) -> CheckRecord:
        if self._frozen is None:
            self._frozen = CheckRecord(self.check_id, self.title, tuple(self._assertions))
        return self._frozen
