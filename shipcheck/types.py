"""
Core types for the update pipeline validation harness.

This module defines the data structures used throughout the harness for
representing assertion outcomes, per-check records, the run record and the
derived verdict.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Outcome(Enum):
    """
    Severity of a single assertion.

    Ordered FAIL > WARN > PASS. Only FAIL affects the exit code; WARN marks
    an advisory expectation that was not met.
    """
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def __lt__(self, other: "Outcome") -> bool:
        if not isinstance(other, Outcome):
            return NotImplemented
        return self.rank < other.rank


_RANK: Dict[Outcome, int] = {Outcome.PASS: 0, Outcome.WARN: 1, Outcome.FAIL: 2}


@dataclass(frozen=True)
class Assertion:
    """
    One classified validation step.

    ``key`` identifies the step inside its check's policy table;
    ``description`` says what was validated and ``detail`` what was observed.
    """
    key: str
    description: str
    outcome: Outcome
    detail: str = ""

    @property
    def passed(self) -> bool:
        return self.outcome == Outcome.PASS

    @property
    def failed(self) -> bool:
        return self.outcome == Outcome.FAIL


@dataclass(frozen=True)
class CheckRecord:
    """
    The assertions one check produced, in evaluation order.

    Built by an AssertionLog while the check runs and frozen when it returns.
    """
    check_id: str
    title: str
    assertions: Tuple[Assertion, ...] = ()

    @property
    def worst(self) -> Outcome:
        """Most severe outcome in this record (PASS when empty)."""
        return max((a.outcome for a in self.assertions), key=lambda o: o.rank, default=Outcome.PASS)

    def count(self, outcome: Outcome) -> int:
        return sum(1 for a in self.assertions if a.outcome == outcome)


@dataclass
class Run:
    """
    Complete record of one harness invocation.

    The run owns its check records; records are appended in completion order
    and never modified afterwards.
    """
    started_at: datetime
    finished_at: Optional[datetime] = None
    checks: List[CheckRecord] = field(default_factory=list)
    aborted: bool = False

    def append(self, record: CheckRecord) -> None:
        self.checks.append(record)

    @property
    def assertions(self) -> List[Assertion]:
        return [a for record in self.checks for a in record.assertions]

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def get_failures(self) -> List[Tuple[CheckRecord, Assertion]]:
        """Get every FAIL assertion with the check it belongs to."""
        return [(r, a) for r in self.checks for a in r.assertions if a.outcome == Outcome.FAIL]

    def get_warnings(self) -> List[Tuple[CheckRecord, Assertion]]:
        """Get every WARN assertion with the check it belongs to."""
        return [(r, a) for r in self.checks for a in r.assertions if a.outcome == Outcome.WARN]


VERDICT_FAILED = "failed"
VERDICT_WARNINGS = "passed with warnings"
VERDICT_PASSED = "all passed"


@dataclass(frozen=True)
class Verdict:
    """Aggregate totals for a run. Derived, never stored on the run."""
    pass_count: int
    warn_count: int
    fail_count: int

    @property
    def exit_code(self) -> int:
        return 1 if self.fail_count > 0 else 0

    @property
    def label(self) -> str:
        if self.fail_count > 0:
            return VERDICT_FAILED
        if self.warn_count > 0:
            return VERDICT_WARNINGS
        return VERDICT_PASSED

    @property
    def total(self) -> int:
        return self.pass_count + self.warn_count + self.fail_count
