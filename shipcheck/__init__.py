"""
shipcheck

A validation harness for an unattended update pipeline. It probes the
pipeline's working copy, its scheduler config, its publishing CLI and the
hosted mirror, and reduces every check to one pass/warn/fail verdict with
an exit code that can gate automation.

Only FAIL assertions change the exit code:
    0 - nothing failed (warnings allowed)
    1 - at least one assertion failed
"""

__version__ = "0.1.0"

from .types import (
    Assertion,
    CheckRecord,
    Outcome,
    Run,
    Verdict,
)
from .evaluator import (
    ADVISORY,
    BEST_EFFORT,
    REQUIRED,
    AssertionLog,
    Policy,
    evaluate,
)
from .aggregate import aggregate
from .checks import Check, get_all_checks, get_check
from .config import Settings
from .runner import Harness, Probes, run_checks
from .report import generate_report, verdict_line

__all__ = [
    # Types
    "Assertion",
    "CheckRecord",
    "Outcome",
    "Run",
    "Verdict",
    # Evaluation
    "ADVISORY",
    "BEST_EFFORT",
    "REQUIRED",
    "AssertionLog",
    "Policy",
    "evaluate",
    "aggregate",
    # Checks
    "Check",
    "get_all_checks",
    "get_check",
    # Runner
    "Harness",
    "Probes",
    "Settings",
    "run_checks",
    # Report
    "generate_report",
    "verdict_line",
]
