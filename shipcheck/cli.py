"""
Update pipeline validation CLI.

Command-line interface for validating the unattended update pipeline
before it is allowed to run.

Usage:
    python -m shipcheck
    python -m shipcheck --format markdown --output report.md
    python -m shipcheck --only job_config --only provenance -v
    python -m shipcheck --live
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from . import __version__
from .aggregate import aggregate
from .checks import get_all_checks
from .config import Settings
from .report import generate_report, print_summary, verdict_line
from .runner import Harness, Probes, select_checks
from .trigger import follow_up_commands, trigger_job

logger = logging.getLogger(__name__)


class StopFlag:
    """Cancellation flag set by SIGINT/SIGTERM and polled between checks."""

    def __init__(self) -> None:
        self.requested = False

    def __call__(self) -> bool:
        return self.requested

    def request(self, signum: int, _frame: object) -> None:
        logger.warning("received %s, stopping after the current check", signal.Signals(signum).name)
        self.requested = True


def configure_logging(verbosity: int, default_level: str = "WARNING") -> None:
    """Send log records to stderr so they never mix with report output."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.getLevelName(default_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shipcheck",
        description="Validate the unattended update pipeline before it runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s
    %(prog)s --format markdown --output report.md
    %(prog)s --only job_config --quiet
    %(prog)s --live

Settings are read from SHIPCHECK_* environment variables and .env.

Exit codes:
    0 - No failed assertions (warnings allowed)
    1 - At least one failed assertion
    2 - Usage or configuration error
        """,
    )

    parser.add_argument(
        "--format", "-f",
        type=str,
        choices=["text", "markdown", "json"],
        default="text",
        help="Output format (default: text)",
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only output the verdict line",
    )

    parser.add_argument(
        "--only",
        action="append",
        metavar="ID",
        default=None,
        help="Run only this check (repeatable; see --list)",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List the declared checks and exit",
    )

    parser.add_argument(
        "--live",
        action="store_true",
        help="Trigger the scheduled job after reporting (does not affect the exit code)",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def _print_checks() -> None:
    for check in get_all_checks():
        print(f"{check.check_id:<24} {check.title}")
        print(f"{'':<24} {check.description}")


def _run_live(settings: Settings) -> None:
    print()
    print("Live cron trigger")
    outcome = trigger_job(settings)
    if outcome.result is not None:
        output = (outcome.result.out + outcome.result.err).strip()
        if output:
            print(output)
    print(outcome.summary())
    print()
    print("Verify with:")
    for command in follow_up_commands(settings):
        print(f"  {command}")


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code: 0 if no assertion failed, 1 if any failed, 2 if error
    """
    parser = build_parser()
    parsed = parser.parse_args(args)

    if parsed.list:
        _print_checks()
        return 0

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"Error: invalid settings:\n{e}", file=sys.stderr)
        return 2

    configure_logging(parsed.verbose, settings.log_level)

    try:
        checks = select_checks(parsed.only)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    stop = StopFlag()
    previous = {sig: signal.signal(sig, stop.request) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        with Probes.from_settings(settings) as probes:
            run = Harness(checks, should_stop=stop).run(probes)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    verdict = aggregate(run)

    if parsed.quiet:
        print(verdict_line(verdict))
    else:
        output = generate_report(run, format=parsed.format, verdict=verdict)
        if parsed.output:
            output_path = Path(parsed.output)
            try:
                output_path.write_text(output + "\n", encoding="utf-8")
            except OSError as e:
                print(f"Error: cannot write report to {output_path}: {e}", file=sys.stderr)
                return 2
            print(f"Report written to: {output_path}")
            print_summary(run, verdict)
        else:
            print(output)

    if parsed.live and not run.aborted:
        _run_live(settings)

    return verdict.exit_code


if __name__ == "__main__":
    sys.exit(main())
