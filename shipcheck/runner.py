"""
Update pipeline validation runner.

Wires the probe surfaces from the settings and executes the declared checks
against them, one after another, into a single Run record.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .checks import Check, ProbeContext, get_all_checks
from .config import Settings
from .probes.base import CommandRunner
from .probes.documents import DocumentReader
from .probes.hosting import HostingClient
from .probes.scheduler import JobStore
from .probes.tools import ToolProbe
from .probes.vcs import GitRepository, VersionControl
from .types import Assertion, CheckRecord, Outcome, Run

logger = logging.getLogger(__name__)

NO_ASSERTIONS = "no assertions recorded"
ABORTED_ID = "aborted"


@dataclass
class Probes:
    """
    Implementation of ProbeContext backed by the real collaborators.

    All command-line probes share one CommandRunner so a single timeout
    applies to every process the run starts.
    """

    settings: Settings
    skill: VersionControl
    upstream: VersionControl
    documents: DocumentReader
    hosting: HostingClient
    jobs: JobStore
    tools: ToolProbe

    @classmethod
    def from_settings(cls, settings: Settings) -> "Probes":
        runner = CommandRunner(timeout_s=settings.command_timeout_seconds)
        return cls(
            settings=settings,
            skill=GitRepository(settings.skill_dir, runner),
            upstream=GitRepository(settings.upstream_dir, runner),
            documents=DocumentReader(settings.skill_dir),
            hosting=HostingClient(
                base_url=settings.hosting_api_url,
                token=settings.hosting_token,
                timeout_s=settings.http_timeout_seconds,
            ),
            jobs=JobStore(settings.jobs_file),
            tools=ToolProbe(runner),
        )

    def close(self) -> None:
        self.hosting.close()

    def __enter__(self) -> "Probes":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _fault(check: Check, error: Exception) -> CheckRecord:
    detail = f"{type(error).__name__}: {error}"
    return CheckRecord(
        check.check_id,
        check.title,
        (Assertion("internal_error", "Check completed", Outcome.FAIL, f"internal error: {detail}"),),
    )


class Harness:
    """
    Runs pipeline checks in declared order.

    Every check runs, whatever the outcome of the ones before it. A fault
    escaping a check is recorded as a single FAIL for that check and the
    run moves on. ``should_stop`` is consulted between checks only, so a
    check is never interrupted with its fixtures in place.

    Usage:
        with Probes.from_settings(Settings()) as probes:
            run = Harness().run(probes)
        print(aggregate(run).label)
    """

    def __init__(
        self,
        checks: Optional[List[Check]] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize the harness.

        Args:
            checks: Checks to run, in order. If None, uses all declared checks.
            should_stop: Cancellation flag polled before each check.
        """
        self.checks = checks if checks is not None else get_all_checks()
        self.should_stop = should_stop or (lambda: False)

    def run_check(self, check: Check, ctx: ProbeContext) -> CheckRecord:
        """Run one check, converting an escaping fault into a FAIL record."""
        log = check.new_log()
        try:
            check.run(ctx, log)
        except Exception as e:
            logger.exception("check %s raised", check.check_id)
            return _fault(check, e)

        if len(log) == 0:
            logger.error("check %s recorded no assertions", check.check_id)
            return CheckRecord(
                check.check_id,
                check.title,
                (Assertion("no_assertions", "Check recorded assertions", Outcome.FAIL, NO_ASSERTIONS),),
            )
        return log.freeze()

    def run(self, ctx: ProbeContext) -> Run:
        """
        Execute the checks against ``ctx``.

        Returns:
            The completed Run, with ``aborted`` set when cancellation was
            requested before every check had run
        """
        run = Run(started_at=datetime.now(timezone.utc))

        for index, check in enumerate(self.checks):
            if self.should_stop():
                skipped = [c.check_id for c in self.checks[index:]]
                logger.warning("run aborted before %s", check.check_id)
                run.aborted = True
                run.append(CheckRecord(
                    ABORTED_ID,
                    "Run aborted",
                    (Assertion(
                        "aborted",
                        "Run completed every declared check",
                        Outcome.FAIL,
                        f"aborted before {check.check_id} ({len(skipped)} check(s) not run)",
                    ),),
                ))
                break

            logger.info("running %s", check.check_id)
            record = self.run_check(check, ctx)
            logger.info("%s finished: %s", check.check_id, record.worst.value)
            run.append(record)

        run.finished_at = datetime.now(timezone.utc)
        return run


def select_checks(only: Optional[List[str]] = None) -> List[Check]:
    """
    Declared checks, optionally narrowed to ``only``.

    Declared order is preserved whatever the order of ``only``. Raises
    ValueError naming every unknown identifier.
    """
    checks = get_all_checks()
    if not only:
        return checks
    known = {c.check_id for c in checks}
    unknown = [check_id for check_id in only if check_id not in known]
    if unknown:
        raise ValueError(f"unknown check id(s): {', '.join(unknown)}")
    return [c for c in checks if c.check_id in set(only)]


def run_checks(
    settings: Optional[Settings] = None,
    only: Optional[List[str]] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> Run:
    """
    Convenience function to run the checks against live systems.

    Args:
        settings: Harness settings. If None, loaded from the environment.
        only: Optional subset of check ids
        should_stop: Optional cancellation flag

    Returns:
        The completed Run
    """
    settings = settings or Settings()
    harness = Harness(select_checks(only), should_stop=should_stop)
    with Probes.from_settings(settings) as probes:
        return harness.run(probes)
