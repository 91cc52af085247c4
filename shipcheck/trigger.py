"""
Live trigger of the scheduled update job.

Runs the configured job-scheduler command once, after the verdict has been
reported. Its outcome is informational: it is logged and returned, and the
run's exit code never depends on it.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .config import Settings
from .probes.base import CmdResult, CommandRunner, ProbeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerResult:
    argv: List[str]
    result: Optional[CmdResult] = None
    error: Optional[ProbeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None and self.result.ok

    def summary(self) -> str:
        command = " ".join(self.argv)
        if self.error is not None:
            return f"{command}: {self.error}"
        return f"{command}: exited {self.result.rc}"


def trigger_job(settings: Settings, runner: Optional[CommandRunner] = None) -> TriggerResult:
    """Run the live command once and capture what happened."""
    argv = settings.live_argv()
    runner = runner or CommandRunner(timeout_s=settings.live_timeout_seconds)
    logger.info("triggering %s", " ".join(argv))
    try:
        result = runner.run(argv)
    except ProbeError as e:
        logger.warning("live trigger failed: %s", e)
        return TriggerResult(argv, error=e)

    if not result.ok:
        logger.warning("live trigger exited %s", result.rc)
    return TriggerResult(argv, result=result)


def follow_up_commands(settings: Settings) -> List[str]:
    """Commands to verify the triggered job published a new commit."""
    return [
        f"cd {settings.skill_dir} && git log --oneline -3",
        f"gh api repos/{settings.repository_slug}/commits/{settings.primary_branch} --jq '.sha[:7]'",
    ]
