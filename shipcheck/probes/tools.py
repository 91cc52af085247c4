"""External CLI availability and authentication probe."""

import shutil
from typing import Optional

from .base import COMMAND_FAILED, TOOL_NOT_FOUND, CommandRunner, ProbeError, ProbeResult, capture


class ToolProbe:
    """Resolves a CLI on the execution path and runs its identity call."""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    def resolve(self, tool: str) -> ProbeResult[str]:
        """Absolute path of ``tool`` as found on PATH."""
        location = shutil.which(tool)
        if location is None:
            return ProbeResult.failed(TOOL_NOT_FOUND, f"{tool} not found in PATH")
        return ProbeResult.of(location)

    def identity(self, tool: str, subcommand: str = "whoami") -> ProbeResult[str]:
        """Run ``<tool> whoami`` and return the reported identity."""

        def query() -> str:
            r = self.runner.run([tool, subcommand])
            if not r.ok:
                reason = (r.err or r.out).strip().splitlines()
                raise ProbeError(
                    COMMAND_FAILED,
                    f"{tool} {subcommand} exited {r.rc}" + (f" ({reason[-1]})" if reason else ""),
                )
            return r.out.strip()

        return capture(query)
