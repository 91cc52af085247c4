"""
Probe primitives.

A probe is a read-only query against one external collaborator. Probes
never raise to their callers: every query returns a ProbeResult that holds
either the typed value the check needs or the ProbeError explaining why the
value could not be obtained.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


# Causes reported by probes. Free text is allowed, these are the common ones.
TOOL_NOT_FOUND = "tool not found"
FILE_MISSING = "file missing"
PARSE_ERROR = "parse error"
NETWORK_ERROR = "network error"
TIMEOUT = "timeout"
COMMAND_FAILED = "command failed"
NOT_FOUND = "not found"
DEPENDENCY_UNAVAILABLE = "dependency unavailable"


class ProbeError(Exception):
    """An external dependency was unavailable, unreachable or malformed."""

    def __init__(self, cause: str, detail: str = ""):
        self.cause = cause
        self.detail = detail
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.detail:
            return f"{self.cause}: {self.detail}"
        return self.cause

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProbeError):
            return NotImplemented
        return (self.cause, self.detail) == (other.cause, other.detail)

    def __hash__(self) -> int:
        return hash((self.cause, self.detail))


@dataclass(frozen=True)
class ProbeResult(Generic[T]):
    """
    Outcome of a single probe query.

    Exactly one of ``value`` and ``error`` is meaningful: ``error`` set
    means the query failed and ``value`` must be ignored.
    """

    value: Optional[T] = None
    error: Optional[ProbeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def of(cls, value: T) -> "ProbeResult[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, cause: str, detail: str = "") -> "ProbeResult[T]":
        return cls(error=ProbeError(cause, detail))

    def then(self, fn: Callable[[T], U]) -> "ProbeResult[U]":
        """
        Derive a dependent result from this one.

        If this result holds an error, the derived result reports
        ``dependency unavailable`` carrying the original cause. A
        ProbeError raised by ``fn`` is captured as the derived error.
        """
        if self.error is not None:
            return ProbeResult(error=ProbeError(DEPENDENCY_UNAVAILABLE, str(self.error)))
        try:
            return ProbeResult(value=fn(self.value))
        except ProbeError as e:
            return ProbeResult(error=e)

    def unwrap(self) -> T:
        """Return the value or raise the stored ProbeError."""
        if self.error is not None:
            raise self.error
        return self.value


def capture(fn: Callable[[], T]) -> ProbeResult[T]:
    """Run ``fn`` and wrap its return value or ProbeError into a ProbeResult."""
    try:
        return ProbeResult(value=fn())
    except ProbeError as e:
        logger.info("probe error: %s", e)
        return ProbeResult(error=e)


def combine(*results: ProbeResult) -> ProbeResult[tuple]:
    """Join independent results; the first error wins."""
    for result in results:
        if result.error is not None:
            return ProbeResult(error=result.error)
    return ProbeResult(value=tuple(result.value for result in results))


@dataclass(frozen=True)
class CmdResult:
    rc: int
    out: str
    err: str

    @property
    def ok(self) -> bool:
        return self.rc == 0


class CommandRunner:
    """
    Runs external commands with a timeout.

    Commands are passed as argument lists and never through a shell.
    A missing executable and an expired timeout raise ProbeError; a
    nonzero exit status is returned in the CmdResult for the caller to
    interpret.
    """

    def __init__(self, timeout_s: float = 30):
        self.timeout_s = timeout_s

    def run(
        self,
        argv: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
        timeout_s: Optional[float] = None,
    ) -> CmdResult:
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        logger.debug("exec %s (cwd=%s, timeout=%ss)", " ".join(argv), cwd, timeout)
        try:
            p = subprocess.run(
                list(argv),
                cwd=str(cwd) if cwd is not None else None,
                text=True,
                capture_output=True,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            # Raised both for a missing executable and a missing cwd.
            if cwd is not None and not Path(cwd).is_dir():
                raise ProbeError(FILE_MISSING, f"directory {cwd} does not exist") from e
            raise ProbeError(TOOL_NOT_FOUND, argv[0]) from e
        except subprocess.TimeoutExpired as e:
            raise ProbeError(TIMEOUT, f"{' '.join(argv)} exceeded {timeout}s") from e
        except OSError as e:
            raise ProbeError(COMMAND_FAILED, f"{argv[0]}: {e}") from e
        return CmdResult(p.returncode, p.stdout or "", p.stderr or "")

    def check_output(
        self,
        argv: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
    ) -> str:
        """Run a command and return its stripped stdout, raising on nonzero exit."""
        r = self.run(argv, cwd=cwd)
        if not r.ok:
            message = (r.err or r.out).strip().splitlines()
            raise ProbeError(
                COMMAND_FAILED,
                f"{' '.join(argv)} exited {r.rc}" + (f" ({message[-1]})" if message else ""),
            )
        return r.out.strip()


def lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def describe(value: Any) -> str:
    """Short printable form of a probe value for assertion details."""
    text = str(value)
    if len(text) > 120:
        return text[:117] + "..."
    return text
