"""
Versioned-state query surface backed by the git CLI.

Every method returns a ProbeResult. The only methods that change anything
are ``stage`` and ``restore_index``, which exist for the leak-prevention
fixture and touch only the index, never the worktree.
"""

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

from .base import (
    COMMAND_FAILED,
    FILE_MISSING,
    NOT_FOUND,
    CommandRunner,
    ProbeError,
    ProbeResult,
    capture,
    lines,
)

logger = logging.getLogger(__name__)


class VersionControl(Protocol):
    """Protocol for the versioned state a check inspects."""

    path: Path

    def has_state(self) -> ProbeResult[bool]:
        """Whether a local versioned-state handle (a .git entry) exists."""
        ...

    def remote_url(self, remote: str) -> ProbeResult[str]:
        ...

    def current_branch(self) -> ProbeResult[str]:
        ...

    def push_dry_run(self, remote: str, branch: str) -> ProbeResult[bool]:
        ...

    def staged_paths(self) -> ProbeResult[List[str]]:
        ...

    def stage(self, paths: Sequence[str]) -> ProbeResult[bool]:
        ...

    def index_tree(self) -> ProbeResult[str]:
        """Object id of a tree recording the index as it is now."""
        ...

    def restore_index(self, tree: str) -> ProbeResult[bool]:
        """Replace the index with ``tree``, leaving the worktree alone."""
        ...

    def is_ignored(self, path: str) -> ProbeResult[bool]:
        ...

    def head(self) -> ProbeResult[str]:
        ...

    def remote_head(self, remote: str) -> ProbeResult[str]:
        ...

    def object_id(self, ref: str, path: str) -> ProbeResult[str]:
        """Content-identity handle of ``path`` at ``ref``."""
        ...

    def show(self, ref: str, path: str) -> ProbeResult[str]:
        ...

    def fetch(self, remote: str) -> ProbeResult[bool]:
        ...


class GitRepository:
    """VersionControl implementation that shells out to git."""

    def __init__(self, path: Union[str, Path], runner: Optional[CommandRunner] = None):
        self.path = Path(path).expanduser()
        self.runner = runner or CommandRunner()

    def __repr__(self) -> str:
        return f"GitRepository({str(self.path)!r})"

    def _git(self, *args: str) -> str:
        if not self.path.is_dir():
            raise ProbeError(FILE_MISSING, f"directory {self.path} does not exist")
        return self.runner.check_output(["git", *args], cwd=self.path)

    def _succeeds(self, *args: str) -> bool:
        self._git(*args)
        return True

    def has_state(self) -> ProbeResult[bool]:
        # A worktree or submodule has a .git file rather than a directory.
        return ProbeResult.of((self.path / ".git").exists())

    def remote_url(self, remote: str) -> ProbeResult[str]:
        return capture(lambda: self._git("remote", "get-url", remote))

    def current_branch(self) -> ProbeResult[str]:
        def branch() -> str:
            name = self._git("branch", "--show-current")
            if not name:
                raise ProbeError(NOT_FOUND, "HEAD is detached")
            return name

        return capture(branch)

    def push_dry_run(self, remote: str, branch: str) -> ProbeResult[bool]:
        return capture(lambda: self._succeeds("push", "--dry-run", "--quiet", remote, branch))

    def staged_paths(self) -> ProbeResult[List[str]]:
        return capture(lambda: lines(self._git("diff", "--cached", "--name-only")))

    def stage(self, paths: Sequence[str]) -> ProbeResult[bool]:
        existing = [p for p in paths if (self.path / p).exists()]
        if not existing:
            return ProbeResult.of(False)
        logger.debug("staging %s in %s", ", ".join(existing), self.path)
        return capture(lambda: self._succeeds("add", "--", *existing))

    def index_tree(self) -> ProbeResult[str]:
        # Fails while the index has unmerged entries.
        return capture(lambda: self._git("write-tree"))

    def restore_index(self, tree: str) -> ProbeResult[bool]:
        logger.debug("restoring index of %s to tree %s", self.path, tree[:7])
        return capture(lambda: self._succeeds("read-tree", tree))

    def is_ignored(self, path: str) -> ProbeResult[bool]:
        def check() -> bool:
            if not self.path.is_dir():
                raise ProbeError(FILE_MISSING, f"directory {self.path} does not exist")
            r = self.runner.run(["git", "check-ignore", "-q", "--", path], cwd=self.path)
            # 0: ignored, 1: not ignored, anything else is an error.
            if r.rc in (0, 1):
                return r.rc == 0
            raise ProbeError(COMMAND_FAILED, f"git check-ignore exited {r.rc}: {r.err.strip()}")

        return capture(check)

    def head(self) -> ProbeResult[str]:
        return capture(lambda: self._git("rev-parse", "HEAD"))

    def remote_head(self, remote: str) -> ProbeResult[str]:
        def query() -> str:
            out = self._git("ls-remote", remote, "HEAD")
            if not out:
                raise ProbeError(NOT_FOUND, f"{remote} has no HEAD")
            return out.split()[0]

        return capture(query)

    def object_id(self, ref: str, path: str) -> ProbeResult[str]:
        return capture(lambda: self._git("rev-parse", "--verify", "--quiet", f"{ref}:{path}"))

    def show(self, ref: str, path: str) -> ProbeResult[str]:
        return capture(lambda: self._git("show", f"{ref}:{path}"))

    def fetch(self, remote: str) -> ProbeResult[bool]:
        return capture(lambda: self._succeeds("fetch", remote, "--quiet"))
