"""
Shared fixtures for the shipcheck tests.

Unit tests run the checks against fake probe surfaces wired into a real
Probes context; the leak-prevention and repository tests use a real
temporary git repository with a bare remote.
"""

import json
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import httpx
import pytest

from shipcheck.config import Settings
from shipcheck.probes.base import ProbeError, ProbeResult
from shipcheck.probes.documents import DocumentReader
from shipcheck.probes.hosting import HostingClient
from shipcheck.probes.scheduler import JobStore
from shipcheck.runner import Probes

SLUG = "Glucksberg/pr-ship"
JOB_ID = "492d067a-5cb1-47c5-92bc-fd8985c64a1f"
LOCAL_SHA = "a" * 40
REMOTE_SHA = "b" * 40
REMOTE_FILES = [".gitignore", "README.md", "SKILL.md", "package.json", "references"]

CONTEXT_DOCUMENT = """# Current context

_Auto-updated by pr-ship-update cron. Last updated: 2025-06-01T08:00 UTC (upstream sync)_

## Active Version: 2026.2.1 (Released)

Notes about the active version.
"""

GOOD_MESSAGE = """cd /home/dev/.openclaw/skills/pr-ship
git add references/CURRENT-CONTEXT.md package.json
git commit -m "update context"
git push origin main && GIT_OK=1
if [ -n "$GIT_OK" ] && [ -z "$SKIP_CLAWHUB" ]; then clawhub publish .; fi
test "$(git rev-parse HEAD)" = "$(git ls-remote origin HEAD | cut -f1)"
"""

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


# =============================================================================
# Fakes
# =============================================================================


class FakeRepository:
    """
    VersionControl double answering from a table.

    A ProbeError answer is returned as a failed ProbeResult; any other
    exception is raised, the way a defect inside a probe would surface.
    """

    DEFAULTS: Dict[str, Any] = {
        "has_state": True,
        "remote_url": f"git@github.com:{SLUG}.git",
        "current_branch": "main",
        "push_dry_run": True,
        "staged_paths": [],
        "stage": True,
        "index_tree": "d" * 40,
        "restore_index": True,
        "is_ignored": True,
        "head": LOCAL_SHA,
        "remote_head": LOCAL_SHA,
        "local_blob": "c" * 40,
        "upstream_blob": "c" * 40,
        "show": "# Changelog\n\n## 2026.2.3\n\n- fixes\n",
        "fetch": True,
    }

    def __init__(self, path: Path, **answers: Any):
        self.path = Path(path)
        self.answers = {**self.DEFAULTS, **answers}
        self.calls: List[tuple] = []

    def _answer(self, name: str) -> ProbeResult:
        value = self.answers[name]
        if isinstance(value, ProbeError):
            return ProbeResult(error=value)
        if isinstance(value, Exception):
            raise value
        return ProbeResult.of(value)

    def has_state(self):
        return self._answer("has_state")

    def remote_url(self, remote: str):
        return self._answer("remote_url")

    def current_branch(self):
        return self._answer("current_branch")

    def push_dry_run(self, remote: str, branch: str):
        self.calls.append(("push_dry_run", remote, branch))
        return self._answer("push_dry_run")

    def staged_paths(self):
        return self._answer("staged_paths")

    def stage(self, paths: Sequence[str]):
        self.calls.append(("stage", tuple(paths)))
        return self._answer("stage")

    def index_tree(self):
        return self._answer("index_tree")

    def restore_index(self, tree: str):
        self.calls.append(("restore_index", tree))
        return self._answer("restore_index")

    def is_ignored(self, path: str):
        return self._answer("is_ignored")

    def head(self):
        return self._answer("head")

    def remote_head(self, remote: str):
        return self._answer("remote_head")

    def object_id(self, ref: str, path: str):
        return self._answer("upstream_blob" if "/" in ref else "local_blob")

    def show(self, ref: str, path: str):
        return self._answer("show")

    def fetch(self, remote: str):
        self.calls.append(("fetch", remote))
        return self._answer("fetch")


class FakeTools:
    """ToolProbe double."""

    def __init__(self, location: Any = "/usr/local/bin/clawhub", identity: Any = "dev"):
        self.location = location
        self.who = identity

    def resolve(self, tool: str):
        if isinstance(self.location, ProbeError):
            return ProbeResult(error=self.location)
        return ProbeResult.of(self.location)

    def identity(self, tool: str, subcommand: str = "whoami"):
        if isinstance(self.who, ProbeError):
            return ProbeResult(error=self.who)
        return ProbeResult.of(self.who)


def hosting_transport(
    files: Optional[List[str]] = None,
    repo_status: int = 200,
) -> httpx.MockTransport:
    """Mock hosting API serving one repository and its top-level listing."""
    listing = REMOTE_FILES if files is None else files

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == f"/repos/{SLUG}":
            return httpx.Response(repo_status, json={"full_name": SLUG})
        if request.url.path == f"/repos/{SLUG}/contents/":
            return httpx.Response(200, json=[{"name": n, "type": "file"} for n in listing])
        return httpx.Response(404, json={"message": "Not Found"})

    return httpx.MockTransport(handler)


# =============================================================================
# File builders
# =============================================================================


def write_skill_tree(root: Path, **overrides: Any) -> Path:
    """Write the published project's files under ``root``."""
    manifest = {
        "name": "pr-ship",
        "version": "1.2.3",
        "homepage": f"https://github.com/{SLUG}",
        "bugs": {"url": f"https://github.com/{SLUG}/issues"},
    }
    manifest.update(overrides.get("manifest", {}))
    files = {
        "package.json": json.dumps(manifest, indent=2) + "\n",
        "SKILL.md": overrides.get(
            "skill_md",
            "# pr-ship\n\n## Provenance\n\nBuilt from upstream.\n\n## Security Notice\n\nNo secrets.\n",
        ),
        "README.md": "# pr-ship\n",
        ".gitignore": overrides.get("gitignore", ".env*\nDEVELOPER-REFERENCE.md.archive\n"),
        "references/CURRENT-CONTEXT.md": overrides.get("context", CONTEXT_DOCUMENT),
    }
    for relative, content in files.items():
        if content is None:
            continue
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def write_jobs(path: Path, timeout: Any = 300, message: str = GOOD_MESSAGE, job_id: str = JOB_ID) -> Path:
    document = {
        "jobs": [
            {"id": "other-job", "payload": {"message": "echo hi", "timeoutSeconds": 30}},
            {
                "id": job_id,
                "name": "pr-ship-update",
                "payload": {"message": message, "timeoutSeconds": timeout},
            },
        ]
    }
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def git(cwd: Path, *args: str) -> str:
    p = subprocess.run(
        [
            "git",
            "-c", "user.name=Shipcheck Test",
            "-c", "user.email=test@example.com",
            "-c", "commit.gpgsign=false",
            "-c", "init.defaultBranch=main",
            *args,
        ],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return p.stdout.strip()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep SHIPCHECK_* variables of the host out of the tests."""
    for name in list(os.environ):
        if name.startswith("SHIPCHECK_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir):
    (temp_dir / "skill").mkdir()
    (temp_dir / "upstream").mkdir()
    return Settings(
        _env_file=None,
        skill_dir=temp_dir / "skill",
        upstream_dir=temp_dir / "upstream",
        jobs_file=temp_dir / "jobs.json",
        hosting_api_url="https://api.github.test",
    )


@pytest.fixture
def make_context(settings):
    """Build a Probes context from fakes; keyword arguments replace parts."""
    clients: List[HostingClient] = []

    def build(**parts: Any) -> Probes:
        hosting = parts.pop("hosting", None)
        if hosting is None:
            hosting = HostingClient(
                base_url=settings.hosting_api_url,
                transport=parts.pop("transport", None) or hosting_transport(),
            )
        clients.append(hosting)
        values = dict(
            settings=settings,
            skill=FakeRepository(settings.skill_dir),
            upstream=FakeRepository(settings.upstream_dir),
            documents=DocumentReader(settings.skill_dir),
            hosting=hosting,
            jobs=JobStore(settings.jobs_file),
            tools=FakeTools(),
        )
        values.update(parts)
        return Probes(**values)

    yield build
    for client in clients:
        client.close()


@pytest.fixture
def git_repo(temp_dir):
    """
    A real working copy on ``main`` with a bare ``origin`` it has pushed to.

    The bare remote lives under a path ending in the repository slug, so
    the remote URL contains it.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    remote = temp_dir / "remote" / "Glucksberg" / "pr-ship.git"
    remote.mkdir(parents=True)
    git(remote, "init", "--bare", "-q")
    git(remote, "symbolic-ref", "HEAD", "refs/heads/main")

    work = temp_dir / "work"
    work.mkdir()
    git(work, "init", "-q")
    git(work, "symbolic-ref", "HEAD", "refs/heads/main")
    write_skill_tree(work)
    git(work, "add", "--", ".")
    git(work, "commit", "-q", "-m", "initial")
    git(work, "remote", "add", "origin", str(remote))
    git(work, "push", "-q", "origin", "main")
    return work
