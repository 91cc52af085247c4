"""
Update pipeline check implementations.

Each check validates one operational concern of the unattended update
pipeline and records one assertion per logical validation step, in a fixed
order, against live external state:

T1: Repository health
T2: Stray file leak prevention
T3: Version bump logic
T4: Template substitution (dry run)
T5: CHANGELOG change detection
T6: Provenance verification
T7: Publish CLI availability
T8: Cron job config
T9: Skill file integrity
T10: Remote mirror state
"""

import logging
import re
import shutil
import tempfile
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Protocol, Sequence, Tuple

from .config import Settings
from .evaluator import ADVISORY, BEST_EFFORT, REQUIRED, AssertionLog, Policy
from .probes.base import (
    DEPENDENCY_UNAVAILABLE,
    FILE_MISSING,
    PARSE_ERROR,
    ProbeError,
    ProbeResult,
    combine,
    describe,
)
from .probes.documents import DocumentReader
from .probes.hosting import HostingClient
from .probes.scheduler import JobRecord, JobStore
from .probes.tools import ToolProbe
from .probes.vcs import VersionControl

logger = logging.getLogger(__name__)


class ProbeContext(Protocol):
    """Protocol for the probe surfaces a check may query."""

    settings: Settings
    skill: VersionControl
    upstream: VersionControl
    documents: DocumentReader
    hosting: HostingClient
    jobs: JobStore
    tools: ToolProbe


class Check(ABC):
    """
    Base class for all pipeline checks.

    Subclasses declare a policy table mapping every assertion key they
    record to REQUIRED, ADVISORY or BEST_EFFORT. ``run`` appends assertions
    to the log it is given and must record the same assertions, in the same
    order, whatever state the external systems are in.
    """

    policies: Mapping[str, Policy] = {}

    @property
    @abstractmethod
    def check_id(self) -> str:
        """Unique identifier for this check."""
        ...

    @property
    @abstractmethod
    def title(self) -> str:
        """Human-readable name for this check."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """What this check evaluates."""
        ...

    @abstractmethod
    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        """Execute the check, appending assertions to ``log``."""
        ...

    def new_log(self) -> AssertionLog:
        return AssertionLog(self.check_id, self.title, self.policies)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.check_id}>"


def _value(result: ProbeResult, default: str = "?") -> str:
    """Printable value of a result, or ``default`` when it errored."""
    if result.error is not None or result.value is None:
        return default
    return describe(result.value)


def _short(object_id: str) -> str:
    return object_id[:7]


# =============================================================================
# T1 - REPOSITORY HEALTH
# =============================================================================


class RepositoryHealth(Check):
    """
    T1 - Repository health

    The working copy the pipeline commits from must be a git repository
    tracking the published repository on the primary branch, and the
    pipeline must be able to push to it. The push is a dry run and never
    reaches the remote.
    """

    policies = {
        "state_present": REQUIRED,
        "remote_matches": REQUIRED,
        "on_primary_branch": REQUIRED,
        "push_dry_run": REQUIRED,
    }

    @property
    def check_id(self) -> str:
        return "repo_health"

    @property
    def title(self) -> str:
        return "Repository health"

    @property
    def description(self) -> str:
        return "Check the pipeline's working copy tracks the right remote and branch and can push"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        repo = ctx.skill
        s = ctx.settings

        log.expect(
            "state_present",
            ".git directory exists",
            repo.has_state(),
            detail=f"{repo.path}/.git",
            failure=f".git missing, run 'git init' in {repo.path}",
        )

        remote = repo.remote_url(s.remote_name)
        log.expect(
            "remote_matches",
            f"Remote {s.remote_name} points to {s.repository_slug}",
            remote.then(lambda url: s.repository_slug in url),
            detail=_value(remote),
            failure=f"{s.remote_name} is {_value(remote)!r}, expected {s.repository_slug}",
        )

        branch = repo.current_branch()
        log.expect(
            "on_primary_branch",
            f"On branch {s.primary_branch}",
            branch.then(lambda name: name == s.primary_branch),
            detail=_value(branch),
            failure=f"on branch {_value(branch)!r}, expected {s.primary_branch}",
        )

        log.expect(
            "push_dry_run",
            "Git push dry-run succeeds (auth OK)",
            repo.push_dry_run(s.remote_name, s.primary_branch),
            detail=f"git push --dry-run {s.remote_name} {s.primary_branch}",
        )


# =============================================================================
# T2 - STRAY FILE LEAK PREVENTION
# =============================================================================


SENTINEL_NAME = ".env.test-trap"
SENTINEL_CONTENT = "SECRET_KEY=do-not-commit\n"


@contextmanager
def fixture_file(path: Path, content: str) -> Iterator[ProbeResult[Path]]:
    """
    Create a disposable file and delete it on every exit path.

    A file that already exists at ``path`` is left as it is and not deleted,
    since it does not belong to the fixture. A file that cannot be written
    yields a failed result instead of raising.
    """
    created = False
    if not path.exists():
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            path.unlink(missing_ok=True)
            yield ProbeResult.failed(FILE_MISSING, f"cannot create {path}: {e}")
            return
        created = True
    try:
        yield ProbeResult.of(path)
    finally:
        if created:
            path.unlink(missing_ok=True)
            logger.debug("removed fixture %s", path)


class LeakPrevention(Check):
    """
    T2 - Stray file leak prevention

    The pipeline stages an explicit list of paths, never a wildcard. This
    check drops a secret-bearing sentinel and a random file into the working
    copy, runs the same staging step and asserts neither file was staged.

    The index is snapshotted as a tree before anything is staged and read
    back from that tree on every exit path, so content someone had already
    staged survives even when the worktree holds newer edits of the same
    path. Nothing is staged when the snapshot cannot be taken.
    """

    policies = {
        "sentinel_not_staged": REQUIRED,
        "sentinel_ignored": ADVISORY,
        "random_not_staged": REQUIRED,
        "index_restored": REQUIRED,
    }

    @property
    def check_id(self) -> str:
        return "leak_prevention"

    @property
    def title(self) -> str:
        return "Stray file leak prevention"

    @property
    def description(self) -> str:
        return "Check explicit staging never picks up secret or unexpected files"

    def _stage_and_list(
        self, repo: VersionControl, paths: Sequence[str], *prerequisites: ProbeResult
    ) -> ProbeResult[List[str]]:
        def stage(_: tuple) -> List[str]:
            repo.stage(paths).unwrap()
            return repo.staged_paths().unwrap()

        return combine(*prerequisites).then(stage)

    def _restore(self, repo: VersionControl, snapshot: ProbeResult[str]) -> None:
        if snapshot.error is not None:
            return
        restored = repo.restore_index(snapshot.value)
        if restored.error is not None:
            logger.warning("could not restore the index of %s: %s", repo.path, restored.error)

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        repo = ctx.skill
        paths = ctx.settings.staged_path_list()
        random_name = f"random-debug-{int(time.time())}.txt"
        staging = "git add " + " ".join(paths)

        if not repo.path.is_dir():
            missing = ProbeResult.failed(FILE_MISSING, f"directory {repo.path} does not exist")
            for key, description in (
                ("sentinel_not_staged", f"Stray file {SENTINEL_NAME} NOT staged (explicit paths work)"),
                ("sentinel_ignored", ".gitignore blocks .env files"),
                ("random_not_staged", "Random file NOT staged"),
                ("index_restored", "Index restored to its state before the check"),
            ):
                log.expect(key, description, missing)
            return

        before = repo.index_tree()
        try:
            with fixture_file(repo.path / SENTINEL_NAME, SENTINEL_CONTENT) as sentinel:
                staged = self._stage_and_list(repo, paths, before, sentinel)
                log.expect(
                    "sentinel_not_staged",
                    f"Stray file {SENTINEL_NAME} NOT staged (explicit paths work)",
                    staged.then(lambda names: SENTINEL_NAME not in names),
                    detail=f"staged after '{staging}': {_value(staged, '[]')}",
                    failure=f"{SENTINEL_NAME} was staged, git add is too broad",
                )
                log.expect(
                    "sentinel_ignored",
                    ".gitignore blocks .env files",
                    repo.is_ignored(SENTINEL_NAME),
                    detail=f"{SENTINEL_NAME} is ignored",
                    failure=f"{SENTINEL_NAME} is not ignored (relies on explicit staging)",
                )
            self._restore(repo, before)

            with fixture_file(repo.path / random_name, "debug stuff\n") as stray:
                staged = self._stage_and_list(repo, paths, before, stray)
                log.expect(
                    "random_not_staged",
                    "Random file NOT staged",
                    staged.then(lambda names: random_name not in names),
                    detail=f"staged after '{staging}': {_value(staged, '[]')}",
                    failure=f"{random_name} was staged, explicit add is broken",
                )
        finally:
            self._restore(repo, before)

        after = repo.index_tree()
        log.expect(
            "index_restored",
            "Index restored to its state before the check",
            combine(before, after).then(lambda pair: pair[0] == pair[1]),
            detail=f"index tree {_short(_value(before))} unchanged",
            failure=f"index tree {_short(_value(before))} became {_short(_value(after))}",
        )


# =============================================================================
# T3 - VERSION BUMP LOGIC
# =============================================================================


SEMVER = re.compile(r"^\d+\.\d+\.\d+$")
BUMP_EDGE_CASES = ("1.0.0", "1.0.99", "2.5.3", "0.0.1")


def bump_version(version: str) -> str:
    """
    Increment the last dot-separated component of ``version``.

    The component is incremented as an integer, so ``1.0.99`` becomes
    ``1.0.100``. Raises ValueError when the last component is not a
    non-negative integer.
    """
    parts = version.strip().split(".")
    last = parts[-1]
    if not last.isdigit():
        raise ValueError(f"last component of {version!r} is not numeric")
    parts[-1] = str(int(last) + 1)
    return ".".join(parts)


def bump_is_sound(original: str, bumped: str) -> bool:
    """Whether ``bumped`` is a correct last-component increment of ``original``."""
    before = original.split(".")
    after = bumped.split(".")
    if bumped == original or len(after) != len(before):
        return False
    if after[:-1] != before[:-1] or not after[-1].isdigit():
        return False
    return int(after[-1]) == int(before[-1]) + 1


def _parse_semver(value: object) -> str:
    if not isinstance(value, str) or not SEMVER.match(value):
        raise ProbeError(PARSE_ERROR, f"version {value!r} is not MAJOR.MINOR.PATCH")
    return value


class VersionBump(Check):
    """
    T3 - Version bump logic

    The pipeline bumps the patch component of the manifest version on every
    release. The bump must be deterministic, must change the version and
    must treat the component as a number, not a string or a float.
    """

    policies = {
        "current_readable": REQUIRED,
        "current_bumps": REQUIRED,
        "edge_case": REQUIRED,
    }

    @property
    def check_id(self) -> str:
        return "version_bump"

    @property
    def title(self) -> str:
        return "Version bump logic"

    @property
    def description(self) -> str:
        return "Check the patch bump of the manifest version is a sound integer increment"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        current = ctx.documents.field("package.json", "version").then(_parse_semver)
        log.expect(
            "current_readable",
            "Current version readable from package.json",
            current,
            detail=f"version {_value(current)}",
        )

        bumped = current.then(bump_version)
        log.expect(
            "current_bumps",
            "Version bump of the current version",
            combine(current, bumped).then(
                lambda pair: bump_is_sound(*pair) and bump_version(pair[0]) == pair[1]
            ),
            detail=f"{_value(current)} -> {_value(bumped)}",
            failure=f"bump produced invalid result {_value(bumped)!r}",
        )

        for case in BUMP_EDGE_CASES:
            result = bump_version(case)
            log.expect(
                "edge_case",
                f"Bump {case}",
                bump_is_sound(case, result),
                detail=f"{case} -> {result}",
                failure=f"{case} -> {result} (unexpected)",
            )


# =============================================================================
# T4 - TEMPLATE SUBSTITUTION (DRY RUN)
# =============================================================================


TIMESTAMP_MARKER = re.compile(r"_Auto-updated by.*")
VERSION_HEADER = re.compile(r"## Active Version:.*")
TEST_DATE = "2099-01-01T00:00 UTC"
TEST_VERSION = "9999.99.99"


def timestamp_line(date: str) -> str:
    return f"_Auto-updated by pr-ship-update cron. Last updated: {date} (upstream sync)_"


def version_line(version: str) -> str:
    return f"## Active Version: {version} (Released)"


def substitute(text: str, date: str, version: str) -> Tuple[str, int, int]:
    """
    Rewrite the timestamp marker and version header lines of ``text``.

    Values are injected literally. Returns the new text and the number of
    timestamp and version lines rewritten.
    """
    stamp = timestamp_line(date)
    header = version_line(version)
    text, stamps = TIMESTAMP_MARKER.subn(lambda _m: stamp, text)
    text, headers = VERSION_HEADER.subn(lambda _m: header, text)
    return text, stamps, headers


def dry_run_substitution(source: Path, date: str, version: str) -> Tuple[str, int, int]:
    """Apply ``substitute`` to a disposable copy of ``source``."""
    if not source.is_file():
        raise ProbeError(FILE_MISSING, str(source))
    try:
        with tempfile.TemporaryDirectory(prefix="shipcheck-") as tmp:
            copy = Path(tmp) / source.name
            shutil.copyfile(source, copy)
            text, stamps, headers = substitute(copy.read_text(encoding="utf-8"), date, version)
            copy.write_text(text, encoding="utf-8")
            return copy.read_text(encoding="utf-8"), stamps, headers
    except UnicodeDecodeError as e:
        raise ProbeError(PARSE_ERROR, f"{source}: {e}") from e
    except OSError as e:
        # Covers the temporary directory itself as well as the copy.
        raise ProbeError(FILE_MISSING, f"{source}: {e}") from e


class TemplateSubstitution(Check):
    """
    T4 - Template substitution (dry run)

    The pipeline rewrites the timestamp marker and the active version header
    of the context document in place. This check runs the same rewrite on a
    temporary copy with sentinel values and confirms both patterns still
    match the document's format. The original document is never written.
    """

    policies = {
        "source_readable": REQUIRED,
        "timestamp_rewritten": REQUIRED,
        "date_injected": REQUIRED,
        "version_rewritten": REQUIRED,
        "source_untouched": REQUIRED,
        "idempotent": REQUIRED,
    }

    @property
    def check_id(self) -> str:
        return "template_substitution"

    @property
    def title(self) -> str:
        return "Template substitution (dry run on copy)"

    @property
    def description(self) -> str:
        return "Check the timestamp and version rewrites still match the context document"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        doc = ctx.settings.context_document
        source = ctx.documents.resolve(doc)

        before = ctx.documents.fingerprint(doc)
        log.expect("source_readable", f"{doc} readable", before, detail=str(source))

        first = before.then(lambda _: dry_run_substitution(source, TEST_DATE, TEST_VERSION))
        log.expect(
            "timestamp_rewritten",
            "Timestamp pattern matches and updates",
            first.then(lambda r: r[1] > 0 and "pr-ship-update cron" in r[0]),
            detail=f"{_value(first.then(lambda r: r[1]), '0')} timestamp line(s) rewritten",
            failure=f"timestamp pattern did not match, {doc} format may have changed",
        )
        log.expect(
            "date_injected",
            "Date injection works correctly",
            first.then(lambda r: timestamp_line(TEST_DATE) in r[0]),
            detail=f"{TEST_DATE} injected",
            failure="date was not injected into the timestamp line",
        )
        log.expect(
            "version_rewritten",
            "Version pattern matches and updates",
            first.then(lambda r: r[2] > 0 and version_line(TEST_VERSION) in r[0]),
            detail=f"{_value(first.then(lambda r: r[2]), '0')} version header(s) rewritten",
            failure=f"version pattern did not match, check the {doc} header format",
        )

        after = ctx.documents.fingerprint(doc)
        log.expect(
            "source_untouched",
            f"{doc} unchanged by the dry run",
            combine(before, after).then(lambda pair: pair[0] == pair[1]),
            detail=f"sha256 {_value(before)[:12]}",
            failure=f"sha256 changed {_value(before)[:12]} -> {_value(after)[:12]}",
        )

        second = first.then(lambda _: dry_run_substitution(source, TEST_DATE, TEST_VERSION))
        log.expect(
            "idempotent",
            "Substitution on a fresh copy gives the same result",
            combine(first, second).then(lambda pair: pair[0] == pair[1]),
            detail="two fresh copies rewritten identically",
            failure="two fresh copies rewritten differently",
        )


# =============================================================================
# T5 - CHANGELOG CHANGE DETECTION
# =============================================================================


CHANGELOG_VERSION = re.compile(r"^## (\d+\.\d+\.\d+)", re.MULTILINE)


def extract_changelog_version(text: str) -> str:
    """First ``## X.Y.Z`` heading of a changelog."""
    match = CHANGELOG_VERSION.search(text)
    if match is None:
        raise ProbeError(PARSE_ERROR, "no '## X.Y.Z' heading in changelog")
    return match.group(1)


class ChangeDetection(Check):
    """
    T5 - CHANGELOG change detection

    The pipeline decides whether to run by comparing the changelog blob on
    the local primary branch with the upstream one. Matching blobs mean no
    update is needed; differing blobs mean the next run will update, which
    is reported as a warning, not a defect.
    """

    policies = {
        "upstream_refreshed": BEST_EFFORT,
        "handles_readable": REQUIRED,
        "handles_match": ADVISORY,
        "version_extracted": BEST_EFFORT,
    }

    @property
    def check_id(self) -> str:
        return "change_detection"

    @property
    def title(self) -> str:
        return "CHANGELOG change detection"

    @property
    def description(self) -> str:
        return "Check the changelog blobs the pipeline compares are readable on both refs"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        repo = ctx.upstream
        s = ctx.settings
        local_ref = s.primary_branch
        upstream_ref = f"{s.upstream_remote}/{s.primary_branch}"

        if s.fetch_upstream:
            fetched = repo.fetch(s.upstream_remote)
            detail = f"git fetch {s.upstream_remote}"
        else:
            fetched = ProbeResult.of(True)
            detail = "fetch disabled, using existing refs"
        log.expect("upstream_refreshed", f"Fetched {s.upstream_remote}", fetched, detail=detail)

        local = repo.object_id(local_ref, s.changelog_path)
        upstream = repo.object_id(upstream_ref, s.changelog_path)
        handles = combine(local, upstream)
        shas = f"local={_short(_value(local))} upstream={_short(_value(upstream))}"
        log.expect("handles_readable", f"Can read {s.changelog_path} SHA", handles, detail=shas)
        log.expect(
            "handles_match",
            f"{s.changelog_path} matches upstream (cron would skip)",
            handles.then(lambda pair: pair[0] == pair[1]),
            detail=f"{shas} (this is normal)",
            failure=f"{shas} differ (cron would trigger an update)",
        )

        version = repo.show(upstream_ref, s.changelog_path).then(extract_changelog_version)
        log.expect(
            "version_extracted",
            f"Version extraction from upstream {s.changelog_path}",
            version,
            detail=f"upstream version {_value(version)}",
        )


# =============================================================================
# T6 - PROVENANCE VERIFICATION
# =============================================================================


class Provenance(Check):
    """
    T6 - Provenance verification

    The published commit must be the commit the working copy has. A local
    HEAD ahead of the remote is a warning (the next run needs to push); not
    being able to read either side is a failure.
    """

    policies = {
        "heads_queryable": REQUIRED,
        "heads_match": ADVISORY,
    }

    @property
    def check_id(self) -> str:
        return "provenance"

    @property
    def title(self) -> str:
        return "Provenance verification"

    @property
    def description(self) -> str:
        return "Check the local HEAD matches the remote HEAD"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        repo = ctx.skill
        heads = combine(repo.head(), repo.remote_head(ctx.settings.remote_name))
        shown = heads.then(lambda pair: f"local={_short(pair[0])} remote={_short(pair[1])}")

        log.expect(
            "heads_queryable",
            "Can query both local and remote HEAD",
            heads,
            detail=_value(shown),
        )
        log.expect(
            "heads_match",
            "Provenance verified: local HEAD == remote HEAD",
            heads.then(lambda pair: pair[0] == pair[1]),
            detail=_value(shown),
            failure=f"provenance mismatch: {_value(shown)} (may need push)",
        )


# =============================================================================
# T7 - PUBLISH CLI AVAILABILITY
# =============================================================================


class PublishTool(Check):
    """
    T7 - Publish CLI availability

    The pipeline publishes through an external CLI that must be on PATH and
    logged in.
    """

    policies = {
        "tool_resolvable": REQUIRED,
        "tool_authenticated": REQUIRED,
    }

    @property
    def check_id(self) -> str:
        return "publish_tool"

    @property
    def title(self) -> str:
        return "Publish CLI"

    @property
    def description(self) -> str:
        return "Check the publishing CLI is installed and authenticated"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        tool = ctx.settings.publish_tool
        location = ctx.tools.resolve(tool)
        log.expect(
            "tool_resolvable",
            f"{tool} CLI found",
            location,
            detail=_value(location),
        )

        identity = location.then(lambda _: ctx.tools.identity(tool).unwrap())
        log.expect(
            "tool_authenticated",
            f"{tool} auth valid",
            identity,
            detail=f"logged in as {_value(identity)}",
        )


# =============================================================================
# T8 - CRON JOB CONFIG
# =============================================================================


BROAD_ADD_ARGS = frozenset({"-A", "--all", "."})
SHELL_OPERATORS = frozenset({"&&", "||", ";", "|"})


def _add_arguments(line: str) -> Optional[List[str]]:
    """Arguments of a ``git add`` command line, up to the first shell operator."""
    if not line.startswith("git add "):
        return None
    args = []
    for token in line.split()[2:]:
        if token in SHELL_OPERATORS:
            break
        args.append(token)
    return args


def broad_staging_lines(record: JobRecord) -> List[str]:
    """Command lines of the job that stage more than an explicit path list."""
    found = []
    for line in record.command_lines():
        args = _add_arguments(line)
        if args is not None and BROAD_ADD_ARGS.intersection(args):
            found.append(line)
    return found


def explicit_staging_lines(record: JobRecord, paths: Sequence[str]) -> List[str]:
    """Command lines of the job that stage exactly ``paths``, in order."""
    return [line for line in record.command_lines() if _add_arguments(line) == list(paths)]


class JobConfig(Check):
    """
    T8 - Cron job config

    The scheduled job's instructions must stage explicit paths, gate
    publishing on a successful push, keep the publish skip switch, verify
    provenance against the remote, and allow enough time for the git and
    publish steps.
    Staging is judged from the job's command lines, so prose that merely
    mentions a git add command does not count.
    """

    policies = {
        "jobs_parsed": REQUIRED,
        "job_found": REQUIRED,
        "explicit_staging": REQUIRED,
        "no_broad_staging": REQUIRED,
        "git_ok_guard": REQUIRED,
        "skip_publish_guard": REQUIRED,
        "provenance_guard": ADVISORY,
        "timeout_minimum": REQUIRED,
    }

    @property
    def check_id(self) -> str:
        return "job_config"

    @property
    def title(self) -> str:
        return "Cron job config"

    @property
    def description(self) -> str:
        return "Check the scheduled job carries its guards and a sufficient timeout"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        s = ctx.settings
        store = ctx.jobs
        short_id = s.job_id[:8]

        jobs = store.load()
        log.expect(
            "jobs_parsed",
            "jobs.json parses",
            jobs.error if jobs.error is not None else True,
            detail=f"{len(jobs.value) if jobs.ok else 0} job(s) in {store.path}",
        )

        record = jobs.then(lambda js: store.select(js, s.job_id))
        log.expect(
            "job_found",
            f"Cron job {short_id} found",
            record,
            detail=record.then(lambda r: r.name or r.job_id).value or "",
        )

        paths = s.staged_path_list()
        staging = "git add " + " ".join(paths)
        log.expect(
            "explicit_staging",
            f"Uses explicit git add ({' '.join(paths)})",
            record.then(lambda r: bool(explicit_staging_lines(r, paths))),
            failure=f"missing explicit {staging!r}",
        )

        broad = record.then(broad_staging_lines)
        log.expect(
            "no_broad_staging",
            "No broad git add command",
            broad.then(lambda found: not found),
            failure="; ".join(broad.value) if broad.ok else "",
        )

        log.expect(
            "git_ok_guard",
            "Has GIT_OK guard for push failure",
            record.then(lambda r: "GIT_OK" in r.message),
            failure=f"missing GIT_OK guard, {s.publish_tool} publish not gated on push success",
        )

        skip_token = f"SKIP_{s.publish_tool.upper()}"
        log.expect(
            "skip_publish_guard",
            f"Has {skip_token} guard",
            record.then(lambda r: skip_token in r.message),
            failure=f"missing {skip_token} guard",
        )

        log.expect(
            "provenance_guard",
            "Has real provenance check (git ls-remote)",
            record.then(lambda r: "git ls-remote" in r.message),
            failure="no git ls-remote provenance check",
        )

        minimum = s.min_job_timeout_seconds
        timeout = record.then(lambda r: r.timeout_seconds)
        log.expect(
            "timeout_minimum",
            f"Timeout >= {minimum}s",
            timeout.then(lambda t: t is not None and t >= minimum),
            detail=f"timeout is {_value(timeout)}s",
            failure=f"timeout {_value(timeout, 'unset')}s below minimum {minimum}s",
        )


# =============================================================================
# T9 - SKILL FILE INTEGRITY
# =============================================================================


class FileIntegrity(Check):
    """
    T9 - Skill file integrity

    The published project must keep its manifest links, its required
    documentation sections and its ignore-list entries. Every item is its
    own assertion.
    """

    policies = {
        "homepage_present": REQUIRED,
        "homepage_matches": REQUIRED,
        "bugs_url_present": REQUIRED,
        "skill_provenance_section": REQUIRED,
        "skill_security_section": REQUIRED,
        "readme_present": REQUIRED,
        "gitignore_archive": REQUIRED,
        "gitignore_env": ADVISORY,
    }

    REQUIRED_SECTIONS: Dict[str, str] = {
        "skill_provenance_section": "## Provenance",
        "skill_security_section": "## Security Notice",
    }

    @property
    def check_id(self) -> str:
        return "file_integrity"

    @property
    def title(self) -> str:
        return "Skill file integrity"

    @property
    def description(self) -> str:
        return "Check manifest fields, documentation sections and ignore entries"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        docs = ctx.documents
        slug = ctx.settings.repository_slug

        homepage = docs.field("package.json", "homepage")
        log.expect(
            "homepage_present",
            "package.json homepage present",
            homepage.then(lambda v: isinstance(v, str) and bool(v.strip())),
            detail=_value(homepage),
            failure="package.json homepage is empty",
        )
        log.expect(
            "homepage_matches",
            f"package.json homepage points to github.com/{slug}",
            homepage.then(lambda v: f"github.com/{slug}" in str(v)),
            detail=_value(homepage),
            failure=f"homepage is {_value(homepage)!r}, expected a github.com/{slug} URL",
        )

        bugs = docs.field("package.json", "bugs.url")
        log.expect(
            "bugs_url_present",
            "package.json bugs.url present",
            bugs.then(lambda v: isinstance(v, str) and bool(v.strip())),
            detail=_value(bugs),
            failure="package.json bugs.url is empty",
        )

        for key, header in self.REQUIRED_SECTIONS.items():
            log.expect(
                key,
                f"SKILL.md has {header.lstrip('# ')} section",
                docs.has_line("SKILL.md", header),
                failure=f"SKILL.md missing '{header}'",
            )

        log.expect(
            "readme_present",
            "README.md exists",
            docs.exists("README.md"),
            failure="README.md missing",
        )

        log.expect(
            "gitignore_archive",
            ".gitignore excludes archive",
            docs.contains(".gitignore", "DEVELOPER-REFERENCE.md.archive"),
            failure=".gitignore missing archive exclusion",
        )
        log.expect(
            "gitignore_env",
            ".gitignore excludes .env files",
            docs.contains(".gitignore", ".env"),
            failure=".gitignore missing .env exclusion",
        )


# =============================================================================
# T10 - REMOTE MIRROR STATE
# =============================================================================


class RemoteMirror(Check):
    """
    T10 - Remote mirror state

    The hosted repository must exist and carry the expected top-level files.
    Every missing file is its own assertion.
    """

    policies = {
        "repository_exists": REQUIRED,
        "remote_file": REQUIRED,
    }

    @property
    def check_id(self) -> str:
        return "remote_mirror"

    @property
    def title(self) -> str:
        return "GitHub repo state"

    @property
    def description(self) -> str:
        return "Check the hosted repository exists and has the expected files"

    def run(self, ctx: ProbeContext, log: AssertionLog) -> None:
        slug = ctx.settings.repository_slug
        exists = ctx.hosting.repository_exists(slug)
        log.expect(
            "repository_exists",
            f"GitHub repo {slug} exists",
            exists,
            failure=f"GitHub repo {slug} not accessible",
        )

        def listing(visible: bool) -> List[str]:
            if not visible:
                raise ProbeError(DEPENDENCY_UNAVAILABLE, f"{slug} not accessible")
            return ctx.hosting.list_files(slug).unwrap()

        names = exists.then(listing)
        for expected in ctx.settings.expected_remote_file_list():
            log.expect(
                "remote_file",
                f"GitHub has {expected}",
                names.then(lambda found: expected in found),
                failure=f"GitHub missing {expected}",
            )


# =============================================================================
# CHECK REGISTRY
# =============================================================================


def get_all_checks() -> List[Check]:
    """Return all pipeline checks in declared order."""
    return [
        RepositoryHealth(),
        LeakPrevention(),
        VersionBump(),
        TemplateSubstitution(),
        ChangeDetection(),
        Provenance(),
        PublishTool(),
        JobConfig(),
        FileIntegrity(),
        RemoteMirror(),
    ]


def get_check(check_id: str) -> Optional[Check]:
    """Return the check with ``check_id``, or None."""
    for check in get_all_checks():
        if check.check_id == check_id:
            return check
    return None
