"""Harness settings loaded from the environment."""

import shlex
from pathlib import Path
from typing import List, Self, Tuple

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JOB_ID = "492d067a-5cb1-47c5-92bc-fd8985c64a1f"


def _split(raw: str) -> Tuple[str, ...]:
    values: List[str] = []
    for part in raw.split(","):
        normalized = part.strip()
        if normalized and normalized not in values:
            values.append(normalized)
    return tuple(values)


class Settings(BaseSettings):
    """Typed harness configuration sourced from SHIPCHECK_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SHIPCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Working copy published by the pipeline
    skill_dir: Path = Path("/home/dev/.openclaw/skills/pr-ship")
    repository_slug: str = "Glucksberg/pr-ship"
    primary_branch: str = "main"
    remote_name: str = "origin"
    # Comma-separated, staged verbatim by the pipeline's commit step.
    staged_paths: str = "references/CURRENT-CONTEXT.md,package.json"
    context_document: str = "references/CURRENT-CONTEXT.md"

    # Upstream checkout whose changelog triggers updates
    upstream_dir: Path = Path("/home/dev/openclaw")
    upstream_remote: str = "upstream"
    changelog_path: str = "CHANGELOG.md"
    fetch_upstream: bool = True

    # Scheduler
    jobs_file: Path = Path("~/.openclaw/cron/jobs.json")
    job_id: str = DEFAULT_JOB_ID
    min_job_timeout_seconds: int = Field(default=180, ge=1)

    # Publishing CLI and hosting API
    publish_tool: str = "clawhub"
    hosting_api_url: str = "https://api.github.com"
    hosting_token: str = ""
    expected_remote_files: str = ".gitignore,README.md,SKILL.md,package.json,references"

    # Transport limits
    command_timeout_seconds: float = Field(default=30.0, gt=0)
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    # Live trigger, formatted with upstream_dir and job_id
    live_command: str = "pnpm --dir {upstream_dir} openclaw cron run {job_id}"
    live_timeout_seconds: float = Field(default=600.0, gt=0)

    log_level: str = "WARNING"

    @model_validator(mode="after")
    def _expand_paths(self) -> Self:
        self.skill_dir = self.skill_dir.expanduser()
        self.upstream_dir = self.upstream_dir.expanduser()
        self.jobs_file = self.jobs_file.expanduser()
        if not self.staged_path_list():
            raise ValueError("SHIPCHECK_STAGED_PATHS must name at least one path.")
        if "/" not in self.repository_slug.strip("/"):
            raise ValueError("SHIPCHECK_REPOSITORY_SLUG must look like owner/name.")
        return self

    def staged_path_list(self) -> Tuple[str, ...]:
        """Return the explicit paths the pipeline stages, in order."""
        return _split(self.staged_paths)

    def expected_remote_file_list(self) -> Tuple[str, ...]:
        """Return the top-level entries the hosted mirror must contain."""
        return _split(self.expected_remote_files)

    def live_argv(self) -> List[str]:
        """Return the live trigger command as an argument list."""
        return [
            part.format(upstream_dir=self.upstream_dir, job_id=self.job_id)
            for part in shlex.split(self.live_command)
        ]
