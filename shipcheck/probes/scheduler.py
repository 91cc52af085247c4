"""
Job-scheduler config store.

The scheduler keeps its jobs in a JSON document shaped like::

    {"jobs": [{"id": "...", "payload": {"message": "...", "timeoutSeconds": 300}}]}

Records are parsed into JobRecord before any check looks at them, so checks
assert on typed fields instead of searching the raw document.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .base import FILE_MISSING, NOT_FOUND, PARSE_ERROR, ProbeError, ProbeResult, capture


def _as_seconds(value: Any) -> Optional[int]:
    # bool is an int subclass; a JSON true is not a timeout.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


@dataclass(frozen=True)
class JobRecord:
    """A scheduled job, reduced to the fields the pipeline checks use."""

    job_id: str
    message: str
    timeout_seconds: Optional[int]
    name: str = ""

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "JobRecord":
        payload = raw.get("payload")
        if not isinstance(payload, dict):
            raise ProbeError(PARSE_ERROR, f"job {raw.get('id')!r} has no payload object")
        message = payload.get("message")
        if not isinstance(message, str):
            raise ProbeError(PARSE_ERROR, f"job {raw.get('id')!r} payload.message is not a string")
        return cls(
            job_id=str(raw.get("id", "")),
            message=message,
            timeout_seconds=_as_seconds(payload.get("timeoutSeconds")),
            name=str(raw.get("name", "")),
        )

    def command_lines(self) -> List[str]:
        return [line.strip() for line in self.message.splitlines() if line.strip()]


class JobStore:
    """Reads job records from the scheduler's JSON document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _jobs(self) -> List[Dict[str, Any]]:
        if not self.path.is_file():
            raise ProbeError(FILE_MISSING, str(self.path))
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProbeError(PARSE_ERROR, f"{self.path}: {e}") from e
        jobs = document.get("jobs") if isinstance(document, dict) else None
        if not isinstance(jobs, list):
            raise ProbeError(PARSE_ERROR, f"{self.path}: top-level 'jobs' list missing")
        return [job for job in jobs if isinstance(job, dict)]

    def load(self) -> ProbeResult[List[Dict[str, Any]]]:
        return capture(self._jobs)

    def find(self, job_id: str) -> ProbeResult[JobRecord]:
        """Locate a job by identifier and parse it into a JobRecord."""
        return self.load().then(lambda jobs: self.select(jobs, job_id))

    @staticmethod
    def select(jobs: List[Dict[str, Any]], job_id: str) -> JobRecord:
        for raw in jobs:
            if raw.get("id") == job_id:
                return JobRecord.from_dict(raw)
        raise ProbeError(NOT_FOUND, f"job {job_id} not in store")
