"""
Probes: read-only query surfaces over the external collaborators.
"""

from .base import (
    CmdResult,
    CommandRunner,
    ProbeError,
    ProbeResult,
    capture,
)
from .documents import DocumentReader
from .hosting import HostingClient
from .scheduler import JobRecord, JobStore
from .tools import ToolProbe
from .vcs import GitRepository, VersionControl

__all__ = [
    "CmdResult",
    "CommandRunner",
    "DocumentReader",
    "GitRepository",
    "HostingClient",
    "JobRecord",
    "JobStore",
    "ProbeError",
    "ProbeResult",
    "ToolProbe",
    "VersionControl",
    "capture",
]
