"""Job descriptions and handles shared by the scheduler backends."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .backends.base import Backend


class JobStatus(enum.Enum):
    """Observable state of a submitted job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class FailureReason(enum.Enum):
    """Why a handle ended up FAILED."""

    EXIT_STATUS = "exit_status"
    TIMED_OUT = "timed_out"
    UNKNOWN_STATUS = "unknown_status"


@dataclass(frozen=True)
class JobSpec:
    """
    Immutable description of one external command to run on a cluster.

    Args:
        executable: Path to the program to launch.
        arguments: Ordered command line arguments.
        working_dir: Directory the job runs in.
        queue: Queue (or partition) name requested from the scheduler.
        time_limit: Wall-clock limit in minutes.
        slots: Number of cores/slots requested.
        description: Human readable label, also used as the job name.
        memory_gb: Optional memory request in gigabytes.
        log_dir: Optional directory for the job's stdout/stderr files.
    """

    executable: str
    arguments: tuple[str, ...]
    working_dir: Path
    queue: str
    time_limit: int
    slots: int
    description: str
    memory_gb: int | None = None
    log_dir: Path | None = None

    def __post_init__(self):
        # Normalize so that equal specs compare equal whatever sequence type was given.
        object.__setattr__(self, "arguments", tuple(str(a) for a in self.arguments))
        object.__setattr__(self, "working_dir", Path(self.working_dir))
        if self.log_dir is not None:
            object.__setattr__(self, "log_dir", Path(self.log_dir))

        if not self.executable:
            raise ValueError("JobSpec requires a non-empty executable")
        if not self.arguments:
            raise ValueError("JobSpec requires a non-empty argument list")
        if self.time_limit <= 0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")
        if self.slots <= 0:
            raise ValueError(f"slots must be positive, got {self.slots}")
        if self.memory_gb is not None and self.memory_gb <= 0:
            raise ValueError(f"memory_gb must be positive, got {self.memory_gb}")

    @property
    def command(self) -> list[str]:
        return [self.executable, *self.arguments]

    @property
    def job_name(self) -> str:
        """Description reduced to characters every scheduler accepts in a job name."""
        name = "".join(c if c.isalnum() or c in "-_." else "_" for c in self.description)
        return name or "motifqueue"


@dataclass(eq=False)
class JobHandle:
    """A submitted job, tracked until it reaches a terminal state."""

    job_id: str
    backend: Backend = field(repr=False)
    description: str = ""
    status: JobStatus = JobStatus.PENDING
    exit_code: int | None = None
    message: str | None = None
    reason: FailureReason | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
