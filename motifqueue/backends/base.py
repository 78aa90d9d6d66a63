"""Base class for motifqueue scheduler backends."""

from abc import ABC, abstractmethod
from pathlib import Path

from ..job import JobHandle, JobSpec, JobStatus


def tail_log(path: Path, n_lines: int = 20) -> str | None:
    """Returns the last lines of a job log, or None if it is missing or empty."""
    if not path.exists():
        return None
    lines = path.read_text(errors="replace").splitlines()
    return "\n".join(lines[-n_lines:]).strip() or None


class Backend(ABC):
    """
    Abstract base class for cluster scheduler backends.

    A backend submits JobSpecs and answers status queries about the jobs it
    created. It never modifies a JobHandle; tracking is the waiter's job.
    Backends are context managers so that variants holding a connection to
    the scheduler can release it on every exit path.
    """

    #: Name of the scheduler kind implemented by the backend.
    kind: str = ""

    @abstractmethod
    def submit(self, spec: JobSpec) -> JobHandle:
        """Submits a job and returns a PENDING handle without waiting for it."""
        ...

    @abstractmethod
    def poll_status(self, handle: JobHandle) -> JobStatus:
        """Returns the current status of a previously submitted job."""
        ...

    def failure_details(self, handle: JobHandle) -> tuple[int | None, str | None]:
        """Returns the exit code and diagnostic text of a failed job, when known."""
        return None, None

    def close(self) -> None:
        """Releases any resource held by the backend."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _handle(self, job_id: str, spec: JobSpec) -> JobHandle:
        return JobHandle(job_id=str(job_id), backend=self, description=spec.description)
