"""Turns tool invocations into JobSpecs and submits them."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence

from loguru import logger

from .backends.base import Backend
from .job import JobHandle, JobSpec


@dataclass(frozen=True)
class ResourceClass:
    """Queue, wall-clock limit (minutes), slots and memory defaults for a submission."""

    queue: str
    time_limit: int
    slots: int = 1
    memory_gb: int | None = None


DEFAULT_RESOURCE_CLASSES = {
    "hour": ResourceClass(queue="hour", time_limit=60, slots=1),
    "day": ResourceClass(queue="day", time_limit=24 * 60, slots=4),
    "week": ResourceClass(queue="week", time_limit=7 * 24 * 60, slots=8),
}


@dataclass(frozen=True)
class ToolInvocation:
    """A fully formed external tool command, as produced by the tool builders."""

    executable: str
    arguments: Sequence[str]
    description: str
    working_dir: Path = field(default_factory=Path.cwd)
    memory_gb: int | None = None

    def __post_init__(self):
        if not self.executable or not self.arguments:
            raise ValueError(
                f"Invocation '{self.description}' needs an executable and at least one argument"
            )


class JobSubmitter:
    """
    Submits tool invocations to a backend using named resource classes.

    Args:
        backend: Backend every job is submitted through.
        resource_classes: Mapping of class name to ResourceClass. Defaults to
            the 'hour', 'day' and 'week' classes.
        log_dir: Directory for job stdout/stderr files, passed on to the backend.
    """

    def __init__(
        self,
        backend: Backend,
        resource_classes: Mapping[str, ResourceClass] | None = None,
        log_dir: Path | str | None = None,
    ):
        self.backend = backend
        self.resource_classes = dict(resource_classes or DEFAULT_RESOURCE_CLASSES)
        self.log_dir = Path(log_dir) if log_dir is not None else None

    def build_spec(self, invocation: ToolInvocation, resource_class: str) -> JobSpec:
        """Builds the JobSpec for an invocation in a resource class."""
        if resource_class not in self.resource_classes:
            raise KeyError(
                f"Unknown resource class '{resource_class}'. "
                f"Available: {', '.join(sorted(self.resource_classes))}"
            )
        resources = self.resource_classes[resource_class]
        memory_gb = invocation.memory_gb if invocation.memory_gb is not None else resources.memory_gb
        return JobSpec(
            executable=invocation.executable,
            arguments=tuple(invocation.arguments),
            working_dir=invocation.working_dir,
            queue=resources.queue,
            time_limit=resources.time_limit,
            slots=resources.slots,
            description=invocation.description,
            memory_gb=memory_gb,
            log_dir=self.log_dir,
        )

    def submit(self, invocation: ToolInvocation, resource_class: str) -> JobHandle:
        """Submits exactly one job. SubmissionError propagates to the caller."""
        spec = self.build_spec(invocation, resource_class)
        logger.debug(f"Submitting {spec.command} with resource class '{resource_class}'")
        return self.backend.submit(spec)
