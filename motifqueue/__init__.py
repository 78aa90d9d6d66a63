"""motifqueue: submit command line tools to cluster schedulers and wait for them."""

from loguru import logger
logger.disable("motifqueue")

from .backends import SchedulerKind, resolve
from .errors import PollError, SubmissionError, UnknownSchedulerError
from .job import FailureReason, JobHandle, JobSpec, JobStatus
from .submitter import JobSubmitter, ResourceClass, ToolInvocation
from .waiter import JobWaiter, WaitReport
from .resolvers import register_resolvers

# Register OmegaConf resolvers when the library is imported
register_resolvers()

__all__ = [
    "SchedulerKind",
    "resolve",
    "PollError",
    "SubmissionError",
    "UnknownSchedulerError",
    "FailureReason",
    "JobHandle",
    "JobSpec",
    "JobStatus",
    "JobSubmitter",
    "ResourceClass",
    "ToolInvocation",
    "JobWaiter",
    "WaitReport",
]
