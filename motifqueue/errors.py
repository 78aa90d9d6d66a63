"""Exceptions raised by motifqueue."""


class MotifQueueError(Exception):
    """Base class for motifqueue errors."""


class UnknownSchedulerError(MotifQueueError, ValueError):
    """Raised when a scheduler name matches none of the supported kinds."""

    def __init__(self, name: str, supported: list[str]):
        self.name = name
        self.supported = supported
        super().__init__(
            f"Unknown scheduler '{name}'. Supported schedulers: {', '.join(supported)}"
        )


class SubmissionError(MotifQueueError):
    """Raised when a scheduler refuses to create a job."""

    def __init__(self, message: str, diagnostic: str | None = None):
        self.diagnostic = diagnostic
        if diagnostic:
            message = f"{message}: {diagnostic.strip()}"
        super().__init__(message)


class PollError(MotifQueueError):
    """Raised when the status of a job cannot be obtained from its scheduler."""

    def __init__(self, job_id: str, message: str):
        self.job_id = job_id
        super().__init__(f"Could not poll job {job_id}: {message}")
