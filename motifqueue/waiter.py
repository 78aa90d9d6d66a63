"""Blocking wait on a set of submitted jobs."""

import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from .errors import PollError
from .job import FailureReason, JobHandle, JobStatus


@dataclass(frozen=True)
class JobOutcome:
    """Final state of one job in a WaitReport."""

    job_id: str
    description: str
    status: JobStatus
    reason: FailureReason | None = None
    exit_code: int | None = None
    message: str | None = None

    @classmethod
    def from_handle(cls, handle: JobHandle) -> "JobOutcome":
        return cls(
            job_id=handle.job_id,
            description=handle.description,
            status=handle.status,
            reason=handle.reason,
            exit_code=handle.exit_code,
            message=handle.message,
        )

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "description": self.description,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "exit_code": self.exit_code,
            "message": self.message,
        }


@dataclass(frozen=True)
class WaitReport:
    """Outcome of every handle given to `JobWaiter.wait_for_all`, in input order."""

    outcomes: tuple[JobOutcome, ...] = ()
    polls: int = 0

    @property
    def succeeded(self) -> list[JobOutcome]:
        return [o for o in self.outcomes if o.status is JobStatus.SUCCEEDED]

    @property
    def failed(self) -> list[JobOutcome]:
        return [o for o in self.outcomes if o.status is not JobStatus.SUCCEEDED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "polls": self.polls,
            "jobs": [o.to_dict() for o in self.outcomes],
        }


class JobWaiter:
    """
    Polls submitted jobs until each one has succeeded or failed.

    Args:
        poll_interval: Seconds to sleep between polling rounds.
        timeout: Optional overall limit in seconds for one wait. Jobs still
            running when it elapses are reported as failed; they are not
            cancelled on the cluster.
        max_unknown_polls: Number of consecutive polls answering UNKNOWN (or
            failing with PollError) after which a job is reported as failed.
        workers: Number of threads used to poll jobs within a round.
    """

    def __init__(
        self,
        poll_interval: float = 30.0,
        timeout: float | None = None,
        max_unknown_polls: int = 10,
        workers: int = 1,
    ):
        if poll_interval < 0:
            raise ValueError(f"poll_interval must not be negative, got {poll_interval}")
        if max_unknown_polls < 1:
            raise ValueError(f"max_unknown_polls must be at least 1, got {max_unknown_polls}")
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.max_unknown_polls = max_unknown_polls
        self.workers = workers

    def wait_for_all(
        self,
        handles: Iterable[JobHandle],
        poll_interval: float | None = None,
        timeout: float | None = None,
    ) -> WaitReport:
        """
        Blocks until every handle is terminal or the timeout elapses.

        Partial failure is reported, never raised: check `WaitReport.ok`.
        """
        handles = list(handles)
        if not handles:
            return WaitReport()

        interval = self.poll_interval if poll_interval is None else poll_interval
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout if timeout is not None else None

        unknown_counts = {h: 0 for h in handles}
        polls = 0
        pending = [h for h in handles if not h.is_terminal]
        if pending:
            logger.info(f"Waiting for {len(pending)} job(s)")

        pool = ThreadPoolExecutor(max_workers=self.workers) if self.workers > 1 else nullcontext()
        with pool:
            while pending:
                if self.workers > 1:
                    results = list(pool.map(self._poll_one, pending))
                else:
                    results = [self._poll_one(h) for h in pending]
                polls += len(results)

                for handle, result in zip(pending, results):
                    self._observe(handle, result, unknown_counts)
                pending = [h for h in pending if not h.is_terminal]
                if not pending:
                    break

                if deadline is None:
                    time.sleep(interval)
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._time_out(pending, timeout)
                    break
                time.sleep(min(interval, remaining))

        report = WaitReport(
            outcomes=tuple(JobOutcome.from_handle(h) for h in handles), polls=polls
        )
        if report.ok:
            logger.info(f"All {len(handles)} job(s) succeeded")
        else:
            for outcome in report.failed:
                logger.error(f"Job {outcome.job_id} ({outcome.description}) failed: {outcome.message}")
        return report

    @staticmethod
    def _poll_one(handle: JobHandle) -> JobStatus | PollError:
        try:
            return handle.backend.poll_status(handle)
        except PollError as e:
            return e

    def _observe(self, handle: JobHandle, result, unknown_counts: dict) -> None:
        if isinstance(result, PollError) or result is JobStatus.UNKNOWN:
            if isinstance(result, PollError):
                logger.warning(str(result))
            unknown_counts[handle] += 1
            if unknown_counts[handle] < self.max_unknown_polls:
                handle.status = JobStatus.UNKNOWN
                return
            handle.status = JobStatus.FAILED
            handle.reason = FailureReason.UNKNOWN_STATUS
            handle.message = (
                f"job {handle.job_id} failed, status unknown after "
                f"{unknown_counts[handle]} polls"
            )
            return

        unknown_counts[handle] = 0
        if result is not handle.status:
            logger.debug(f"Job {handle.job_id} ({handle.description}) is {result.value}")
        handle.status = result
        if result is JobStatus.FAILED:
            try:
                exit_code, message = handle.backend.failure_details(handle)
            except OSError as e:
                logger.warning(f"Could not read failure details of job {handle.job_id}: {e}")
                exit_code, message = None, None
            handle.reason = FailureReason.EXIT_STATUS
            handle.exit_code = exit_code
            handle.message = message or f"job {handle.job_id} failed, exit status unknown"

    @staticmethod
    def _time_out(pending: list[JobHandle], timeout: float) -> None:
        for handle in pending:
            handle.status = JobStatus.FAILED
            handle.reason = FailureReason.TIMED_OUT
            handle.message = f"job {handle.job_id} timed out after {timeout}s"
            logger.warning(f"{handle.message}; the job is left running on the cluster")
