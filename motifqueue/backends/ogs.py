"""OGS backend: session-based submission through a DRMAA session."""

import atexit
import secrets
import threading
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from .base import Backend, tail_log
from ..errors import PollError, SubmissionError
from ..job import JobHandle, JobSpec, JobStatus

# drmaa.Session.TIMEOUT_NO_WAIT
_TIMEOUT_NO_WAIT = 0

# drmaa.JobState values
_STATUS_MAP = {
    "undetermined": JobStatus.UNKNOWN,
    "queued_active": JobStatus.PENDING,
    "system_on_hold": JobStatus.PENDING,
    "user_on_hold": JobStatus.PENDING,
    "user_system_on_hold": JobStatus.PENDING,
    "running": JobStatus.RUNNING,
    "system_suspended": JobStatus.RUNNING,
    "user_suspended": JobStatus.RUNNING,
    "user_system_suspended": JobStatus.RUNNING,
}
_FINISHED = ("done", "failed")


def drmaa_session():
    """Creates an uninitialized DRMAA session."""
    # drmaa loads libdrmaa when imported, so only do it when a session is needed.
    import drmaa

    return drmaa.Session()


def _format_time_limit(minutes: int) -> str:
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:00"


class OGSBackend(Backend):
    """
    Implements the motifqueue backend for Open Grid Scheduler through DRMAA.

    All submissions share one DRMAA session. The session is opened at most
    once, on the first submission or explicitly with `open_session`, and is
    closed exactly once: when the backend is used as a context manager it is
    closed on exit, and an atexit hook closes a session left open otherwise.
    Calls into the session are serialized since DRMAA client libraries are
    not safe for concurrent use of a single session.
    """

    kind = "OGS"

    def __init__(
        self,
        folder: Path | str = "motifqueue_logs/ogs",
        native_options: list[str] | None = None,
        session_factory: Callable[[], Any] = drmaa_session,
    ):
        self.folder = Path(folder)
        self.native_options = list(native_options or [])
        self.session_factory = session_factory
        self._session = None
        self._session_used = False
        self._lock = threading.Lock()
        self._error_logs: dict[str, Path] = {}
        self._finished: dict[str, Any] = {}

    # ----- session -----
    @property
    def session_open(self) -> bool:
        return self._session is not None

    def open_session(self):
        """Opens the DRMAA session shared by every submission of this backend."""
        with self._lock:
            return self._open_locked()

    def _open_locked(self):
        # Caller holds self._lock.
        if self._session_used:
            raise RuntimeError("The DRMAA session of this backend was already opened")
        session = self.session_factory()
        session.initialize()
        self._session = session
        self._session_used = True
        atexit.register(self.close_session)
        logger.info("Opened DRMAA session")
        return session

    def close_session(self) -> None:
        """Closes the DRMAA session. Calling it again is a no-op."""
        with self._lock:
            session, self._session = self._session, None
            if session is None:
                return
            atexit.unregister(self.close_session)
            session.exit()
        logger.info("Closed DRMAA session")

    def close(self) -> None:
        self.close_session()

    def __enter__(self):
        if not self.session_open:
            self.open_session()
        return self

    def _require_session(self):
        with self._lock:
            if self._session is None:
                if self._session_used:
                    raise SubmissionError("The DRMAA session is closed")
                self._open_locked()
            return self._session

    # ----- jobs -----
    def _native_specification(self, spec: JobSpec) -> str:
        options = [
            f"-q {spec.queue}",
            f"-l h_rt={_format_time_limit(spec.time_limit)}",
        ]
        if spec.slots > 1:
            options.append(f"-pe smp {spec.slots}")
        if spec.memory_gb is not None:
            options.append(f"-l h_vmem={spec.memory_gb}G")
        options.extend(self.native_options)
        return " ".join(options)

    def submit(self, spec: JobSpec) -> JobHandle:
        """Submits a job template through the shared DRMAA session."""
        session = self._require_session()
        log_dir = spec.log_dir or self.folder
        log_dir.mkdir(parents=True, exist_ok=True)
        log_stem = log_dir.absolute() / f"{spec.job_name}.{secrets.token_hex(4)}"

        with self._lock:
            try:
                template = session.createJobTemplate()
            except Exception as e:
                raise SubmissionError(
                    f"Could not create a DRMAA job template for '{spec.description}'", str(e)
                ) from e
            try:
                template.remoteCommand = spec.executable
                template.args = list(spec.arguments)
                template.workingDirectory = str(spec.working_dir.absolute())
                template.jobName = spec.job_name
                template.nativeSpecification = self._native_specification(spec)
                template.outputPath = f":{log_stem}.out"
                template.errorPath = f":{log_stem}.err"
                job_id = session.runJob(template)
            # drmaa is imported lazily, so its exception hierarchy is not available here.
            except Exception as e:
                raise SubmissionError(
                    f"DRMAA rejected job '{spec.description}'", str(e)
                ) from e
            finally:
                session.deleteJobTemplate(template)

        job_id = str(job_id)
        self._error_logs[job_id] = Path(f"{log_stem}.err")
        logger.info(f"Submitted OGS job {job_id} ({spec.description}) to queue {spec.queue}")
        return self._handle(job_id, spec)

    def poll_status(self, handle: JobHandle) -> JobStatus:
        """Queries the DRMAA session, reaping the job once it has finished."""
        job_id = handle.job_id
        if job_id in self._finished:
            return self._finished_status(job_id)
        if self._session is None:
            raise PollError(job_id, "the DRMAA session is closed")

        with self._lock:
            try:
                state = self._session.jobStatus(job_id)
                if state in _FINISHED:
                    self._finished[job_id] = self._session.wait(job_id, _TIMEOUT_NO_WAIT)
            except Exception as e:
                raise PollError(job_id, str(e)) from e

        logger.debug(f"OGS job {job_id} is {state}")
        if job_id in self._finished:
            return self._finished_status(job_id)
        return _STATUS_MAP.get(state, JobStatus.UNKNOWN)

    def _finished_status(self, job_id: str) -> JobStatus:
        info = self._finished[job_id]
        if info.hasExited and info.exitStatus == 0:
            return JobStatus.SUCCEEDED
        return JobStatus.FAILED

    def failure_details(self, handle: JobHandle) -> tuple[int | None, str | None]:
        """Returns the DRMAA exit status and the tail of the job's stderr."""
        info = self._finished.get(handle.job_id)
        if info is None:
            return None, None

        exit_code = int(info.exitStatus) if info.hasExited else None
        err_log = self._error_logs.get(handle.job_id)
        message = None
        if err_log is not None:
            message = tail_log(err_log)
        if message is None:
            if info.wasAborted:
                message = f"job {handle.job_id} was aborted before it ran"
            elif info.hasSignal:
                message = f"job {handle.job_id} was killed by signal {info.terminatedSignal}"
            elif exit_code is not None:
                message = f"job {handle.job_id} exited with status {exit_code}"
        return exit_code, message
