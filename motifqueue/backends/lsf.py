"""LSF backend: queue-based submission through bsub, polling through bjobs."""

import re
import shlex
import subprocess
import secrets
from pathlib import Path

from loguru import logger

from .base import Backend, tail_log
from ..errors import PollError, SubmissionError
from ..job import JobHandle, JobSpec, JobStatus

_SUBMITTED = re.compile(r"Job <(\d+)> is submitted")

_STATUS_MAP = {
    "PEND": JobStatus.PENDING,
    "PSUSP": JobStatus.PENDING,
    "WAIT": JobStatus.PENDING,
    "PROV": JobStatus.PENDING,
    "RUN": JobStatus.RUNNING,
    "USUSP": JobStatus.RUNNING,
    "SSUSP": JobStatus.RUNNING,
    "DONE": JobStatus.SUCCEEDED,
    "EXIT": JobStatus.FAILED,
    "UNKWN": JobStatus.UNKNOWN,
    "ZOMBI": JobStatus.UNKNOWN,
}


def _format_time_limit(minutes: int) -> str:
    hours, minutes = divmod(minutes, 60)
    return f"{hours}:{minutes:02d}"


class LSFBackend(Backend):
    """Implements the motifqueue backend for LSF (Load Sharing Facility)."""

    kind = "LSF"

    def __init__(
        self,
        folder: Path | str = "motifqueue_logs/lsf",
        startup_lines: list[str] | None = None,
        bsub: str = "bsub",
        bjobs: str = "bjobs",
    ):
        self.folder = Path(folder)
        self.startup_lines = list(startup_lines or [])
        self.bsub = bsub
        self.bjobs = bjobs
        self._error_logs: dict[str, Path] = {}
        self._exit_codes: dict[str, int | None] = {}

    def _log_dir(self, spec: JobSpec) -> Path:
        log_dir = spec.log_dir or self.folder
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir.absolute()

    def _make_script(self, spec: JobSpec, log_dir: Path) -> str:
        """Generates the LSF submission script content."""
        lines = [
            "#!/bin/bash",
            f"#BSUB -J {spec.job_name}",
            f"#BSUB -q {spec.queue}",
            f"#BSUB -W {_format_time_limit(spec.time_limit)}",
            f"#BSUB -n {spec.slots}",
        ]
        if spec.memory_gb is not None:
            lines.append(f'#BSUB -R "rusage[mem={spec.memory_gb * 1024}]"')
        lines.extend(
            [
                f"#BSUB -o {log_dir / spec.job_name}.%J.out",
                f"#BSUB -e {log_dir / spec.job_name}.%J.err",
                f"#BSUB -cwd {spec.working_dir.absolute()}",
            ]
        )
        lines.extend(self.startup_lines)
        lines.append(f"cd {shlex.quote(str(spec.working_dir.absolute()))}")
        lines.append(shlex.join(spec.command))
        return "\n".join(lines) + "\n"

    def submit(self, spec: JobSpec) -> JobHandle:
        """Writes a job script and hands it to bsub on stdin."""
        log_dir = self._log_dir(spec)
        script_path = log_dir / f"job_{secrets.token_hex(4)}.lsf"
        script_path.write_text(self._make_script(spec, log_dir))

        try:
            with open(script_path) as script:
                proc = subprocess.run(
                    [self.bsub], stdin=script, capture_output=True, text=True
                )
        except OSError as e:
            raise SubmissionError(f"Could not run {self.bsub}", str(e)) from e
        if proc.returncode != 0:
            raise SubmissionError(
                f"bsub rejected job '{spec.description}'", proc.stderr or proc.stdout
            )

        match = _SUBMITTED.search(proc.stdout)
        if match is None:
            raise SubmissionError(
                f"Could not read the job id of '{spec.description}' from bsub output",
                proc.stdout,
            )
        job_id = match.group(1)
        self._error_logs[job_id] = log_dir / f"{spec.job_name}.{job_id}.err"
        logger.info(f"Submitted LSF job {job_id} ({spec.description}) to queue {spec.queue}")
        return self._handle(job_id, spec)

    def poll_status(self, handle: JobHandle) -> JobStatus:
        """Queries bjobs for the state and exit code of a job."""
        try:
            proc = subprocess.run(
                [self.bjobs, "-noheader", "-o", "stat exit_code", handle.job_id],
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise PollError(handle.job_id, str(e)) from e

        fields = proc.stdout.split()
        if proc.returncode != 0 or not fields or "not found" in proc.stdout:
            raise PollError(handle.job_id, (proc.stderr or proc.stdout).strip())

        status = _STATUS_MAP.get(fields[0], JobStatus.UNKNOWN)
        if status is JobStatus.FAILED and len(fields) > 1 and fields[1].isdigit():
            self._exit_codes[handle.job_id] = int(fields[1])
        logger.debug(f"LSF job {handle.job_id} is {fields[0]}")
        return status

    def failure_details(self, handle: JobHandle) -> tuple[int | None, str | None]:
        """Returns the exit code reported by bjobs and the tail of the job's stderr."""
        exit_code = self._exit_codes.get(handle.job_id)
        err_log = self._error_logs.get(handle.job_id)
        message = tail_log(err_log) if err_log is not None else None
        if message is None and exit_code is not None:
            message = f"job {handle.job_id} exited with status {exit_code}"
        return exit_code, message
