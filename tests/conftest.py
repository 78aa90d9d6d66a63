import pytest
from loguru import logger

from motifqueue.backends.base import Backend
from motifqueue.errors import PollError
from motifqueue.job import JobHandle, JobSpec, JobStatus

logger.enable("motifqueue")


class StubBackend(Backend):
    """
    Backend answering scripted statuses.

    `script` maps a description to the sequence of answers returned by
    successive polls; the last answer repeats. An answer may be a JobStatus
    or a PollError instance to raise.
    """

    kind = "STUB"

    def __init__(self, script=None, details=None):
        self.script = dict(script or {})
        self.details = dict(details or {})
        self.submitted = []
        self.polls = {}
        self.closed = False

    def submit(self, spec: JobSpec) -> JobHandle:
        self.submitted.append(spec)
        return self._handle(f"{len(self.submitted)}", spec)

    def poll_status(self, handle: JobHandle) -> JobStatus:
        n = self.polls.get(handle.job_id, 0)
        self.polls[handle.job_id] = n + 1
        answers = self.script.get(handle.description, [JobStatus.UNKNOWN])
        answer = answers[min(n, len(answers) - 1)]
        if isinstance(answer, PollError):
            raise answer
        return answer

    def failure_details(self, handle):
        return self.details.get(handle.description, (None, None))

    def close(self):
        self.closed = True


@pytest.fixture
def stub_backend():
    return StubBackend()


@pytest.fixture
def make_spec(tmp_path):
    def _make_spec(description="job", **kwargs):
        values = dict(
            executable="/bin/echo",
            arguments=("hello",),
            working_dir=tmp_path,
            queue="hour",
            time_limit=60,
            slots=1,
            description=description,
        )
        values.update(kwargs)
        return JobSpec(**values)

    return _make_spec
