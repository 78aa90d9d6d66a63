from unittest.mock import MagicMock

import pytest

from motifqueue.errors import SubmissionError
from motifqueue.job import JobStatus
from motifqueue.submitter import (
    DEFAULT_RESOURCE_CLASSES,
    JobSubmitter,
    ResourceClass,
    ToolInvocation,
)


@pytest.fixture
def invocation(tmp_path):
    return ToolInvocation(
        executable="/opt/meme/bin/dreme",
        arguments=["-oc", "out", "-p", "pos.fa"],
        description="dreme_genes",
        working_dir=tmp_path,
    )


def test_hour_class_defaults(stub_backend, invocation):
    submitter = JobSubmitter(stub_backend)
    handle = submitter.submit(invocation, "hour")

    assert handle.status is JobStatus.PENDING
    (spec,) = stub_backend.submitted
    assert spec.queue == "hour"
    assert spec.time_limit == 60
    assert spec.slots == 1
    assert spec.arguments == ("-oc", "out", "-p", "pos.fa")
    assert spec.description == "dreme_genes"


def test_classes_request_different_slots():
    slots = {name: rc.slots for name, rc in DEFAULT_RESOURCE_CLASSES.items()}
    assert slots["hour"] < slots["day"] < slots["week"]


def test_build_spec_is_deterministic(stub_backend, invocation):
    submitter = JobSubmitter(stub_backend)
    assert submitter.build_spec(invocation, "day") == submitter.build_spec(invocation, "day")


def test_invocation_memory_overrides_class(stub_backend, invocation, tmp_path):
    classes = {"big": ResourceClass(queue="long", time_limit=600, slots=2, memory_gb=16)}
    submitter = JobSubmitter(stub_backend, classes, log_dir=tmp_path / "logs")

    assert submitter.build_spec(invocation, "big").memory_gb == 16

    with_memory = ToolInvocation(
        executable=invocation.executable,
        arguments=invocation.arguments,
        description=invocation.description,
        memory_gb=8,
    )
    spec = submitter.build_spec(with_memory, "big")
    assert spec.memory_gb == 8
    assert spec.log_dir == tmp_path / "logs"


def test_unknown_resource_class_submits_nothing(stub_backend, invocation):
    submitter = JobSubmitter(stub_backend)
    with pytest.raises(KeyError):
        submitter.submit(invocation, "fortnight")
    assert stub_backend.submitted == []


def test_submission_error_propagates(invocation):
    backend = MagicMock()
    backend.submit.side_effect = SubmissionError("rejected", "queue closed")
    with pytest.raises(SubmissionError):
        JobSubmitter(backend).submit(invocation, "hour")
    backend.submit.assert_called_once()


@pytest.mark.parametrize("executable, arguments", [("", ["-p"]), ("/bin/dreme", [])])
def test_empty_invocation_is_rejected(executable, arguments):
    with pytest.raises(ValueError):
        ToolInvocation(executable=executable, arguments=arguments, description="x")
