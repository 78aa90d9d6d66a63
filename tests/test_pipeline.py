from unittest.mock import MagicMock, patch

import pytest
import yaml

from motifqueue.errors import SubmissionError
from motifqueue.job import JobStatus
from motifqueue.pipeline import MotifPipeline
from motifqueue.submitter import JobSubmitter
from motifqueue.waiter import JobWaiter

from conftest import StubBackend


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("motifqueue.waiter.time.sleep"):
        yield


def make_pipeline(backend, tmp_path, resource_class="hour"):
    return MotifPipeline(
        JobSubmitter(backend),
        JobWaiter(poll_interval=1),
        output_dir=tmp_path / "results",
        resource_class=resource_class,
    )


def test_discovery_then_scanning(tmp_path):
    backend = StubBackend(
        script={
            "dreme_genes": [JobStatus.RUNNING, JobStatus.SUCCEEDED],
            "fimo_genes": [JobStatus.SUCCEEDED],
        }
    )
    pipeline = make_pipeline(backend, tmp_path)

    code = pipeline.run("genes", dreme="dreme", fimo="fimo", positives="pos.fa", alpha=0.5)

    assert code == 0
    dreme_spec, fimo_spec = backend.submitted
    assert dreme_spec.executable == "dreme"
    assert dreme_spec.memory_gb == 8
    assert dreme_spec.queue == "hour"
    assert fimo_spec.memory_gb == 4
    # Scanning reads the discovered motifs and the positive sequences.
    assert fimo_spec.arguments[-2:] == (str(pipeline.discovered_motifs), "pos.fa")

    report = yaml.safe_load((tmp_path / "results" / "discovery.report.yaml").read_text())
    assert report["ok"] is True
    assert report["jobs"][0]["status"] == "succeeded"
    assert (tmp_path / "results" / "scanning.report.yaml").exists()


def test_failed_discovery_skips_scanning(tmp_path):
    backend = StubBackend(script={"dreme_genes": [JobStatus.FAILED]})
    pipeline = make_pipeline(backend, tmp_path)

    code = pipeline.run("genes", dreme="dreme", fimo="fimo", positives="pos.fa")

    assert code == 1
    assert len(backend.submitted) == 1
    report = yaml.safe_load((tmp_path / "results" / "discovery.report.yaml").read_text())
    assert report["ok"] is False
    assert report["jobs"][0]["message"] == "job 1 failed, exit status unknown"


def test_failed_scanning_exits_non_zero(tmp_path):
    backend = StubBackend(script={"fimo_genes": [JobStatus.FAILED]})
    pipeline = make_pipeline(backend, tmp_path)
    code = pipeline.run("genes", fimo="fimo", motifs="motifs.txt", sequences="seq.fa")
    assert code == 1


def test_scanning_only_needs_motifs(tmp_path, stub_backend):
    pipeline = make_pipeline(stub_backend, tmp_path)
    with pytest.raises(ValueError):
        pipeline.run("genes", fimo="fimo", sequences="seq.fa")
    assert stub_backend.submitted == []


def test_nothing_to_run(tmp_path, stub_backend):
    assert make_pipeline(stub_backend, tmp_path).run("genes") == 0
    assert stub_backend.submitted == []


def test_submission_error_propagates(tmp_path):
    backend = MagicMock()
    backend.submit.side_effect = SubmissionError("bsub rejected job", "No such queue")
    pipeline = make_pipeline(backend, tmp_path)
    with pytest.raises(SubmissionError):
        pipeline.run("genes", dreme="dreme", positives="pos.fa")


def test_resource_class_is_applied(tmp_path):
    backend = StubBackend(script={"dreme_genes": [JobStatus.SUCCEEDED]})
    pipeline = make_pipeline(backend, tmp_path, resource_class="day")
    pipeline.run_discovery("dreme", "pos.fa", "genes")
    assert backend.submitted[0].queue == "day"
    assert backend.submitted[0].slots == 4
