"""Motif discovery followed by motif scanning, one cluster job per stage."""

import os
import tempfile
from pathlib import Path

import yaml
from loguru import logger

from .submitter import JobSubmitter, ToolInvocation
from .tools import dreme_invocation, fimo_invocation
from .waiter import JobWaiter, WaitReport


def write_report(report: WaitReport, path: Path) -> None:
    """Atomically writes a wait report as YAML."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.tmp-")
    with os.fdopen(fd, "w") as f:
        yaml.safe_dump(report.to_dict(), f, default_flow_style=False, sort_keys=False)
    os.replace(tmp, path)


class MotifPipeline:
    """
    Runs DREME then FIMO on the cluster, waiting for each stage to finish.

    Args:
        submitter: Submits the stage jobs.
        waiter: Waits for the stage jobs.
        output_dir: Where tool outputs and stage reports are written.
        resource_class: Resource class used for every stage.
    """

    def __init__(
        self,
        submitter: JobSubmitter,
        waiter: JobWaiter,
        output_dir: Path | str,
        resource_class: str = "hour",
    ):
        self.submitter = submitter
        self.waiter = waiter
        self.output_dir = Path(output_dir)
        self.resource_class = resource_class

    @property
    def discovery_dir(self) -> Path:
        return self.output_dir / "dreme"

    @property
    def scanning_dir(self) -> Path:
        return self.output_dir / "fimo"

    @property
    def discovered_motifs(self) -> Path:
        return self.discovery_dir / "dreme.txt"

    def _run_stage(self, name: str, invocation: ToolInvocation) -> WaitReport:
        handle = self.submitter.submit(invocation, self.resource_class)
        logger.info(f"{name}: submitted job {handle.job_id}, waiting for it to finish")
        report = self.waiter.wait_for_all([handle])
        write_report(report, self.output_dir / f"{name}.report.yaml")
        return report

    def run_discovery(
        self,
        executable: str,
        positives: Path | str,
        description: str,
        negatives: Path | str | None = None,
    ) -> WaitReport:
        invocation = dreme_invocation(
            executable,
            positives=positives,
            negatives=negatives,
            output_dir=self.discovery_dir,
            description=description,
        )
        return self._run_stage("discovery", invocation)

    def run_scanning(
        self,
        executable: str,
        motifs: Path | str,
        sequences: Path | str,
        description: str,
        alpha: float,
        qvalue_threshold: float,
    ) -> WaitReport:
        invocation = fimo_invocation(
            executable,
            motifs=motifs,
            sequences=sequences,
            output_dir=self.scanning_dir,
            description=description,
            alpha=alpha,
            qvalue_threshold=qvalue_threshold,
        )
        return self._run_stage("scanning", invocation)

    def run(
        self,
        description: str,
        dreme: str | None = None,
        fimo: str | None = None,
        positives: Path | str | None = None,
        negatives: Path | str | None = None,
        sequences: Path | str | None = None,
        motifs: Path | str | None = None,
        alpha: float = 1.0,
        qvalue_threshold: float = 0.05,
    ) -> int:
        """
        Runs the requested stages and returns a process exit code.

        Scanning uses the motifs found by discovery unless `motifs` is given,
        and scans `positives` unless `sequences` is given. A failed discovery
        stops the pipeline before scanning.
        """
        if dreme is None and fimo is None:
            logger.warning("Neither a DREME nor a FIMO executable was given, nothing to run")
            return 0

        if dreme is not None:
            if positives is None:
                raise ValueError("Motif discovery needs a positive sequence file")
            report = self.run_discovery(dreme, positives, description, negatives=negatives)
            if not report.ok:
                logger.error("Motif discovery failed, skipping motif scanning")
                return 1

        if fimo is not None:
            if motifs is None:
                if dreme is None:
                    raise ValueError("Motif scanning needs a motif file when discovery is not run")
                motifs = self.discovered_motifs
            sequences = sequences if sequences is not None else positives
            if sequences is None:
                raise ValueError("Motif scanning needs a sequence file")
            report = self.run_scanning(
                fimo, motifs, sequences, description, alpha, qvalue_threshold
            )
            if not report.ok:
                return 1

        return 0
