"""Command lines for the MEME suite tools run by the motif pipeline."""

from pathlib import Path
from typing import Sequence

from .submitter import ToolInvocation

#: Options always passed to DREME after the required arguments.
DREME_ADDITIONAL_OPTIONS = ("-dna",)
#: Options always passed to FIMO before the motif and sequence files.
FIMO_ADDITIONAL_OPTIONS = ("--verbosity", "1")

#: Memory requested for each tool, in gigabytes.
DREME_MEMORY_GB = 8
FIMO_MEMORY_GB = 4


def dreme_invocation(
    executable: str,
    positives: Path | str,
    output_dir: Path | str,
    description: str,
    negatives: Path | str | None = None,
    options: Sequence[str] = DREME_ADDITIONAL_OPTIONS,
    working_dir: Path | str | None = None,
) -> ToolInvocation:
    """
    Builds a DREME motif discovery command.

    DREME writes `dreme.txt` (MEME motif format) into `output_dir`.
    Without `negatives`, DREME generates shuffled control sequences itself.
    """
    args = ["-oc", str(output_dir), "-p", str(positives)]
    if negatives is not None:
        args += ["-n", str(negatives)]
    args += ["-desc", description, *options]
    return ToolInvocation(
        executable=executable,
        arguments=args,
        description=f"dreme_{description}",
        working_dir=Path(working_dir) if working_dir else Path.cwd(),
        memory_gb=DREME_MEMORY_GB,
    )


def fimo_invocation(
    executable: str,
    motifs: Path | str,
    sequences: Path | str,
    output_dir: Path | str,
    description: str,
    alpha: float,
    qvalue_threshold: float,
    options: Sequence[str] = FIMO_ADDITIONAL_OPTIONS,
    working_dir: Path | str | None = None,
) -> ToolInvocation:
    """Builds a FIMO motif scanning command thresholded on q-values."""
    args = [
        "--oc", str(output_dir),
        "--alpha", str(alpha),
        "--thresh", str(qvalue_threshold),
        "--qv-thresh",
        *options,
        str(motifs),
        str(sequences),
    ]
    return ToolInvocation(
        executable=executable,
        arguments=args,
        description=f"fimo_{description}",
        working_dir=Path(working_dir) if working_dir else Path.cwd(),
        memory_gb=FIMO_MEMORY_GB,
    )
