"""Command line entry point: run motif discovery and scanning on a cluster."""

import argparse
import signal
import sys
from pathlib import Path

from loguru import logger
from omegaconf import OmegaConf

from .backends import SchedulerKind, resolve
from .config import RunConfig, backend_options_from, load_config, resource_classes_from
from .errors import SubmissionError, UnknownSchedulerError
from .logging import add_file_handler, log_level, setup_logging
from .pipeline import MotifPipeline
from .resolvers import resolver_context
from .submitter import JobSubmitter
from .waiter import JobWaiter


def build_parser() -> argparse.ArgumentParser:
    default_yaml = OmegaConf.to_yaml(OmegaConf.structured(RunConfig))
    parser = argparse.ArgumentParser(
        prog="motifqueue",
        description="Run DREME motif discovery and FIMO motif scanning as cluster jobs.",
        epilog=f"Default Configuration:\n---\n{default_yaml}",
        formatter_class=argparse.RawTextHelpFormatter,
    )

    # Tool inputs
    parser.add_argument("--positives", default=None, help="FASTA file of sequences to search for motifs.")
    parser.add_argument("--negatives", default=None, help="FASTA file of control sequences for DREME.")
    parser.add_argument(
        "--sequences",
        default=None,
        help="FASTA file scanned by FIMO (defaults to --positives).",
    )
    parser.add_argument(
        "--motifs",
        default=None,
        help="MEME motif file scanned by FIMO (defaults to the DREME output).",
    )
    parser.add_argument("--dreme", default=None, help="DREME executable. Discovery is skipped if omitted.")
    parser.add_argument("--fimo", default=None, help="FIMO executable. Scanning is skipped if omitted.")
    parser.add_argument("--description", required=True, help="Label used in job names and tool outputs.")
    parser.add_argument("--alpha", type=float, default=1.0, help="FIMO alpha option.")
    parser.add_argument("--qvalue", type=float, default=0.05, help="FIMO q-value threshold.")

    # Scheduling
    parser.add_argument(
        "--scheduler",
        default=None,
        help=f"Scheduler, one of {', '.join(k.value for k in SchedulerKind)}.",
    )
    parser.add_argument("--resource-class", default=None, help="Resource class, e.g. 'hour' or 'day'.")
    parser.add_argument("--output", default=None, help="Directory for tool outputs and stage reports.")

    # Configuration
    parser.add_argument("--config", default=None, help="Path to a YAML configuration file.")
    parser.add_argument(
        "-o",
        "--overrides_dot",
        nargs="*",
        default=[],
        help="Dot-separated key-value pairs for overrides (e.g., 'wait.timeout=3600').",
    )

    # Logging
    parser.add_argument("--verbose", action="store_true", help="Set log level to DEBUG.")
    parser.add_argument("--logfile", default=None, help="Log file (defaults to <log_dir>/motifqueue.log).")
    parser.add_argument("--quiet", action="store_true", help="Do not log to the console.")
    return parser


def _terminate(signum, frame):
    # Turn SIGTERM into SystemExit so scheduler sessions are closed on the way out.
    raise SystemExit(128 + signum)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    overrides = list(args.overrides_dot)
    if args.scheduler is not None:
        overrides.append(f"scheduler={args.scheduler}")
    if args.resource_class is not None:
        overrides.append(f"resource_class={args.resource_class}")
    if args.output is not None:
        overrides.append(f"output_dir={args.output}")

    with resolver_context():
        cfg = load_config(args.config, overrides)
        OmegaConf.resolve(cfg)

    try:
        backend = resolve(cfg.scheduler, **backend_options_from(cfg))
    except UnknownSchedulerError as e:
        logger.error(str(e))
        return 2

    resource_classes = resource_classes_from(cfg)
    if cfg.resource_class not in resource_classes:
        logger.error(
            f"Unknown resource class '{cfg.resource_class}'. "
            f"Available: {', '.join(sorted(resource_classes))}"
        )
        return 2

    log_dir = Path(cfg.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    OmegaConf.save(cfg, log_dir / "config.yaml")
    file_sink = add_file_handler(
        Path(args.logfile) if args.logfile else log_dir / "motifqueue.log",
        level=log_level(args.verbose),
    )

    submitter = JobSubmitter(backend, resource_classes, log_dir=log_dir / "jobs")
    waiter = JobWaiter(**OmegaConf.to_container(cfg.wait))
    pipeline = MotifPipeline(
        submitter, waiter, output_dir=cfg.output_dir, resource_class=cfg.resource_class
    )

    previous_handler = signal.signal(signal.SIGTERM, _terminate)
    try:
        with backend:
            return pipeline.run(
                description=args.description,
                dreme=args.dreme,
                fimo=args.fimo,
                positives=args.positives,
                negatives=args.negatives,
                sequences=args.sequences,
                motifs=args.motifs,
                alpha=args.alpha,
                qvalue_threshold=args.qvalue,
            )
    except SubmissionError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        logger.error(str(e))
        return 2
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
        logger.remove(file_sink)


if __name__ == "__main__":
    sys.exit(main())
