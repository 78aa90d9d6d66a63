import os
import sys
from pathlib import Path

from loguru import logger

_MOTIFQUEUE_LOGGING_CONFIGURED = False
_DEFAULT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} - {process} - {name} - {level} - {message}"


def log_level(verbose: bool = False) -> str:
    if verbose or os.environ.get("MOTIFQUEUE_DEBUG") == "1":
        return "DEBUG"
    return "INFO"


def setup_logging(verbose: bool = False, quiet: bool = False):
    """
    Configures loguru for motifqueue command line runs.

    The library keeps its logger disabled when imported; this enables it and
    replaces the default sink by a console sink on stderr, unless `quiet`.
    Only the first call has an effect.
    """
    global _MOTIFQUEUE_LOGGING_CONFIGURED
    if _MOTIFQUEUE_LOGGING_CONFIGURED:
        return

    logger.enable("motifqueue")
    logger.remove()
    if not quiet:
        logger.add(sys.stderr, level=log_level(verbose), format=_DEFAULT_FORMAT)

    _MOTIFQUEUE_LOGGING_CONFIGURED = True


def add_file_handler(logfile: Path, level: str = "DEBUG") -> int:
    """
    Adds a file sink and returns its id, for `logger.remove`.
    """
    logfile = Path(logfile)
    logfile.parent.mkdir(parents=True, exist_ok=True)
    return logger.add(logfile, level=level, format=_DEFAULT_FORMAT, enqueue=True)
