"""Scheduler backends supported by motifqueue."""

import enum

from ..errors import UnknownSchedulerError
from .base import Backend
from .lsf import LSFBackend
from .ogs import OGSBackend


class SchedulerKind(enum.Enum):
    """The closed set of cluster schedulers a job can be submitted to."""

    LSF = "LSF"
    OGS = "OGS"

    @classmethod
    def from_string(cls, name: str) -> "SchedulerKind":
        """Case-sensitive lookup, e.g. 'LSF' or 'OGS'."""
        try:
            return cls(name)
        except ValueError:
            raise UnknownSchedulerError(name, [k.value for k in cls]) from None

    @property
    def backend_class(self) -> type[Backend]:
        return _BACKENDS[self]


_BACKENDS: dict[SchedulerKind, type[Backend]] = {
    SchedulerKind.LSF: LSFBackend,
    SchedulerKind.OGS: OGSBackend,
}


def _check_backends(backends: dict) -> None:
    missing = set(SchedulerKind) - set(backends)
    if missing:
        raise RuntimeError(
            f"Scheduler kinds without a backend: {', '.join(sorted(k.value for k in missing))}"
        )


_check_backends(_BACKENDS)


def resolve(name: str, **options) -> Backend:
    """
    Builds the backend for a scheduler name.

    Args:
        name: Scheduler kind, one of 'LSF' or 'OGS' (case-sensitive).
        **options: Keyword arguments forwarded to the backend constructor.

    Raises:
        UnknownSchedulerError: If the name is not a supported scheduler.
    """
    kind = SchedulerKind.from_string(name)
    return kind.backend_class(**options)


__all__ = [
    "Backend",
    "LSFBackend",
    "OGSBackend",
    "SchedulerKind",
    "resolve",
]
