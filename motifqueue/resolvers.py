"""OmegaConf resolvers used to name run directories."""

import re
import threading
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from pathlib import Path

from omegaconf import OmegaConf

# Per-thread cache, only present while a resolver_context is active.
_local = threading.local()


@contextmanager
def resolver_context():
    """
    Caches resolver results for the duration of the block, so that every
    `${now:}` or `${vinc:}` interpolation of one run resolves to the same value.
    """
    previous = getattr(_local, "cache", None)
    _local.cache = {}
    try:
        yield
    finally:
        if previous is None:
            del _local.cache
        else:
            _local.cache = previous


def _cached(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        cache = getattr(_local, "cache", None)
        if cache is None:
            return func(*args, **kwargs)
        key = (func.__name__, args, tuple(sorted(kwargs.items())))
        if key not in cache:
            cache[key] = func(*args, **kwargs)
        return cache[key]

    return wrapper


@_cached
def now_resolver(fmt: str = "%Y-%m-%d_%H-%M-%S") -> str:
    """Current time formatted with `fmt`, e.g. `${now:%Y%m%d}`."""
    return datetime.now().strftime(fmt)


@_cached
def vinc_resolver(path: str, fmt: str = "_{i:04d}") -> str:
    """
    Next free versioned path, e.g. `${vinc:logs/run}` gives `logs/run_0003`
    when `logs/run_0002` is the highest version on disk.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    version = re.compile(
        "^" + re.escape(target.name) + re.sub(r"\{i.*\}", r"(\\d+)", fmt) + "$"
    )

    versions = [
        int(m.group(1))
        for m in (version.match(p.name) for p in target.parent.glob(f"{target.name}*"))
        if m
    ]
    next_version = max(versions, default=-1) + 1
    return str(target.parent / f"{target.name}{fmt.format(i=next_version)}")


def register_resolvers():
    """Registers `now` and `vinc` with OmegaConf, once per process."""
    for name, resolver in (("now", now_resolver), ("vinc", vinc_resolver)):
        if not OmegaConf.has_resolver(name):
            OmegaConf.register_new_resolver(name, resolver)
