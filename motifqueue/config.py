"""Structured run configuration, loaded with OmegaConf."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from omegaconf import MISSING, DictConfig, OmegaConf

from .submitter import DEFAULT_RESOURCE_CLASSES, ResourceClass


@dataclass
class ResourceClassConfig:
    queue: str = MISSING
    time_limit: int = MISSING  # minutes
    slots: int = 1
    memory_gb: Optional[int] = None


@dataclass
class WaitConfig:
    poll_interval: float = 30.0
    timeout: Optional[float] = None
    max_unknown_polls: int = 10
    workers: int = 1


def _default_resource_classes() -> Dict[str, ResourceClassConfig]:
    return {
        name: ResourceClassConfig(rc.queue, rc.time_limit, rc.slots, rc.memory_gb)
        for name, rc in DEFAULT_RESOURCE_CLASSES.items()
    }


@dataclass
class RunConfig:
    """Everything a pipeline run needs besides the tool inputs."""

    scheduler: str = "LSF"
    resource_class: str = "hour"
    log_dir: str = "motifqueue_logs/${now:%Y-%m-%d_%H-%M-%S}"
    output_dir: str = "motifqueue_results"
    wait: WaitConfig = field(default_factory=WaitConfig)
    resource_classes: Dict[str, ResourceClassConfig] = field(
        default_factory=_default_resource_classes
    )
    # Keyword arguments for the backend, e.g. startup_lines (LSF) or native_options (OGS)
    backend: Dict[str, Any] = field(default_factory=dict)


def load_config(
    config_path: Path | str | None = None, overrides: Sequence[str] = ()
) -> DictConfig:
    """
    Builds the run configuration.

    Values are merged in order: RunConfig defaults, the YAML file at
    `config_path`, then dot-list `overrides` (e.g. 'wait.timeout=3600').
    """
    cfg = OmegaConf.structured(RunConfig)
    if config_path:
        cfg.merge_with(OmegaConf.load(config_path))
    if overrides:
        cfg.merge_with(OmegaConf.from_dotlist(list(overrides)))
    return cfg


def resource_classes_from(cfg: DictConfig) -> dict[str, ResourceClass]:
    return {
        name: ResourceClass(**OmegaConf.to_container(rc, resolve=True))
        for name, rc in cfg.resource_classes.items()
    }


def backend_options_from(cfg: DictConfig) -> dict:
    return OmegaConf.to_container(cfg.backend, resolve=True)
