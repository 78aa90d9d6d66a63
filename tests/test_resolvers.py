import pytest
from omegaconf import OmegaConf
from pathlib import Path
import time

import motifqueue  # registers resolvers
from motifqueue.resolvers import now_resolver, vinc_resolver, resolver_context

def test_now_resolver():
    """Test the now_resolver returns a string in the correct format."""
    with resolver_context():
        timestamp = now_resolver()
    assert isinstance(timestamp, str)
    try:
        time.strptime(timestamp, "%Y-%m-%d_%H-%M-%S")
    except ValueError:
        pytest.fail("Default timestamp format is incorrect")

    with resolver_context():
        timestamp_custom = now_resolver(fmt="%Y%m%d")
    try:
        time.strptime(timestamp_custom, "%Y%m%d")
    except ValueError:
        pytest.fail("Custom timestamp format is incorrect")

def test_now_resolver_is_stable_within_a_context():
    """The same run sees the same timestamp wherever it is interpolated."""
    with resolver_context():
        cfg = OmegaConf.create({"a": "${now:%H-%M-%S-%f}", "b": "${now:%H-%M-%S-%f}"})
        OmegaConf.resolve(cfg)
    assert cfg.a == cfg.b

def test_vinc_resolver(tmp_path):
    """Test the vinc_resolver correctly increments version numbers."""
    base_path = tmp_path / "run"

    with resolver_context():
        path1 = vinc_resolver(str(base_path))
    assert path1 == str(tmp_path / "run_0000")
    Path(path1).mkdir()

    with resolver_context():
        path2 = vinc_resolver(str(base_path))
    assert path2 == str(tmp_path / "run_0001")

    (tmp_path / "run_0005").mkdir()
    with resolver_context():
        path3 = vinc_resolver(str(base_path))
    assert path3 == str(tmp_path / "run_0006")

def test_vinc_resolver_with_custom_format(tmp_path):
    """Test vinc_resolver with a custom format string."""
    base_path = tmp_path / "logs"
    fmt = "-v{i:02d}"

    with resolver_context():
        path1 = vinc_resolver(str(base_path), fmt=fmt)
    assert path1 == str(tmp_path / "logs-v00")
    Path(path1).mkdir()

    with resolver_context():
        path2 = vinc_resolver(str(base_path), fmt=fmt)
    assert path2 == str(tmp_path / "logs-v01")

def test_cache_is_scoped_to_the_context(tmp_path):
    """Results are reused inside one context and recomputed after it ends."""
    base_path = str(tmp_path / "run")
    with resolver_context():
        first = vinc_resolver(base_path)
        Path(first).mkdir()
        assert vinc_resolver(base_path) == first

    assert vinc_resolver(base_path) == str(tmp_path / "run_0001")
    Path(tmp_path / "run_0001").mkdir()
    assert vinc_resolver(base_path) == str(tmp_path / "run_0002")
