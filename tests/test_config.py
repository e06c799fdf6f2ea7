import logging

import pytest

from topslice import ConfigurationError, SliceFinderConfig
from topslice._logging_utils import resolve_verbosity, verbosity_to_level


def test_defaults():
    cfg = SliceFinderConfig()
    assert (cfg.k, cfg.max_level, cfg.min_support, cfg.alpha) == (4, 0, 32, 0.5)
    assert cfg.task_parallel is False
    assert cfg.block_size == 16
    assert cfg.verbose is False
    assert cfg.validate() is cfg


@pytest.mark.parametrize(
    "overrides",
    [
        dict(alpha=-0.1),
        dict(alpha=1.5),
        dict(k=0),
        dict(k=-3),
        dict(max_level=-1),
        dict(min_support=-1),
        dict(block_size=0),
        dict(n_jobs=0),
    ],
)
def test_invalid_configuration_raises(overrides):
    with pytest.raises(ConfigurationError):
        SliceFinderConfig(**overrides).validate()


def test_alpha_bounds_are_inclusive():
    SliceFinderConfig(alpha=0.0).validate()
    SliceFinderConfig(alpha=1.0).validate()


def test_with_overrides_rejects_unknown_keys():
    cfg = SliceFinderConfig().with_overrides(k=7, alpha=0.9)
    assert cfg.k == 7 and cfg.alpha == 0.9
    with pytest.raises(ConfigurationError):
        SliceFinderConfig().with_overrides(top_k=3)


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


def test_verbosity_to_level_mapping():
    assert verbosity_to_level(-1) == verbosity_to_level(0) == logging.WARNING
    assert verbosity_to_level(1) == logging.INFO
    assert verbosity_to_level(2) == verbosity_to_level(3) == logging.DEBUG


def test_verbose_flag_raises_verbosity():
    assert resolve_verbosity(0, verbose=True) == 1
    assert resolve_verbosity(2, verbose=True) == 2
    assert resolve_verbosity(0, verbose=False) == 0
