"""Configuration for the slice finder."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict

from .errors import ConfigurationError


@dataclass(frozen=True)
class SliceFinderConfig:
    """Parameters of a slice finding run.

    Parameters
    ----------
    k:
        Number of slices kept in the Top-K list.
    max_level:
        Maximum number of predicates per slice. ``0`` means unlimited, i.e.
        bounded by the number of features.
    min_support:
        Minimum number of matching records for a slice to be considered.
    alpha:
        Weight of the relative error term in the score, in ``[0, 1]``. The
        relative size term receives ``1 - alpha``.
    task_parallel:
        Evaluate candidates in fixed-size blocks on a thread pool instead of
        one bulk sparse product.
    block_size:
        Number of candidates per block in task-parallel mode.
    select_features:
        Evaluate candidates on the one-hot columns that survived basic slice
        selection only.
    n_jobs:
        Worker count passed to :class:`joblib.Parallel` in task-parallel mode.
    verbose:
        Collect the per-level debug trace and log at least at INFO level.
    verbosity:
        0 = warnings only, 1 = info, 2 = debug.
    """

    k: int = 4
    max_level: int = 0
    min_support: int = 32
    alpha: float = 0.5
    task_parallel: bool = False
    block_size: int = 16
    select_features: bool = False
    n_jobs: int = -1
    verbose: bool = False
    verbosity: int = 0

    def validate(self) -> "SliceFinderConfig":
        if not 0.0 <= float(self.alpha) <= 1.0:
            raise ConfigurationError(f"alpha debe estar en [0, 1], recibido {self.alpha!r}")
        if int(self.k) <= 0:
            raise ConfigurationError(f"k debe ser positivo, recibido {self.k!r}")
        if int(self.max_level) < 0:
            raise ConfigurationError(f"max_level debe ser >= 0, recibido {self.max_level!r}")
        if int(self.min_support) < 0:
            raise ConfigurationError(f"min_support debe ser >= 0, recibido {self.min_support!r}")
        if int(self.block_size) <= 0:
            raise ConfigurationError(f"block_size debe ser positivo, recibido {self.block_size!r}")
        if int(self.n_jobs) == 0:
            raise ConfigurationError("n_jobs no puede ser 0")
        return self

    def with_overrides(self, **overrides: Any) -> "SliceFinderConfig":
        """Return a copy with ``overrides`` applied; unknown keys are rejected."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(f"Parámetros desconocidos: {unknown}")
        return replace(self, **overrides)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
