"""Slice scores and score upper bounds.

Both functions are vectorized over numpy arrays (scalars are accepted and
returned as ``float``). A slice of size zero has score ``-inf``; the division
warnings numpy would emit in that case are silenced locally.
"""

from __future__ import annotations

from typing import Union

import numpy as np

ArrayLike = Union[float, int, np.ndarray]


def _as_output(values: np.ndarray, scalar: bool):
    return float(values) if scalar else values


def score(
    size: ArrayLike,
    total_error: ArrayLike,
    avg_error: float,
    alpha: float,
    m: int,
) -> ArrayLike:
    """Weighted excess of relative error and relative size.

    ``alpha * ((total_error / size) / avg_error - 1) - (1 - alpha) * (m / size - 1)``
    """
    scalar = np.ndim(size) == 0 and np.ndim(total_error) == 0
    ss = np.asarray(size, dtype=float)
    se = np.asarray(total_error, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        sc = alpha * ((se / ss) / avg_error - 1.0) - (1.0 - alpha) * (m / ss - 1.0)
    sc = np.where(ss > 0, sc, -np.inf)
    sc = np.where(np.isnan(sc), -np.inf, sc)
    return _as_output(sc, scalar)


def score_upper_bound(
    size: ArrayLike,
    total_error: ArrayLike,
    max_error: ArrayLike,
    avg_error: float,
    min_support: int,
    alpha: float,
    m: int,
) -> ArrayLike:
    """Upper bound of the score of any slice dominated by the given bounds.

    The score is monotone in the support for a fixed error budget, so its
    maximum over ``[min_support, size]`` is attained at one of three trial
    supports: ``min_support``, the support at which ``max_error`` saturates
    ``total_error`` and ``size`` itself. At each trial support ``s`` the
    error is capped by ``min(s * max_error, total_error)``.
    """
    scalar = all(np.ndim(v) == 0 for v in (size, total_error, max_error))
    ss = np.atleast_1d(np.asarray(size, dtype=float))
    se = np.atleast_1d(np.asarray(total_error, dtype=float))
    sm = np.atleast_1d(np.asarray(max_error, dtype=float))
    ms = float(max(min_support, 1))

    with np.errstate(divide="ignore", invalid="ignore"):
        knee = np.where(sm > 0, se / sm, ms)
    knee = np.clip(np.maximum(knee, ms), None, np.maximum(ss, ms))
    trials = np.stack([np.full_like(ss, ms), knee, ss], axis=1)
    trials = np.minimum(trials, np.maximum(ss, ms)[:, None])

    with np.errstate(divide="ignore", invalid="ignore"):
        err = np.minimum(trials * sm[:, None], se[:, None])
        sc = alpha * ((err / trials) / avg_error - 1.0) - (1.0 - alpha) * (m / trials - 1.0)
    sc = np.where(np.isnan(sc), -np.inf, sc)
    ub = sc.max(axis=1)
    ub = np.where(ss > 0, ub, -np.inf)
    return _as_output(ub[0], True) if scalar else ub
