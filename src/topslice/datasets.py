"""Synthetic dataset utilities for topslice examples and tests."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple, Union

import logging
from time import perf_counter

import numpy as np
from sklearn.datasets import make_classification
from sklearn.linear_model import LogisticRegression
from sklearn.preprocessing import KBinsDiscretizer

from ._logging_utils import verbosity_to_level


def make_planted_slice_dataset(
    *,
    n_samples: int = 2000,
    n_values: Union[int, Sequence[int]] = (3, 4, 2, 5),
    planted: Optional[Dict[int, int]] = None,
    base_error_rate: float = 0.05,
    slice_error_rate: float = 0.6,
    random_state: Optional[int] = 0,
    verbosity: int = 0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Categorical records with one planted high-error slice.

    Each feature ``j`` is drawn uniformly from ``1..n_values[j]``. Records
    matching every predicate of ``planted`` (``{feature: value}``) fail with
    probability ``slice_error_rate``, all others with ``base_error_rate``.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, np.ndarray]
        Integer matrix ``X`` (``n_samples x n``), 0/1 error vector ``e`` and
        the planted slice as a length-``n`` value row (0 = unconstrained).
    """
    logger = logging.getLogger(__name__)
    level = verbosity_to_level(verbosity)
    start = perf_counter()

    if isinstance(n_values, (int, np.integer)):
        n_values = [int(n_values)] * 4
    n_values = [int(v) for v in n_values]
    if planted is None:
        planted = {0: 1, 2: 2}

    rng = np.random.default_rng(random_state)
    X = np.column_stack([rng.integers(1, v + 1, size=n_samples) for v in n_values])

    in_slice = np.ones(n_samples, dtype=bool)
    planted_row = np.zeros(len(n_values), dtype=np.int64)
    for feature, value in planted.items():
        in_slice &= X[:, int(feature)] == int(value)
        planted_row[int(feature)] = int(value)

    p = np.where(in_slice, slice_error_rate, base_error_rate)
    e = (rng.random(n_samples) < p).astype(float)

    logger.log(
        level,
        "planted slice dataset | n=%d features=%d slice_size=%d error_rate=%.4f en %.6fs",
        n_samples,
        len(n_values),
        int(in_slice.sum()),
        float(e.mean()) if n_samples else 0.0,
        perf_counter() - start,
    )
    return X, e, planted_row


def make_model_error_dataset(
    *,
    n_samples: int = 3000,
    n_features: int = 5,
    n_bins: int = 4,
    random_state: Optional[int] = 0,
    verbosity: int = 0,
) -> Tuple[np.ndarray, np.ndarray, List[str]]:
    """Binned features plus per-record errors of a fitted classifier.

    A :func:`sklearn.datasets.make_classification` problem is fitted with a
    :class:`~sklearn.linear_model.LogisticRegression`; the error of each
    record is ``1 - p(true class)``. Features are discretized into
    ``n_bins`` quantile bins and shifted to ``1..n_bins``.
    """
    logger = logging.getLogger(__name__)
    level = verbosity_to_level(verbosity)
    start = perf_counter()

    Xc, y = make_classification(
        n_samples=n_samples,
        n_features=n_features,
        n_informative=max(2, n_features // 2),
        n_redundant=0,
        n_clusters_per_class=2,
        flip_y=0.05,
        random_state=random_state,
    )
    model = LogisticRegression(max_iter=500, random_state=0)
    model.fit(Xc, y)
    proba = model.predict_proba(Xc)
    e = 1.0 - proba[np.arange(y.size), y]

    binner = KBinsDiscretizer(n_bins=n_bins, encode="ordinal", strategy="quantile")
    X = binner.fit_transform(Xc).astype(np.int64) + 1
    feature_names = [f"x{j}" for j in range(n_features)]

    logger.log(
        level,
        "model error dataset | n=%d d=%d bins=%d mean_error=%.4f en %.6fs",
        n_samples,
        n_features,
        n_bins,
        float(e.mean()),
        perf_counter() - start,
    )
    return X, e, feature_names
