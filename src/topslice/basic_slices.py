"""Level-1 slices: one predicate per slice, one slice per one-hot column."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Tuple

import numpy as np
import scipy.sparse as sp

from ._logging_utils import verbosity_to_level
from ._sparse_utils import column_statistics, rows_from_column_sets
from .scoring import score


def create_and_score_basic_slices(
    X2,
    e: np.ndarray,
    avg_error: float,
    min_support: int,
    alpha: float,
    *,
    verbosity: int = 0,
) -> Tuple[sp.csr_matrix, np.ndarray, np.ndarray]:
    """Build and score all single-predicate slices.

    A column becomes a slice when it matches at least ``min_support`` records
    and its total error is positive.

    Returns
    -------
    S:
        ``k x n2`` sparse slice rows, one set column each.
    R:
        ``k x 4`` statistics ``(score, total_error, max_error, size)``.
    selected:
        Boolean mask over the ``n2`` columns that produced a slice.
    """
    logger = logging.getLogger(__name__)
    level = verbosity_to_level(verbosity)
    t0 = perf_counter()

    X2 = sp.csc_matrix(X2)
    m, n2 = X2.shape
    counts, errors, max_errors = column_statistics(X2, np.asarray(e, dtype=float))

    selected = (counts >= min_support) & (errors > 0)
    logger.log(
        level,
        "basic slices: descartadas %d de %d columnas (min_support=%d o error nulo)",
        int(n2 - selected.sum()),
        n2,
        min_support,
    )

    cols = np.flatnonzero(selected)
    S = rows_from_column_sets(cols[:, None], n2)
    ss, se, sm = counts[cols], errors[cols], max_errors[cols]
    sc = score(ss, se, avg_error, alpha, m)
    R = np.column_stack([sc, se, sm, ss]) if cols.size else np.zeros((0, 4))

    logger.log(level, "basic slices: %d slices de nivel 1 en %.6fs", cols.size, perf_counter() - t0)
    return S, R, selected
